"""
prompt.py

PURPOSE: Compose prompt text from ordered pieces.
DEPENDENCIES: None (pure Python)

ARCHITECTURE NOTES:
Prompts are built by appending strings in order and joining them with
newlines. Blank pieces (None, False, "") are skipped so conditional parts
can be written inline:

    prompt = build_prompt(
        "Plan a trip.",
        f"Traveller: {name}" if name else None,
        TripPlan.json_description(),
    )
"""

from collections.abc import Iterable

PromptPart = str | Iterable[str] | None | bool


class PromptBuilder:
    """An ordered list of prompt lines."""

    def __init__(self, *parts: PromptPart) -> None:
        self._lines: list[str] = []
        self.add(*parts)

    def add(self, *parts: PromptPart) -> "PromptBuilder":
        """Append parts, flattening iterables and skipping blanks."""
        for part in parts:
            if part is None or part is False or part is True:
                continue
            if isinstance(part, str):
                if part:
                    self._lines.append(part)
                continue
            for item in part:
                if item:
                    self._lines.append(item)
        return self

    def add_if(self, condition: object, *parts: PromptPart) -> "PromptBuilder":
        """Append parts only when ``condition`` is truthy."""
        if condition:
            self.add(*parts)
        return self

    def build(self) -> str:
        """Join the collected lines with newlines."""
        return "\n".join(self._lines)

    def __str__(self) -> str:
        return self.build()

    def __bool__(self) -> bool:
        return bool(self._lines)


def build_prompt(*parts: PromptPart) -> str:
    """Convenience wrapper: ``PromptBuilder(*parts).build()``."""
    return PromptBuilder(*parts).build()


def render_prompt(prompt: "str | PromptBuilder") -> str:
    """Return prompt text from either a string or a builder."""
    if isinstance(prompt, PromptBuilder):
        return prompt.build()
    return prompt
