"""
extraction.py

PURPOSE: Locate JSON objects inside free-form model output.
DEPENDENCIES: None (pure Python + json)

ARCHITECTURE NOTES:
Model output is rarely bare JSON: it arrives wrapped in markdown fences,
followed by prose, or (while streaming) cut off mid-value. Three
extractors cover these cases, each a pure function of the text:

1. extract_complete: the first balanced {...} object that parses.
2. extract_partial: the complete object if there is one, otherwise the
   longest prefix that parses once its open braces are closed.
3. extract_partial_with_fragment_completion: like extract_partial, but
   may also close a truncated string value when the scheme says the field
   is a string.

All of them walk the text one character at a time, tracking string
literals and escapes, so braces and quotes inside values never disturb
the brace depth. Every returned candidate has passed json.loads.
"""

import json
import re
from collections.abc import Iterator

from generatable.schema.descriptor import Scheme, is_string_field

# A complete JSON string token followed by a colon, at the end of the text
_KEY_BEFORE_VALUE = re.compile(r'"((?:[^"\\]|\\.)*)"\s*:\s*$', re.DOTALL)

# An incomplete \uXXXX escape at the end of the text
_PARTIAL_UNICODE_ESCAPE = re.compile(r"\\u[0-9a-fA-F]{0,3}$")

# Characters a truncated fragment may end with and still be closeable
_CLOSEABLE_ENDINGS = ('"', "]", "}", "[", "{")


def _is_valid_json(candidate: str) -> bool:
    try:
        json.loads(candidate)
    except (ValueError, RecursionError):
        return False
    return True


class _Scanner:
    """
    Character scanner aware of JSON string literals.

    Iterating ``structural()`` yields (index, char) for every character
    outside a string literal. After (or during) iteration, ``in_string``
    and ``string_start`` describe the literal the scan stopped in.
    """

    def __init__(self, text: str, start: int = 0) -> None:
        self.text = text
        self.start = start
        self.in_string = False
        self.string_start: int | None = None

    def structural(self) -> Iterator[tuple[int, str]]:
        escaped = False
        for index in range(self.start, len(self.text)):
            char = self.text[index]
            if escaped:
                escaped = False
                continue
            if char == "\\":
                escaped = True
                continue
            if char == '"':
                self.in_string = not self.in_string
                self.string_start = index if self.in_string else None
                continue
            if not self.in_string:
                yield index, char


def extract_complete(text: str) -> str | None:
    """
    Return the first balanced JSON object in ``text``.

    The object starts at the first ``{``. Returns None when that object
    never closes or does not parse.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    for index, char in _Scanner(text, start).structural():
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                candidate = text[start : index + 1]
                return candidate if _is_valid_json(candidate) else None
    return None


def extract_partial(text: str) -> str | None:
    """
    Return the most complete JSON object recoverable from ``text``.

    A complete object always wins. Otherwise the text is cut back to the
    last structural boundary (a ``,`` or an inner ``}``) at which closing
    the open braces yields valid JSON.
    """
    complete = extract_complete(text)
    if complete is not None:
        return complete

    start = text.find("{")
    if start == -1:
        return None

    # (end of consumed text, braces still open) at every boundary
    boundaries: list[tuple[int, int]] = []
    depth = 0
    for index, char in _Scanner(text, start).structural():
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth <= 0:
                # Balanced but unparseable: nothing after this can help
                break
            boundaries.append((index + 1, depth))
        elif char == "," and depth > 0:
            boundaries.append((index, depth))

    # The last boundary that repairs cleanly is the best candidate
    for end, open_braces in reversed(boundaries):
        candidate = text[start:end] + "}" * open_braces
        if _is_valid_json(candidate):
            return candidate
    return None


def _key_before(fragment: str, quote_index: int) -> str | None:
    """Return the object key whose value starts at ``quote_index``, if any."""
    match = _KEY_BEFORE_VALUE.search(fragment, 0, quote_index)
    if match is None:
        return None
    try:
        return json.loads(f'"{match.group(1)}"')
    except ValueError:
        return None


def _trim_dangling_escape(fragment: str) -> str:
    """Drop an escape sequence cut off at the end of a string value."""
    trailing = len(fragment) - len(fragment.rstrip("\\"))
    if trailing % 2 == 1:
        return fragment[:-1]

    match = _PARTIAL_UNICODE_ESCAPE.search(fragment)
    if match is not None:
        before = fragment[: match.start()]
        if (len(before) - len(before.rstrip("\\"))) % 2 == 0:
            return before
    return fragment


def extract_partial_with_fragment_completion(
    text: str,
    allows_fragment: bool,
    scheme: Scheme,
) -> str | None:
    """
    Like extract_partial, optionally closing a truncated string value.

    When ``allows_fragment`` is set and no boundary repair works, a string
    value left open at the very end of the text is closed, but only if its
    key is a ``string`` field of ``scheme``. Open arrays and objects are
    then closed innermost first. Numbers and literals cut off at the end
    are never completed, since they may still be growing.

    Args:
        text: Accumulated model output so far.
        allows_fragment: Whether truncated string values may be completed.
        scheme: Descriptor map of the target type, keyed by wire name.

    Returns:
        A valid JSON object string, or None.
    """
    partial = extract_partial(text)
    if not allows_fragment or partial is not None:
        return partial

    start = text.find("{")
    if start == -1:
        return None

    fragment = text[start:]
    scanner = _Scanner(fragment)
    unclosed: list[str] = []
    for _, char in scanner.structural():
        if char in "{[":
            unclosed.append(char)
        elif char in "}]" and unclosed:
            unclosed.pop()

    if scanner.in_string and scanner.string_start is not None:
        key = _key_before(fragment, scanner.string_start)
        if key is None or not is_string_field(scheme, key):
            return None
        fragment = _trim_dangling_escape(fragment) + '"'
    else:
        fragment = fragment.rstrip()
        if not fragment.endswith(_CLOSEABLE_ENDINGS):
            return None

    closing = "".join("]" if opener == "[" else "}" for opener in reversed(unclosed))
    candidate = fragment + closing
    return candidate if _is_valid_json(candidate) else None
