"""
response.py

PURPOSE: Wire envelopes returned by language model providers.
DEPENDENCIES: pydantic

ARCHITECTURE NOTES:
An envelope is the provider's JSON wrapper around one unit of generated
text (the whole body, or one streamed line). Every envelope type exposes
the text it carries as ``contents`` so the session never needs to know the
provider's layout.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class ProviderResponse(BaseModel, ABC):
    """Base class for provider envelopes."""

    @property
    @abstractmethod
    def contents(self) -> str:
        """The generated text carried by this envelope."""
        ...

class Choice(BaseModel):
    """One generated alternative."""

    index: int
    text: str


class Usage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class CompletionEnvelope(ProviderResponse):
    """OpenAI-compatible text completion envelope."""

    model: str
    created: int = Field(..., description="Unix timestamp in seconds")
    usage: Usage
    choices: list[Choice] = Field(default_factory=list)

    @property
    def contents(self) -> str:
        """Text of the first choice, or empty when there are none."""
        if not self.choices:
            return ""
        return self.choices[0].text
