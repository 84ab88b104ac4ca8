"""
provider.py

PURPOSE: Provider abstraction - where to send requests and how to read replies.
DEPENDENCIES: pydantic (envelope decoding)

ARCHITECTURE NOTES:
A provider supplies an address, a credential, and a wire format
(ProviderAPI). The wire format owns everything format-specific:

- the URL path of the generation endpoint
- the request payload layout (streaming and non-streaming)
- the envelope type used to decode responses
- how a raw streamed line is unwrapped (SSE "data: " framing,
  sentinels; lines without a data field are dropped)

Only the OpenAI-compatible completions format is built in. Callers with
other needs subclass LanguageModelProvider and override the payload
builders.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from generatable.llm.response import CompletionEnvelope, ProviderResponse

if TYPE_CHECKING:
    from generatable.config import ProviderSettings

SSE_DATA_PREFIX = "data:"
SSE_DONE_SENTINEL = "[DONE]"

@dataclass(frozen=True)
class APIComponents:
    """URL path pieces of a provider API."""

    api: str
    generate: str

    @property
    def generate_path(self) -> str:
        return f"{self.api}{self.generate}"


class ProviderAPI(Enum):
    """Supported wire formats."""

    OPENAI = "OpenAI"

    @property
    def path_components(self) -> APIComponents:
        """Base path and generation path for this format."""
        match self:
            case ProviderAPI.OPENAI:
                return APIComponents(api="/v1", generate="/completions")

    @property
    def response_type(self) -> type[ProviderResponse]:
        """Envelope model for responses in this format."""
        match self:
            case ProviderAPI.OPENAI:
                return CompletionEnvelope

    def build_payload(self, model_name: str, prompt: str, stream: bool) -> bytes:
        """Encode a request body for this format."""
        match self:
            case ProviderAPI.OPENAI:
                payload = {"model": model_name, "prompt": prompt, "stream": stream}
        return json.dumps(payload).encode("utf-8")

    def preprocess_streaming_line(self, line: str) -> str | None:
        """
        Unwrap one raw streamed line.

        Returns the envelope text to decode. Only ``data:`` lines carry
        envelopes; any other line yields None, as does the end-of-stream
        sentinel.
        """
        match self:
            case ProviderAPI.OPENAI:
                stripped = line.strip()
                if not stripped:
                    return None
                if stripped.startswith(SSE_DATA_PREFIX):
                    data = stripped[len(SSE_DATA_PREFIX) :].strip()
                    if not data or data == SSE_DONE_SENTINEL:
                        return None
                    return data
                return None

    def decode_envelope(self, data: str | bytes) -> ProviderResponse:
        """
        Decode one envelope.

        Raises:
            pydantic.ValidationError: If ``data`` is not a valid envelope.
        """
        return self.response_type.model_validate_json(data)


class LanguageModelCapability(Enum):
    """Capabilities a model may advertise."""

    DEFAULT = "default"
    TOOLS = "tools"
    REASONING = "reasoning"
    VISION = "vision"


@dataclass(frozen=True)
class LanguageModel:
    """A model identifier plus what it can do."""

    name: str
    capabilities: tuple[LanguageModelCapability, ...] = field(
        default=(LanguageModelCapability.DEFAULT,)
    )

    @property
    def id(self) -> str:
        return self.name


class LanguageModelProvider(ABC):
    """
    Connection details for a language model service.

    Subclasses provide ``api``, ``address`` and ``api_key``; the payload
    builders default to the wire format's layout.
    """

    @property
    @abstractmethod
    def api(self) -> ProviderAPI:
        """Wire format spoken by this provider."""
        ...

    @property
    @abstractmethod
    def address(self) -> str:
        """Base URL, e.g. ``https://api.openai.com``."""
        ...

    @property
    @abstractmethod
    def api_key(self) -> str:
        """Bearer credential."""
        ...

    def create_streaming_payload(self, model_name: str, prompt: str) -> bytes:
        """Request body asking for a streamed response."""
        return self.api.build_payload(model_name, prompt, stream=True)

    def create_non_streaming_payload(self, model_name: str, prompt: str) -> bytes:
        """Request body asking for a single response."""
        return self.api.build_payload(model_name, prompt, stream=False)

    @property
    def endpoint(self) -> str:
        """Full URL of the generation endpoint."""
        return f"{self.address.rstrip('/')}{self.api.path_components.generate_path}"


class OpenAIProvider(LanguageModelProvider):
    """An OpenAI-compatible completions endpoint."""

    def __init__(
        self,
        api_key: str,
        address: str = "https://api.openai.com",
    ):
        """
        Initialize the provider.

        Args:
            api_key: Bearer token sent with every request.
            address: Base URL; any OpenAI-compatible server works.
        """
        self._api_key = api_key
        self._address = address

    @property
    def api(self) -> ProviderAPI:
        return ProviderAPI.OPENAI

    @property
    def address(self) -> str:
        return self._address

    @property
    def api_key(self) -> str:
        return self._api_key

    @classmethod
    def from_settings(cls, settings: "ProviderSettings") -> "OpenAIProvider":
        """Build a provider from configuration."""
        return cls(api_key=settings.api_key, address=settings.address)

    def __repr__(self) -> str:
        return f"OpenAIProvider(address={self._address!r})"
