"""Language model sessions, providers and JSON extraction."""

from generatable.llm.extraction import (
    extract_complete,
    extract_partial,
    extract_partial_with_fragment_completion,
)
from generatable.llm.provider import (
    LanguageModel,
    LanguageModelCapability,
    LanguageModelProvider,
    OpenAIProvider,
    ProviderAPI,
)
from generatable.llm.response import CompletionEnvelope, ProviderResponse
from generatable.llm.session import (
    InvalidResponseDataError,
    InvalidResponseFormatError,
    InvalidResponseStatusError,
    LanguageModelSession,
    LanguageModelSessionError,
    NoProviderConfiguredError,
    SessionDefaults,
    SessionFactory,
)

__all__ = [
    "CompletionEnvelope",
    "InvalidResponseDataError",
    "InvalidResponseFormatError",
    "InvalidResponseStatusError",
    "LanguageModel",
    "LanguageModelCapability",
    "LanguageModelProvider",
    "LanguageModelSession",
    "LanguageModelSessionError",
    "NoProviderConfiguredError",
    "OpenAIProvider",
    "ProviderAPI",
    "ProviderResponse",
    "SessionDefaults",
    "SessionFactory",
    "extract_complete",
    "extract_partial",
    "extract_partial_with_fragment_completion",
]
