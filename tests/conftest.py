"""
conftest.py

Shared pytest fixtures for generatable tests.
"""

import json
from collections.abc import Callable

import pytest
import respx

from generatable.llm.provider import OpenAIProvider

API_BASE = "https://api.test.com"


def completion_envelope(text: str, *, model: str = "test-model", created: int = 0) -> dict:
    """An OpenAI-compatible completion envelope carrying ``text``."""
    return {
        "model": model,
        "created": created,
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
        "choices": [{"index": 0, "text": text}],
    }


@pytest.fixture
def envelope() -> Callable[..., dict]:
    """Factory for completion envelopes."""
    return completion_envelope


@pytest.fixture
def sse_body() -> Callable[..., str]:
    """Build a server-sent-events body, one envelope per text chunk."""

    def build(*chunks: str, done: bool = True) -> str:
        lines = [f"data: {json.dumps(completion_envelope(chunk))}" for chunk in chunks]
        if done:
            lines.append("data: [DONE]")
        return "\n\n".join(lines) + "\n\n"

    return build


@pytest.fixture
def provider() -> OpenAIProvider:
    """A provider pointed at the mocked API."""
    return OpenAIProvider(api_key="test-api-key", address=API_BASE)


@pytest.fixture
def mock_api():
    """Set up respx mock for the completions API."""
    with respx.mock(base_url=API_BASE, assert_all_called=False) as respx_mock:
        yield respx_mock
