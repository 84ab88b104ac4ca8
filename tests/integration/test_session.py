"""
TEST DOC: Language Model Session

WHAT: Tests for LanguageModelSession.generate and respond
WHY: Ensure requests are built correctly and replies decode (or fail)
     the way callers expect
HOW: Use respx to mock the OpenAI-compatible completions API

CASES:
- Raw text generation
- Structured responses wrapped in prose and code fences
- Request URL, headers and payload
- Provider and client resolution through SessionDefaults / SessionFactory

EDGE CASES:
- No provider configured (no network call made)
- Non-2xx status
- Invalid JSON in the reply
- JSON that does not match the target type
- Multi-line bodies with malformed lines
- Transport timeouts propagate unchanged
"""

import json
from typing import ClassVar

import httpx
import pytest
from httpx import Response
from pydantic import BaseModel

from generatable.llm.provider import OpenAIProvider
from generatable.llm.session import (
    InvalidResponseFormatError,
    InvalidResponseStatusError,
    LanguageModelSession,
    NoProviderConfiguredError,
    SessionDefaults,
    SessionFactory,
)
from generatable.prompt import PromptBuilder
from generatable.schema.generatable import Generatable, guide

COMPLETIONS_PATH = "/v1/completions"


class StatusResponse(BaseModel):
    message: str
    code: int


class Greeting(Generatable):
    type_description: ClassVar[str] = "A greeting"

    text: str = guide("The greeting text")
    language: str = guide("ISO language code", default="en")


class TestGenerate:
    """Tests for raw text generation."""

    @pytest.mark.asyncio
    async def test_generate_returns_text(self, mock_api, provider, envelope):
        """The envelope's text is returned trimmed."""
        mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope("  Hello, world!\n"))
        )

        session = LanguageModelSession("test-model", provider=provider)
        assert await session.generate("Say hello") == "Hello, world!"

    @pytest.mark.asyncio
    async def test_generate_does_not_extract_json(self, mock_api, provider, envelope):
        """Text around JSON is passed through untouched."""
        mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope('Sure: {"a": 1} done'))
        )

        session = LanguageModelSession("test-model", provider=provider)
        assert await session.generate("json please") == 'Sure: {"a": 1} done'

    @pytest.mark.asyncio
    async def test_pretty_printed_envelope(self, mock_api, provider, envelope):
        """A body spread over several lines decodes as one envelope."""
        mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, text=json.dumps(envelope("Hi"), indent=2))
        )

        session = LanguageModelSession("test-model", provider=provider)
        assert await session.generate("hi") == "Hi"

    @pytest.mark.asyncio
    async def test_multiline_body_skips_bad_lines(self, mock_api, provider, envelope):
        """Each line is an envelope; undecodable lines are skipped."""
        body = "\n".join(
            [
                json.dumps(envelope("Hello, ")),
                "{bad json",
                json.dumps(envelope("world")),
                "",
            ]
        )
        mock_api.post(COMPLETIONS_PATH).mock(return_value=Response(200, text=body))

        session = LanguageModelSession("test-model", provider=provider)
        assert await session.generate("hi") == "Hello, world"

    @pytest.mark.asyncio
    async def test_request_shape(self, mock_api, provider, envelope):
        """URL, headers and payload follow the provider's format."""
        route = mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope("ok"))
        )

        session = LanguageModelSession(
            "test-model",
            instructions="You are terse.",
            provider=provider,
        )
        await session.generate("Say hello")

        request = route.calls.last.request
        assert str(request.url) == "https://api.test.com/v1/completions"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Authorization"] == "Bearer test-api-key"
        assert json.loads(request.content) == {
            "model": "test-model",
            "prompt": "You are terse.\nSay hello",
            "stream": False,
        }

    @pytest.mark.asyncio
    async def test_empty_instructions_add_no_newline(self, mock_api, provider, envelope):
        """Without instructions the prompt is sent as-is."""
        route = mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope("ok"))
        )

        session = LanguageModelSession("test-model", provider=provider)
        await session.generate("Say hello")

        assert json.loads(route.calls.last.request.content)["prompt"] == "Say hello"

    @pytest.mark.asyncio
    async def test_prompt_builders(self, mock_api, provider, envelope):
        """Instructions and prompts may be PromptBuilders."""
        route = mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope("ok"))
        )

        session = LanguageModelSession(
            "test-model",
            instructions=PromptBuilder("Rule one.", "Rule two."),
            provider=provider,
        )
        await session.generate(PromptBuilder("Question?", None))

        prompt = json.loads(route.calls.last.request.content)["prompt"]
        assert prompt == "Rule one.\nRule two.\nQuestion?"

    @pytest.mark.asyncio
    async def test_status_error(self, mock_api, provider):
        """Non-2xx responses raise InvalidResponseStatusError."""
        mock_api.post(COMPLETIONS_PATH).mock(return_value=Response(429, text="slow down"))

        session = LanguageModelSession("test-model", provider=provider)
        with pytest.raises(InvalidResponseStatusError) as exc_info:
            await session.generate("hi")

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_timeout_propagates(self, mock_api, provider):
        """Transport timeouts surface as httpx exceptions."""
        mock_api.post(COMPLETIONS_PATH).mock(side_effect=httpx.ReadTimeout("too slow"))

        session = LanguageModelSession("test-model", provider=provider, timeout=0.5)
        with pytest.raises(httpx.TimeoutException):
            await session.generate("hi")

    @pytest.mark.asyncio
    async def test_timeout_forwarded(self, mock_api, provider, envelope):
        """The session timeout is applied to the request."""
        route = mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope("ok"))
        )

        session = LanguageModelSession("test-model", provider=provider, timeout=5.0)
        await session.generate("hi")

        timeout = route.calls.last.request.extensions["timeout"]
        assert timeout["read"] == 5.0


class TestRespond:
    """Tests for structured responses."""

    @pytest.mark.asyncio
    async def test_markdown_wrapped_json(self, mock_api, provider, envelope):
        """JSON inside prose and a code fence decodes."""
        text = 'Here\'s the answer:\n```json\n{"message":"Success","code":200}\n```'
        mock_api.post(COMPLETIONS_PATH).mock(return_value=Response(200, json=envelope(text)))

        session = LanguageModelSession("test-model", provider=provider)
        result = await session.respond("status?", StatusResponse)

        assert result.message == "Success"
        assert result.code == 200

    @pytest.mark.asyncio
    async def test_invalid_json(self, mock_api, provider, envelope):
        """Unparseable JSON fails with the raw text attached."""
        text = '{"message": "Invalid,\n"code": 500,\n}'
        mock_api.post(COMPLETIONS_PATH).mock(return_value=Response(200, json=envelope(text)))

        session = LanguageModelSession("test-model", provider=provider)
        with pytest.raises(InvalidResponseFormatError) as exc_info:
            await session.respond("status?", StatusResponse)

        assert exc_info.value.text == text.strip()

    @pytest.mark.asyncio
    async def test_no_json(self, mock_api, provider, envelope):
        """A reply without any object fails."""
        mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope("I cannot answer that."))
        )

        session = LanguageModelSession("test-model", provider=provider)
        with pytest.raises(InvalidResponseFormatError):
            await session.respond("status?", StatusResponse)

    @pytest.mark.asyncio
    async def test_wrong_shape(self, mock_api, provider, envelope):
        """Valid JSON that does not fit the type fails with the candidate attached."""
        mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope('Result: {"message": "Hi"}'))
        )

        session = LanguageModelSession("test-model", provider=provider)
        with pytest.raises(InvalidResponseFormatError) as exc_info:
            await session.respond("status?", StatusResponse)

        assert exc_info.value.text == '{"message": "Hi"}'

    @pytest.mark.asyncio
    async def test_generatable_target(self, mock_api, provider, envelope):
        """Generatable types decode with their defaults."""
        mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope('{"text": "Bonjour"}'))
        )

        session = LanguageModelSession("test-model", provider=provider)
        greeting = await session.respond("Greet me", Greeting)

        assert greeting.text == "Bonjour"
        assert greeting.language == "en"


class TestProviderResolution:
    """Tests for provider and client resolution."""

    @pytest.mark.asyncio
    async def test_no_provider(self, mock_api):
        """Every entry point fails before touching the network."""
        route = mock_api.post(COMPLETIONS_PATH)
        session = LanguageModelSession("test-model")

        with pytest.raises(NoProviderConfiguredError):
            await session.generate("hi")
        with pytest.raises(NoProviderConfiguredError):
            await session.respond("hi", StatusResponse)
        with pytest.raises(NoProviderConfiguredError):
            async for _ in session.respond_partially("hi", StatusResponse):
                pass

        assert not route.called

    @pytest.mark.asyncio
    async def test_defaults_provider(self, mock_api, provider, envelope):
        """A session without its own provider uses the defaults."""
        mock_api.post(COMPLETIONS_PATH).mock(return_value=Response(200, json=envelope("ok")))

        defaults = SessionDefaults(provider=provider)
        session = LanguageModelSession("test-model", defaults=defaults)
        assert await session.generate("hi") == "ok"

    @pytest.mark.asyncio
    async def test_instance_provider_wins(self, mock_api, provider, envelope):
        """The session's own provider overrides the defaults."""
        route = mock_api.post(COMPLETIONS_PATH).mock(
            return_value=Response(200, json=envelope("ok"))
        )
        other = OpenAIProvider(api_key="other-key", address="https://elsewhere.test")

        session = LanguageModelSession(
            "test-model",
            provider=provider,
            defaults=SessionDefaults(provider=other),
        )
        await session.generate("hi")

        assert route.calls.last.request.headers["Authorization"] == "Bearer test-api-key"

    @pytest.mark.asyncio
    async def test_shared_http_client(self, mock_api, provider, envelope):
        """A client in the defaults is used and left open."""
        mock_api.post(COMPLETIONS_PATH).mock(return_value=Response(200, json=envelope("ok")))

        async with httpx.AsyncClient() as client:
            factory = SessionFactory(SessionDefaults(provider=provider, http_client=client))
            session = factory.session("test-model")
            assert await session.generate("one") == "ok"
            assert await session.generate("two") == "ok"
            assert not client.is_closed

    @pytest.mark.asyncio
    async def test_factory_shares_defaults(self, provider):
        """Factory sessions share one defaults object."""
        defaults = SessionDefaults(provider=provider)
        factory = SessionFactory(defaults)

        first = factory.session("a", "Be brief.")
        second = factory.session("b")

        assert first.defaults is second.defaults is factory.defaults
        assert first.instructions == "Be brief."
        assert first.resolve_provider() is provider
