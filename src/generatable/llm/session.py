"""
session.py

PURPOSE: Drive one request to a language model and decode what comes back.
DEPENDENCIES: httpx, pydantic

ARCHITECTURE NOTES:
A session pairs a model with optional instructions and sends prompts
through a provider. Three entry points share the same pipeline:

- generate: non-streaming, returns the raw text
- respond: non-streaming, extracts one JSON object and decodes it
- respond_partially: streaming, yields progressively more complete values

Pipeline: build payload -> POST -> check status -> split into lines ->
unwrap/decode each line's envelope -> accumulate text -> extract JSON ->
decode into the target pydantic model.

A line whose envelope does not decode is logged and skipped; it never
fails the call. Everything else (missing provider, non-2xx status, and
for respond an undecodable response) fails fast. httpx errors, including
timeouts, propagate unchanged.

Provider and HTTP client come from the session itself, then from the
SessionDefaults it was created with. Without any client the session opens
(and closes) its own httpx.AsyncClient per call.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar

import httpx
from opentelemetry.trace import Span, Status, StatusCode
from pydantic import BaseModel, ValidationError

from generatable.llm.extraction import (
    extract_complete,
    extract_partial_with_fragment_completion,
)
from generatable.llm.provider import LanguageModel, LanguageModelProvider
from generatable.observability import get_tracer
from generatable.prompt import PromptBuilder, render_prompt
from generatable.schema.generatable import scheme_for

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class LanguageModelSessionError(Exception):
    """Base class for session failures."""

    pass


class NoProviderConfiguredError(LanguageModelSessionError):
    """Neither the session nor its defaults have a provider."""

    def __init__(self) -> None:
        super().__init__(
            "No language model provider configured; set one on the session "
            "or on its SessionDefaults"
        )


class InvalidResponseStatusError(LanguageModelSessionError):
    """The provider answered with a non-2xx HTTP status."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Provider returned HTTP status {status_code}")


class InvalidResponseFormatError(LanguageModelSessionError):
    """The response held no JSON object that decodes into the target type."""

    def __init__(self, text: str) -> None:
        self.text = text
        preview = text if len(text) <= 200 else f"{text[:200]}..."
        super().__init__(f"Could not decode a structured response from: {preview!r}")


class InvalidResponseDataError(LanguageModelSessionError):
    """An extracted JSON candidate could not be encoded for decoding."""

    pass


@dataclass
class SessionDefaults:
    """
    Shared configuration for sessions that do not set their own.

    Create one at application startup and hand it to a SessionFactory (or
    to sessions directly). Mutating it while requests are in flight
    affects those requests unpredictably.
    """

    provider: LanguageModelProvider | None = None
    http_client: httpx.AsyncClient | None = None
    timeout: float | None = None


class LanguageModelSession:
    """
    A conversation-less request context for one model.

    Example:
        session = LanguageModelSession("gpt-3.5-turbo-instruct", provider=provider)
        plan = await session.respond("Plan a trip to Japan", TripPlan)
    """

    def __init__(
        self,
        model: str | LanguageModel,
        instructions: str | PromptBuilder = "",
        *,
        provider: LanguageModelProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        defaults: SessionDefaults | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize the session.

        Args:
            model: Model name or LanguageModel.
            instructions: Text placed before every prompt.
            provider: Provider for this session; overrides the defaults.
            http_client: HTTP client for this session; overrides the defaults.
            defaults: Fallback provider, client and timeout.
            timeout: Network timeout in seconds; exceeding it raises
                httpx.TimeoutException.
        """
        self.model = model if isinstance(model, LanguageModel) else LanguageModel(name=model)
        self.instructions = render_prompt(instructions)
        self.provider = provider
        self.http_client = http_client
        self.defaults = defaults if defaults is not None else SessionDefaults()
        self.timeout = timeout

    def resolve_provider(self) -> LanguageModelProvider:
        """
        Return the provider this session will use.

        Raises:
            NoProviderConfiguredError: If none is set.
        """
        provider = self.provider or self.defaults.provider
        if provider is None:
            raise NoProviderConfiguredError()
        return provider

    def compose_prompt(self, prompt: str | PromptBuilder) -> str:
        """Instructions and prompt joined by a newline (instructions first)."""
        text = render_prompt(prompt)
        if not self.instructions:
            return text
        return f"{self.instructions}\n{text}"

    def _request_options(self, provider: LanguageModelProvider, payload: bytes) -> dict:
        timeout = self.timeout if self.timeout is not None else self.defaults.timeout
        return {
            "content": payload,
            "headers": {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {provider.api_key}",
            },
            "timeout": httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
        }

    @asynccontextmanager
    async def _transport(self) -> AsyncIterator[httpx.AsyncClient]:
        client = self.http_client or self.defaults.http_client
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient() as owned_client:
            yield owned_client

    def _annotate(self, span: Span, provider: LanguageModelProvider) -> None:
        span.set_attribute("llm.model", self.model.name)
        span.set_attribute("llm.provider_api", provider.api.value)
        span.set_attribute("llm.endpoint", provider.endpoint)

    async def _collect_text(
        self,
        provider: LanguageModelProvider,
        prompt: str | PromptBuilder,
        span: Span,
    ) -> str:
        """Send a non-streaming request and return the accumulated text."""
        payload = provider.create_non_streaming_payload(
            self.model.name, self.compose_prompt(prompt)
        )

        logger.debug(f"Sending request to {provider.endpoint} for {self.model.name}")
        async with self._transport() as client:
            response = await client.post(
                provider.endpoint, **self._request_options(provider, payload)
            )

        span.set_attribute("http.status_code", response.status_code)
        if not response.is_success:
            raise InvalidResponseStatusError(response.status_code)

        body = response.text

        # A pretty-printed body is one envelope spread over many lines
        try:
            envelope = provider.api.decode_envelope(body)
        except ValidationError:
            pass
        else:
            span.set_attribute("llm.fragments", 1)
            span.set_attribute("llm.skipped_lines", 0)
            return envelope.contents.strip()

        fragments: list[str] = []
        skipped = 0
        for line in body.splitlines():
            if not line.strip():
                continue
            try:
                envelope = provider.api.decode_envelope(line)
            except ValidationError:
                skipped += 1
                span.add_event("envelope_skipped")
                logger.debug(f"Skipping undecodable response line: {line[:120]!r}")
                continue
            fragments.append(envelope.contents)

        span.set_attribute("llm.fragments", len(fragments))
        span.set_attribute("llm.skipped_lines", skipped)
        return "".join(fragments).strip()

    async def generate(self, prompt: str | PromptBuilder) -> str:
        """
        Send a prompt and return the model's raw text.

        No JSON extraction is attempted.

        Raises:
            NoProviderConfiguredError: If no provider is configured.
            InvalidResponseStatusError: If the provider returns a non-2xx status.
        """
        with tracer.start_as_current_span("llm.generate") as span:
            provider = self.resolve_provider()
            self._annotate(span, provider)

            text = await self._collect_text(provider, prompt, span)
            span.set_attribute("llm.response_length", len(text))
            logger.debug(f"Generated {len(text)} characters")
            return text

    async def respond(self, prompt: str | PromptBuilder, output_type: type[ModelT]) -> ModelT:
        """
        Send a prompt and decode the JSON object in the reply.

        Args:
            prompt: Prompt text or builder.
            output_type: Pydantic model the reply is decoded into.

        Returns:
            The decoded value.

        Raises:
            NoProviderConfiguredError: If no provider is configured.
            InvalidResponseStatusError: If the provider returns a non-2xx status.
            InvalidResponseFormatError: If no decodable JSON object was found.
            InvalidResponseDataError: If the extracted JSON cannot be encoded.
        """
        with tracer.start_as_current_span("llm.respond") as span:
            provider = self.resolve_provider()
            self._annotate(span, provider)
            span.set_attribute("llm.output_type", output_type.__name__)

            text = await self._collect_text(provider, prompt, span)

            candidate = extract_complete(text)
            if candidate is None:
                raise InvalidResponseFormatError(text)

            try:
                data = candidate.encode("utf-8")
            except UnicodeEncodeError as e:
                raise InvalidResponseDataError(f"Extracted JSON is not valid UTF-8: {e}") from e

            try:
                value = output_type.model_validate_json(data)
            except ValidationError as e:
                raise InvalidResponseFormatError(candidate) from e

            span.add_event("response_decoded")
            return value

    async def respond_partially(
        self,
        prompt: str | PromptBuilder,
        output_type: type[ModelT],
        *,
        allows_fragment: bool = False,
    ) -> AsyncIterator[ModelT]:
        """
        Stream a reply, yielding each new decodable state of the JSON object.

        After every streamed fragment the whole accumulated text is run
        through the partial extractor; a value is yielded whenever the
        extracted JSON decodes into ``output_type`` and differs from the last
        value yielded. States that do not decode yet are skipped silently. When the stream ends, one
        last attempt is made with the complete extractor.

        Stop early by closing the iterator (``break`` inside
        ``contextlib.aclosing(...)`` or ``await it.aclose()``); the HTTP
        response is released when it closes.

        Args:
            prompt: Prompt text or builder.
            output_type: Pydantic model each state is decoded into.
            allows_fragment: Close truncated string values of ``string``
                fields so they can be observed while still growing.

        Raises:
            NoProviderConfiguredError: If no provider is configured.
            InvalidResponseStatusError: If the provider returns a non-2xx status.
        """
        span = tracer.start_span("llm.respond_partially")
        try:
            provider = self.resolve_provider()
            self._annotate(span, provider)
            span.set_attribute("llm.output_type", output_type.__name__)
            span.set_attribute("llm.allows_fragment", allows_fragment)

            scheme = scheme_for(output_type)
            payload = provider.create_streaming_payload(
                self.model.name, self.compose_prompt(prompt)
            )

            accumulated = ""
            last_candidate: str | None = None
            last_value: ModelT | None = None
            fragments = 0
            skipped = 0
            emitted = 0

            logger.debug(f"Opening stream to {provider.endpoint} for {self.model.name}")
            async with self._transport() as client:
                async with client.stream(
                    "POST", provider.endpoint, **self._request_options(provider, payload)
                ) as response:
                    span.set_attribute("http.status_code", response.status_code)
                    if not response.is_success:
                        raise InvalidResponseStatusError(response.status_code)

                    async for line in response.aiter_lines():
                        data = provider.api.preprocess_streaming_line(line)
                        if data is None:
                            continue
                        try:
                            envelope = provider.api.decode_envelope(data)
                        except ValidationError:
                            skipped += 1
                            span.add_event("envelope_skipped")
                            logger.debug(f"Skipping undecodable stream line: {data[:120]!r}")
                            continue

                        fragments += 1
                        accumulated += envelope.contents
                        candidate = extract_partial_with_fragment_completion(
                            accumulated.strip(), allows_fragment, scheme
                        )
                        if candidate is None or candidate == last_candidate:
                            continue
                        try:
                            value = output_type.model_validate_json(candidate)
                        except ValidationError:
                            continue

                        last_candidate = candidate
                        # Whitespace or key order changes alone are not a new state
                        if value == last_value:
                            continue
                        last_value = value
                        emitted += 1
                        yield value

            final = extract_complete(accumulated.strip())
            if final is not None and final != last_candidate:
                try:
                    value = output_type.model_validate_json(final)
                except ValidationError:
                    logger.debug("Final response did not decode into the target type")
                else:
                    if value != last_value:
                        emitted += 1
                        yield value

            span.set_attribute("llm.fragments", fragments)
            span.set_attribute("llm.skipped_lines", skipped)
            span.set_attribute("llm.values_emitted", emitted)
            logger.debug(f"Stream finished: {fragments} fragments, {emitted} values")
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
        finally:
            span.end()


class SessionFactory:
    """
    Creates sessions that share one SessionDefaults.

    This is the composition root: configure the provider and HTTP client
    once, then ask the factory for sessions wherever they are needed.
    """

    def __init__(self, defaults: SessionDefaults):
        self._defaults = defaults

    @property
    def defaults(self) -> SessionDefaults:
        return self._defaults

    def session(
        self,
        model: str | LanguageModel,
        instructions: str | PromptBuilder = "",
        timeout: float | None = None,
    ) -> LanguageModelSession:
        """Create a session backed by this factory's defaults."""
        return LanguageModelSession(
            model,
            instructions,
            defaults=self._defaults,
            timeout=timeout,
        )
