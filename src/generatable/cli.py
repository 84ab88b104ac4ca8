"""
cli.py

PURPOSE: Command-line interface for generatable.
DEPENDENCIES: typer, rich

ARCHITECTURE NOTES:
The CLI provides commands for:
- generate: Send a prompt and print the raw text
- stream: Stream partial values of a Generatable type
- extract: Run the JSON extractors over a file or stdin (offline)
- describe: Print a type's JSON description
- config: Show the resolved configuration

Types are named as "module:Class" and imported on demand.
"""

import asyncio
import importlib
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated

import httpx
import typer
from pydantic import BaseModel, ValidationError

from generatable import __version__
from generatable.config import Settings, get_settings
from generatable.llm.extraction import (
    extract_complete,
    extract_partial,
    extract_partial_with_fragment_completion,
)
from generatable.llm.provider import OpenAIProvider
from generatable.llm.session import (
    LanguageModelSessionError,
    SessionDefaults,
    SessionFactory,
)
from generatable.observability import init_telemetry, shutdown_telemetry
from generatable.schema.generatable import Generatable, scheme_for
from generatable.ui import plain

app = typer.Typer(
    name="generatable",
    help="Structured output from language models.",
    add_completion=False,
)


class TargetError(ValueError):
    """A "module:Class" reference could not be resolved."""

    pass


def load_target(reference: str) -> type[BaseModel]:
    """
    Import a pydantic model from a "module:Class" reference.

    Raises:
        TargetError: If the reference is malformed or does not name a model.
    """
    module_name, sep, class_name = reference.partition(":")
    if not sep or not module_name or not class_name:
        raise TargetError(f"Expected module:Class, got {reference!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise TargetError(f"Cannot import module {module_name!r}: {e}") from e

    target = getattr(module, class_name, None)
    if not isinstance(target, type) or not issubclass(target, BaseModel):
        raise TargetError(f"{reference!r} is not a pydantic model")
    return target


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        plain.console.print(f"generatable version {__version__}")
        raise typer.Exit()


def configure_logging(settings: Settings) -> None:
    """Configure the root logger from settings."""
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_settings() -> Settings:
    """Load settings and configure logging, exiting with code 1 when they are invalid."""
    try:
        settings = get_settings()
    except ValidationError as e:
        plain.print_error(f"Invalid configuration: {e}")
        raise typer.Exit(1) from None
    configure_logging(settings)
    return settings


def create_factory(settings: Settings) -> SessionFactory:
    """Build the session factory for commands that talk to a provider."""
    if not settings.provider.api_key:
        plain.print_error("No API key configured.")
        plain.print_error("Set GENERATABLE_PROVIDER_API_KEY or OPENAI_API_KEY.")
        raise typer.Exit(1)

    defaults = SessionDefaults(
        provider=OpenAIProvider.from_settings(settings.provider),
        timeout=settings.provider.timeout,
    )
    return SessionFactory(defaults)


def run_with_provider(coro_factory: Callable[[], Awaitable[None]], settings: Settings) -> None:
    """Run a coroutine, turning session and transport failures into exit code 1."""
    init_telemetry(settings.otel)
    try:
        asyncio.run(coro_factory())
    except LanguageModelSessionError as e:
        plain.print_error(f"Request failed: {e}")
        raise typer.Exit(1) from None
    except httpx.HTTPError as e:
        plain.print_error(f"Transport error: {e}")
        raise typer.Exit(1) from None
    finally:
        shutdown_telemetry()


@app.callback()
def main(
    _version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Generatable - Structured output from language models."""
    pass


@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="Prompt text")],
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model name (default from settings)"),
    ] = None,
    instructions: Annotated[
        str,
        typer.Option("--instructions", "-i", help="Text placed before the prompt"),
    ] = "",
) -> None:
    """Send a prompt and print the model's raw text."""
    settings = load_settings()
    factory = create_factory(settings)
    session = factory.session(model or settings.provider.model, instructions)

    async def do_generate() -> None:
        text = await session.generate(prompt)
        plain.print_message(text)

    run_with_provider(do_generate, settings)


@app.command()
def stream(
    prompt: Annotated[str, typer.Argument(help="Prompt text")],
    target: Annotated[str, typer.Argument(help="Output type as module:Class")],
    fragments: Annotated[
        bool,
        typer.Option("--fragments", "-f", help="Show string values while they grow"),
    ] = False,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model name (default from settings)"),
    ] = None,
    instructions: Annotated[
        str,
        typer.Option("--instructions", "-i", help="Text placed before the prompt"),
    ] = "",
) -> None:
    """Stream partial values of a Generatable type, one JSON document per update."""
    try:
        output_type = load_target(target)
    except TargetError as e:
        plain.print_error(str(e))
        raise typer.Exit(1) from None

    settings = load_settings()
    factory = create_factory(settings)
    session = factory.session(model or settings.provider.model, instructions)

    # The type's description tells the model what shape to answer in
    if issubclass(output_type, Generatable):
        prompt = f"{prompt}\n{output_type.json_description()}"

    async def do_stream() -> None:
        count = 0
        async for value in session.respond_partially(
            prompt, output_type, allows_fragment=fragments
        ):
            count += 1
            plain.print_json(value)
        plain.print_dim(f"{count} update(s)")

    run_with_provider(do_stream, settings)


@app.command()
def extract(
    file: Annotated[
        Path | None,
        typer.Argument(
            help="File to read (default: stdin)",
            exists=True,
            readable=True,
            dir_okay=False,
        ),
    ] = None,
    partial: Annotated[
        bool,
        typer.Option("--partial", "-p", help="Repair a truncated object"),
    ] = False,
    fragments: Annotated[
        bool,
        typer.Option("--fragments", "-f", help="Also close a truncated string value"),
    ] = False,
    target: Annotated[
        str | None,
        typer.Option("--target", "-t", help="Type (module:Class) whose string fields may be closed"),
    ] = None,
) -> None:
    """Extract a JSON object from model output without contacting a provider."""
    text = file.read_text() if file is not None else sys.stdin.read()

    if fragments:
        if target is None:
            plain.print_error("--fragments needs --target to know which fields are strings")
            raise typer.Exit(1)
        try:
            scheme = scheme_for(load_target(target))
        except TargetError as e:
            plain.print_error(str(e))
            raise typer.Exit(1) from None
        result = extract_partial_with_fragment_completion(text, True, scheme)
    elif partial:
        result = extract_partial(text)
    else:
        result = extract_complete(text)

    if result is None:
        plain.print_error("No JSON object found")
        raise typer.Exit(1)

    plain.print_json(result)


@app.command()
def describe(
    target: Annotated[str, typer.Argument(help="Type as module:Class")],
) -> None:
    """Print the JSON description a type embeds in prompts."""
    try:
        output_type = load_target(target)
    except TargetError as e:
        plain.print_error(str(e))
        raise typer.Exit(1) from None

    if not issubclass(output_type, Generatable):
        plain.print_error(f"{target!r} is not a Generatable")
        raise typer.Exit(1)

    title = output_type.type_description or output_type.__name__
    plain.print_description(title, output_type.json_description())


@app.command()
def config() -> None:
    """Show the resolved configuration."""
    settings = load_settings()

    api_key = settings.provider.api_key
    masked = f"{api_key[:4]}...{api_key[-4:]}" if len(api_key) > 8 else ("***" if api_key else "")

    plain.print_settings(
        {
            "log_level": settings.log_level,
            "debug": settings.debug,
            "provider.api": settings.provider.api,
            "provider.address": settings.provider.address,
            "provider.endpoint": OpenAIProvider.from_settings(settings.provider).endpoint,
            "provider.api_key": masked or "(not set)",
            "provider.model": settings.provider.model,
            "provider.timeout": settings.provider.timeout,
            "otel.enabled": settings.otel.enabled,
            "otel.service_name": settings.otel.service_name,
            "otel.endpoint": settings.otel.endpoint or "(console)",
        }
    )


if __name__ == "__main__":
    app()
