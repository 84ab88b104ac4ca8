"""
telemetry.py

PURPOSE: OpenTelemetry initialization and tracer lookup.
DEPENDENCIES: opentelemetry-api; opentelemetry-sdk and
              opentelemetry-exporter-otlp for export (observability extra)

ARCHITECTURE NOTES:
Modules call get_tracer(__name__) at import time. The API package hands
back proxy tracers that record nothing until a tracer provider is
installed, so tracing costs nothing unless init_telemetry() is called
with tracing enabled. Exporting spans needs the SDK, which is optional.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace

if TYPE_CHECKING:
    from generatable.config import OpenTelemetrySettings

logger = logging.getLogger(__name__)

# The provider installed by init_telemetry, kept so it can be flushed
_tracer_provider: object | None = None


def init_telemetry(settings: OpenTelemetrySettings) -> None:
    """
    Install an SDK tracer provider when tracing is enabled.

    Safe to call more than once; only the first enabled call installs a
    provider. Logs a warning and leaves tracing off when the SDK is not
    installed.

    Args:
        settings: OpenTelemetry configuration settings.
    """
    global _tracer_provider

    if not settings.enabled:
        logger.debug("Telemetry disabled")
        return

    if _tracer_provider is not None:
        logger.debug("Telemetry already initialized")
        return

    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    except ImportError:
        logger.warning(
            "OpenTelemetry SDK not installed. "
            "Install with: pip install generatable[observability]"
        )
        return

    provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))

    if settings.endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        except ImportError:
            logger.warning("OTLP exporter not available, exporting spans to the console")
            provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        else:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.endpoint))
            )
            logger.info(f"OTLP exporter configured: {settings.endpoint}")
    else:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    logger.info(f"Telemetry initialized: service={settings.service_name}")


def get_tracer(name: str) -> trace.Tracer:
    """
    Get a tracer for the given module name.

    The returned tracer follows whatever provider is installed when spans
    are started, so it may be created before init_telemetry() runs.
    """
    return trace.get_tracer(name)


def shutdown_telemetry() -> None:
    """Flush and shut down the installed provider, if any."""
    global _tracer_provider

    shutdown = getattr(_tracer_provider, "shutdown", None)
    if shutdown is not None:
        shutdown()
        logger.debug("Telemetry shutdown complete")
    _tracer_provider = None
