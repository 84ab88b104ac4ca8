"""
observability/__init__.py

PURPOSE: Opt-in OpenTelemetry tracing for sessions.
DEPENDENCIES: opentelemetry-api; opentelemetry-sdk and the OTLP exporter
              through the observability extra

ARCHITECTURE NOTES:
Sessions always open spans; whether anything is recorded depends on
init_telemetry():
- Disabled (default): spans go to the API's proxy tracer and vanish
- Enabled, no endpoint: spans are printed to the console
- Enabled with an endpoint: spans are exported over OTLP
"""

from generatable.observability.telemetry import get_tracer, init_telemetry, shutdown_telemetry

__all__ = ["get_tracer", "init_telemetry", "shutdown_telemetry"]
