"""
Tracer provider construction for processes that run the CLI.

Library code only depends on the OpenTelemetry API; the SDK provider built
here is what makes the startup spans visible when the sequence is run from
the command line.
"""

from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from ..config.models import TelemetryConfig


def create_tracer_provider(config: TelemetryConfig) -> Optional[trace.TracerProvider]:
    """
    Build a tracer provider for the given configuration.

    Returns:
        A no-op provider when telemetry is disabled, an SDK provider printing
        spans to stdout when console export is enabled, otherwise None so the
        globally configured provider is used.
    """
    if not config.enabled:
        return trace.NoOpTracerProvider()

    if not config.console_export:
        return None

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: config.service_name}))
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider


def shutdown_tracer_provider(provider: Optional[trace.TracerProvider]) -> None:
    """Flush and shut down an SDK provider created by create_tracer_provider."""
    if isinstance(provider, TracerProvider):
        provider.shutdown()
