"""
Telemetry for the initialization sequence.
"""

from .instrumentation import LIBRARY_NAME, StartupInstrumentation, qualified_name
from .provider import create_tracer_provider, shutdown_tracer_provider

__all__ = [
    "LIBRARY_NAME",
    "StartupInstrumentation",
    "qualified_name",
    "create_tracer_provider",
    "shutdown_tracer_provider",
]
