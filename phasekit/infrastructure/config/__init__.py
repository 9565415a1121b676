"""
Configuration models and loading.
"""

from .loader import ConfigLoader
from .models import LoggingConfig, StartupConfig, TelemetryConfig

__all__ = [
    "ConfigLoader",
    "StartupConfig",
    "LoggingConfig",
    "TelemetryConfig",
]
