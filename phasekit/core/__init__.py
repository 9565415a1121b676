"""
Core module containing the startup capability interfaces, phase models
and error types, independent of the container and infrastructure.
"""

from .interfaces.lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer
from .domain.phases import InitializationReport, OrchestrationState, Phase, StartupTaskDescriptor
from .exceptions import (
    AlreadyInitializedError,
    ConfigurationError,
    ErrorCode,
    PhaseExecutionError,
    StartupError,
)

__all__ = [
    "ISystemInitializer",
    "IAutoInitialize",
    "IStartupTask",
    "Phase",
    "OrchestrationState",
    "StartupTaskDescriptor",
    "InitializationReport",
    "ErrorCode",
    "StartupError",
    "ConfigurationError",
    "AlreadyInitializedError",
    "PhaseExecutionError",
]
