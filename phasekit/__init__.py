"""
phasekit - Ordered, one-time initialization of service components at startup.

Components implement one of three capability interfaces and are executed once,
sequentially, before the application accepts work: system initializers first,
then auto-initialize services, then startup tasks ordered by ``order``. Any
failure aborts startup.
"""

__version__ = "0.1.0"

# Public API exports
from .core.interfaces.lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer
from .core.domain.phases import InitializationReport, OrchestrationState, Phase
from .core.exceptions import (
    AlreadyInitializedError,
    ConfigurationError,
    PhaseExecutionError,
    StartupError,
)
from .application.container import Container, IContainer, ServiceLifetime
from .application.registration import StartupBuilder, add_application_initializers
from .application.startup import ApplicationInitializer, initialize_application

__all__ = [
    "ISystemInitializer",
    "IAutoInitialize",
    "IStartupTask",
    "Phase",
    "OrchestrationState",
    "InitializationReport",
    "StartupError",
    "ConfigurationError",
    "AlreadyInitializedError",
    "PhaseExecutionError",
    "Container",
    "IContainer",
    "ServiceLifetime",
    "StartupBuilder",
    "add_application_initializers",
    "ApplicationInitializer",
    "initialize_application",
]
