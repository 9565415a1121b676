"""
Application layer containing the container, initializer registration and
the initialization sequence.

Registration discovers or explicitly adds initializers; the
ApplicationInitializer then runs them once, phase by phase.
"""

from .container import Container, IContainer, ServiceLifetime
from .conventions import AutoInitializeTracker, ConventionResolver
from .discovery import ComponentScanner, discover_implementations, import_components
from .registration import StartupBuilder, add_application_initializers
from .startup import ApplicationInitializer, initialize_application

__all__ = [
    "Container",
    "IContainer",
    "ServiceLifetime",
    "AutoInitializeTracker",
    "ConventionResolver",
    "ComponentScanner",
    "discover_implementations",
    "import_components",
    "StartupBuilder",
    "add_application_initializers",
    "ApplicationInitializer",
    "initialize_application",
]
