"""
Registration of startup initializers with the container.

Initializers are either discovered in the loaded modules or added explicitly
through a StartupBuilder. Both paths end in the same registrations:

* system initializers and startup tasks are added under their capability
  interface, once per implementation;
* auto-initialize services are bound to their primary service interface and
  tracked for the auto-initialize phase.
"""

import logging
from types import ModuleType
from typing import Any, Iterable, Optional, Type, Union

from .container import IContainer, ServiceLifetime
from .conventions import DEFAULT_INTERFACE_MARKER, AutoInitializeTracker, ConventionResolver
from .discovery import ComponentScanner
from .startup import ApplicationInitializer
from ..core.exceptions import ConfigurationError
from ..core.interfaces.lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer
from ..infrastructure.config.models import StartupConfig
from ..infrastructure.telemetry.instrumentation import StartupInstrumentation

logger = logging.getLogger(__name__)


class StartupBuilder:
    """
    Collects initializer registrations and builds the ApplicationInitializer.

    Example:
        builder = StartupBuilder(container)
        builder.add_system_initializer(DatabaseSchemaInitializer)
        builder.add_auto_initialize(CacheService, ICacheService)
        builder.add_startup_task(WarmupTask)
        initializer = builder.build()
    """

    def __init__(self,
                 container: IContainer,
                 lifetime: Union[ServiceLifetime, str] = ServiceLifetime.SINGLETON,
                 marker: str = DEFAULT_INTERFACE_MARKER) -> None:
        self._container = container
        self._lifetime = ServiceLifetime.parse(lifetime)
        self._tracker = AutoInitializeTracker()
        self._resolver = ConventionResolver(container, self._tracker, self._lifetime, marker)
        self._initializer: Optional[ApplicationInitializer] = None

    @property
    def tracker(self) -> AutoInitializeTracker:
        return self._tracker

    def add_system_initializer(self, implementation: Type[ISystemInitializer]) -> "StartupBuilder":
        """Register a system initializer."""
        self._require(implementation, ISystemInitializer)
        if self._container.try_add_enumerable(ISystemInitializer, implementation, self._lifetime):  # type: ignore[type-abstract]
            logger.debug(f"Registered {implementation.__name__} as a system initializer")
        return self

    def add_auto_initialize(self,
                            implementation: Type[IAutoInitialize],
                            service_type: Optional[Type[Any]] = None) -> "StartupBuilder":
        """
        Register an auto-initialize service.

        Without ``service_type`` the service interface is chosen by naming
        convention. An existing registration for the implementation is reused.

        Raises:
            ConfigurationError: If no service interface can be determined
        """
        self._require(implementation, IAutoInitialize)
        self._resolver.bind(implementation, service_type)
        return self

    def add_startup_task(self, implementation: Type[IStartupTask]) -> "StartupBuilder":
        """Register a startup task."""
        self._require(implementation, IStartupTask)
        if self._container.try_add_enumerable(IStartupTask, implementation, self._lifetime):  # type: ignore[type-abstract]
            logger.debug(f"Registered {implementation.__name__} as a startup task")
        return self

    def scan(self,
             modules: Optional[Iterable[ModuleType]] = None,
             scanner: Optional[ComponentScanner] = None) -> "StartupBuilder":
        """Discover and register every initializer found in ``modules``."""
        scanner = scanner or ComponentScanner()
        if modules is not None:
            modules = list(modules)

        for implementation in scanner.discover(ISystemInitializer, modules):
            self.add_system_initializer(implementation)
        for implementation in scanner.discover(IAutoInitialize, modules):
            self.add_auto_initialize(implementation)
        for implementation in scanner.discover(IStartupTask, modules):
            self.add_startup_task(implementation)

        return self

    def build(self, instrumentation: Optional[StartupInstrumentation] = None) -> ApplicationInitializer:
        """
        Create the ApplicationInitializer and register it with the container.

        Building twice returns the same initializer.
        """
        if self._initializer is not None:
            return self._initializer

        if not self._container.is_registered(IContainer):  # type: ignore[type-abstract]
            self._container.register_instance(IContainer, self._container)  # type: ignore[type-abstract]

        self._initializer = ApplicationInitializer(self._container, self._tracker, instrumentation)
        self._container.register_instance(ApplicationInitializer, self._initializer)
        logger.debug(f"Application initializer built, {len(self._tracker)} service(s) tracked for auto-initialization")
        return self._initializer

    @staticmethod
    def _require(implementation: Any, capability: Type[Any]) -> None:
        if not isinstance(implementation, type) or not issubclass(implementation, capability):
            raise ConfigurationError(
                f"{implementation!r} does not implement {capability.__name__}")


def add_application_initializers(container: IContainer,
                                 modules: Optional[Iterable[ModuleType]] = None,
                                 lifetime: Union[ServiceLifetime, str, None] = None,
                                 config: Optional[StartupConfig] = None,
                                 instrumentation: Optional[StartupInstrumentation] = None) -> ApplicationInitializer:
    """
    Discover all system initializers, auto-initialize services and startup
    tasks and register them with the container.

    Args:
        container: The container to register with
        modules: Modules to scan; defaults to every loaded module
        lifetime: Lifetime of the registered initializers; overrides config
        config: Startup configuration (library name, deny-list, marker)
        instrumentation: Telemetry emitter for the run

    Returns:
        The ApplicationInitializer, also registered in the container

    Raises:
        ConfigurationError: If an auto-initialize service has no properly
            named primary interface
    """
    config = config or StartupConfig()
    scanner = ComponentScanner(config.library_name, config.excluded_prefixes)
    builder = StartupBuilder(
        container,
        lifetime if lifetime is not None else config.service_lifetime,
        config.interface_marker)

    logger.info("Registering application initializers...")
    builder.scan(modules, scanner)
    return builder.build(instrumentation)
