"""
Startup capability interfaces implemented by application components.

Implementations are discovered (or registered explicitly) during service
configuration and executed once, in phase order, when the application is
initialized: system initializers first, then auto-initialize services, then
startup tasks ordered by ``order``.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...application.container import IContainer


class ISystemInitializer(ABC):
    """
    Core system-level initialization that runs before anything else.

    An implementation should be purpose specific and must not implement or
    depend on any other ISystemInitializer, IAutoInitialize or IStartupTask
    service.
    """

    @abstractmethod
    async def run(self, container: "IContainer") -> None:
        """
        Execute the system initialization logic.

        Args:
            container: The root container

        Raises:
            Exception: If initialization fails. Startup is aborted.
        """
        pass


class IAutoInitialize(ABC):
    """
    Service that requires one-time asynchronous initialization before use.

    Implementations are bound by convention: for a service interface named
    ``IMyService`` the implementation name must contain ``MyService``. An
    existing registration for the implementation is reused. Initialization
    happens after all system initializers and before any startup task.

    Example:
        class IMyService(IAutoInitialize):
            ...

        class MyService(IMyService):
            async def initialize(self) -> None:
                await self._dependency.prepare()
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Execute one-time initialization logic for this service."""
        pass


class IStartupTask(ABC):
    """
    Ordered task executed after system and auto initialization.

    Tasks with lower ``order`` values execute first; tasks with equal order
    execute in registration order.
    """

    @property
    @abstractmethod
    def order(self) -> int:
        """Execution order of this task."""
        pass

    @abstractmethod
    async def execute(self) -> None:
        """Execute the startup task logic."""
        pass
