"""
Convention-based binding of auto-initialize services.

An auto-initialize implementation is registered under its primary service
interface: the leaf interface whose name, without the leading marker
character, appears in the implementation name (``IWidgetService`` pairs with
``WidgetService``). An existing registration for the implementation is always
reused instead.
"""

import inspect
import logging
from abc import ABC, ABCMeta
from contextlib import contextmanager
from typing import Any, Generic, Iterator, List, Optional, Protocol, Type

from .container import IContainer, ServiceLifetime
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_INTERFACE_MARKER = "I"

_NON_INTERFACES = (object, ABC, Protocol, Generic)


class AutoInitializeTracker:
    """
    Ordered set of service types waiting for auto-initialization.

    Filled while services are configured and drained exactly once by the
    auto-initialize phase.
    """

    def __init__(self) -> None:
        self._service_types: List[Type[Any]] = []

    def track(self, service_type: Type[Any]) -> None:
        """Track a service type; tracking the same type twice is a no-op."""
        if service_type not in self._service_types:
            self._service_types.append(service_type)
            logger.debug(f"Tracking {service_type.__name__} for auto-initialization")

    def snapshot(self) -> List[Type[Any]]:
        return list(self._service_types)

    def clear(self) -> None:
        self._service_types.clear()

    @contextmanager
    def drain(self) -> Iterator[List[Type[Any]]]:
        """Yield the tracked service types and clear them on every exit path."""
        try:
            yield self.snapshot()
        finally:
            self.clear()

    def __len__(self) -> int:
        return len(self._service_types)

    def __iter__(self) -> Iterator[Type[Any]]:
        return iter(self.snapshot())

    def __contains__(self, service_type: object) -> bool:
        return service_type in self._service_types


def is_interface(candidate: Any) -> bool:
    """An interface is an abstract ABC or a Protocol class."""
    if not isinstance(candidate, ABCMeta) or candidate in _NON_INTERFACES:
        return False
    return inspect.isabstract(candidate) or bool(getattr(candidate, '_is_protocol', False))


def get_interfaces(implementation: Type[Any]) -> List[Type[Any]]:
    """All interfaces an implementation declares, directly or inherited, in MRO order."""
    return [base for base in implementation.__mro__[1:] if is_interface(base)]


def get_leaf_interfaces(implementation: Type[Any]) -> List[Type[Any]]:
    """
    Interfaces of ``implementation`` not reachable through another of its
    interfaces, in MRO order.
    """
    interfaces = get_interfaces(implementation)
    implied = set()
    for interface in interfaces:
        implied.update(interface.__mro__[1:])
    return [interface for interface in interfaces if interface not in implied]


class ConventionResolver:
    """
    Binds auto-initialize implementations to their service interface and
    tracks the bound service types for the auto-initialize phase.
    """

    def __init__(self,
                 container: IContainer,
                 tracker: AutoInitializeTracker,
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
                 marker: str = DEFAULT_INTERFACE_MARKER) -> None:
        self._container = container
        self._tracker = tracker
        self._lifetime = lifetime
        self._marker = marker

    def select_service_interface(self, implementation: Type[Any]) -> Type[Any]:
        """
        Pick the primary service interface for an implementation.

        Raises:
            ConfigurationError: If no leaf interface matches the naming convention
        """
        leaves = get_leaf_interfaces(implementation)
        logger.debug(
            f"Leaf interfaces for {implementation.__name__}: "
            f"{', '.join(i.__name__ for i in leaves) or '<none>'}")

        for interface in leaves:
            stem = self._strip_marker(interface.__name__)
            if stem and stem in implementation.__name__:
                logger.debug(
                    f"{interface.__name__} chosen as the service interface for {implementation.__name__}")
                return interface

        raise ConfigurationError(
            f"Cannot register {implementation.__name__} without a properly named primary interface.",
            {"implementation": implementation.__qualname__,
             "leaf_interfaces": [i.__name__ for i in leaves]})

    def bind(self, implementation: Type[Any], service_type: Optional[Type[Any]] = None) -> Type[Any]:
        """
        Register an auto-initialize implementation and track its service type.

        Args:
            implementation: The auto-initialize implementation class
            service_type: Explicit service interface; skips the naming convention

        Returns:
            The service type tracked for auto-initialization
        """
        existing = self._container.find_registration(implementation)
        if existing is not None:
            logger.debug(
                f"Found existing registration ({existing.service_type.__name__}) "
                f"for {implementation.__name__}, reusing it")
            self._tracker.track(existing.service_type)
            return existing.service_type

        if service_type is None:
            service_type = self.select_service_interface(implementation)
        elif not issubclass(implementation, service_type):
            raise ConfigurationError(
                f"{implementation.__name__} does not implement {service_type.__name__}")

        self._container.try_add(service_type, implementation, self._lifetime)
        self._tracker.track(service_type)
        return service_type

    def _strip_marker(self, name: str) -> str:
        if self._marker and name.startswith(self._marker):
            return name[len(self._marker):]
        return name
