"""
Dependency injection container for managing service lifecycles and dependencies.

This module provides a lightweight dependency injection container that supports
singleton and transient service lifetimes, multiple registrations per service
type, keyed registrations, add-if-absent registration and automatic
constructor injection.
"""

import inspect
import logging
import types
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Any, Callable, Dict, Hashable, List, Optional, Type, TypeVar, Union, get_type_hints

logger = logging.getLogger(__name__)

T = TypeVar('T')

_NO_INSTANCE = object()

# PEP 604 unions (``T | None``)
_UNION_TYPES: tuple = (types.UnionType,) if hasattr(types, 'UnionType') else ()


class ServiceLifetime(Enum):
    """Service lifetime management options."""
    SINGLETON = auto()  # Single instance shared across application
    TRANSIENT = auto()  # New instance created each time
    SCOPED = auto()     # Single instance per scope; the root scope is the only scope

    @classmethod
    def parse(cls, value: Union[str, "ServiceLifetime"]) -> "ServiceLifetime":
        """Parse a lifetime from its case-insensitive name."""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown service lifetime: {value}") from None


class ServiceRegistration:
    """Registration information for a service."""

    def __init__(self,
                 service_type: Type[Any],
                 implementation: Any,
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
                 key: Optional[Hashable] = None,
                 instance: Any = _NO_INSTANCE):
        self.service_type = service_type
        self.implementation = implementation
        self.lifetime = lifetime
        self.key = key
        self.instance: Any = None
        self.has_instance = False

        if instance is not _NO_INSTANCE:
            self.instance = instance
            self.has_instance = True
            self.lifetime = ServiceLifetime.SINGLETON

    @property
    def is_keyed(self) -> bool:
        return self.key is not None

    @property
    def implementation_type(self) -> Optional[Type[Any]]:
        """The implementation class, or None for factories and instances."""
        if self.has_instance or not inspect.isclass(self.implementation):
            return None
        return self.implementation  # type: ignore[no-any-return]

    @property
    def caches_instance(self) -> bool:
        return self.lifetime in (ServiceLifetime.SINGLETON, ServiceLifetime.SCOPED)

    def __repr__(self) -> str:
        target = getattr(self.implementation, '__name__', repr(self.implementation))
        keyed = f", key={self.key!r}" if self.is_keyed else ""
        return (f"ServiceRegistration({self.service_type.__name__} -> {target}, "
                f"{self.lifetime.name}{keyed})")


class IContainer(ABC):
    """Interface for dependency injection containers."""

    @abstractmethod
    def register(self,
                 service_type: Type[T],
                 implementation: Union[Type[T], Callable[[], T]],
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> None:
        """
        Register a service with the container, replacing any previous
        non-keyed registrations for the service type.

        Args:
            service_type: Interface or base type
            implementation: Implementation class or factory function
            lifetime: Service lifetime management
        """
        pass

    @abstractmethod
    def register_instance(self, service_type: Type[T], instance: T) -> None:
        """
        Register a specific instance as a singleton.

        Args:
            service_type: Interface or base type
            instance: Service instance
        """
        pass

    @abstractmethod
    def try_add(self,
                service_type: Type[T],
                implementation: Union[Type[T], Callable[[], T]],
                lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> bool:
        """
        Register a service only if the service type has no registration yet.

        Returns:
            True if the registration was added
        """
        pass

    @abstractmethod
    def try_add_enumerable(self,
                           service_type: Type[T],
                           implementation: Type[T],
                           lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> bool:
        """
        Add a registration unless the same implementation is already
        registered for the service type.

        Returns:
            True if the registration was added
        """
        pass

    @abstractmethod
    def resolve(self, service_type: Type[T]) -> T:
        """
        Resolve a service instance from the most recent registration.

        Args:
            service_type: Type to resolve

        Returns:
            Service instance

        Raises:
            ServiceNotRegisteredException: If service not registered
            ServiceResolutionException: If service cannot be resolved
        """
        pass

    @abstractmethod
    def resolve_all(self, service_type: Type[T]) -> List[T]:
        """
        Resolve every non-keyed registration of a service type.

        Returns:
            Service instances in registration order (empty if none)
        """
        pass

    @abstractmethod
    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        """
        Try to resolve a service instance without raising exceptions.

        Args:
            service_type: Type to resolve

        Returns:
            Service instance or None if not found
        """
        pass

    @abstractmethod
    def is_registered(self, service_type: Type[T]) -> bool:
        """
        Check if a service type is registered.

        Args:
            service_type: Type to check

        Returns:
            True if registered
        """
        pass

    @abstractmethod
    def find_registration(self, implementation: Type[Any]) -> Optional[ServiceRegistration]:
        """
        Find the first non-keyed registration whose implementation class is
        ``implementation``.
        """
        pass


class ServiceNotRegisteredException(Exception):
    """Raised when trying to resolve an unregistered service."""
    pass


class ServiceResolutionException(Exception):
    """Raised when service resolution fails."""
    pass


class CircularDependencyException(Exception):
    """Raised when circular dependencies are detected."""
    pass


class Container(IContainer):
    """
    Lightweight dependency injection container.

    Supports automatic constructor injection, singleton and transient lifetimes,
    multiple registrations per service type and circular dependency detection.
    """

    def __init__(self) -> None:
        self._services: Dict[Type[Any], List[ServiceRegistration]] = {}
        self._resolution_stack: List[Type[Any]] = []

    def register(self,
                 service_type: Type[T],
                 implementation: Union[Type[T], Callable[[], T]],
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> None:
        """Register a service, replacing previous non-keyed registrations."""
        registration = ServiceRegistration(service_type, implementation, lifetime)
        keyed = [r for r in self._services.get(service_type, []) if r.is_keyed]
        self._services[service_type] = keyed + [registration]
        logger.debug(
            f"Registered {service_type.__name__} with {registration.lifetime.name} lifetime")

    def register_instance(self, service_type: Type[T], instance: T) -> None:
        """Register a specific instance as a singleton."""
        registration = ServiceRegistration(
            service_type, type(instance), ServiceLifetime.SINGLETON, instance=instance)
        keyed = [r for r in self._services.get(service_type, []) if r.is_keyed]
        self._services[service_type] = keyed + [registration]
        logger.debug(f"Registered instance for {service_type.__name__}")

    def register_keyed(self,
                       service_type: Type[T],
                       key: Hashable,
                       implementation: Union[Type[T], Callable[[], T]],
                       lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> None:
        """Register a keyed service; keyed services are only resolved by key."""
        if key is None:
            raise ValueError("Keyed registrations require a key")
        registrations = [r for r in self._services.get(service_type, []) if r.key != key]
        registrations.append(ServiceRegistration(service_type, implementation, lifetime, key=key))
        self._services[service_type] = registrations
        logger.debug(f"Registered {service_type.__name__} under key {key!r}")

    def try_add(self,
                service_type: Type[T],
                implementation: Union[Type[T], Callable[[], T]],
                lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> bool:
        """Register a service only if the service type is not registered yet."""
        if self.is_registered(service_type):
            logger.debug(f"{service_type.__name__} already registered, keeping existing registration")
            return False

        self._add(ServiceRegistration(service_type, implementation, lifetime))
        return True

    def try_add_enumerable(self,
                           service_type: Type[T],
                           implementation: Type[T],
                           lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> bool:
        """Add a registration unless this implementation is already registered."""
        for registration in self._registrations(service_type):
            if registration.implementation_type is implementation:
                logger.debug(
                    f"{implementation.__name__} already registered as {service_type.__name__}")
                return False

        self._add(ServiceRegistration(service_type, implementation, lifetime))
        return True

    def resolve(self, service_type: Type[T]) -> T:
        """Resolve a service instance."""
        registrations = self._registrations(service_type)
        if not registrations:
            raise ServiceNotRegisteredException(
                f"Service {service_type.__name__} is not registered")

        return self._resolve_registration(registrations[-1])  # type: ignore[no-any-return]

    def resolve_all(self, service_type: Type[T]) -> List[T]:
        """Resolve every registration of a service type in registration order."""
        return [self._resolve_registration(r) for r in self._registrations(service_type)]

    def resolve_keyed(self, service_type: Type[T], key: Hashable) -> T:
        """Resolve a keyed service instance."""
        for registration in self._services.get(service_type, []):
            if registration.key == key:
                return self._resolve_registration(registration)  # type: ignore[no-any-return]

        raise ServiceNotRegisteredException(
            f"Service {service_type.__name__} is not registered with key {key!r}")

    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        """Try to resolve a service instance without raising exceptions."""
        try:
            return self.resolve(service_type)
        except (ServiceNotRegisteredException, ServiceResolutionException, CircularDependencyException):
            return None

    def is_registered(self, service_type: Type[T]) -> bool:
        """Check if a service type has a non-keyed registration."""
        return bool(self._registrations(service_type))

    def find_registration(self, implementation: Type[Any]) -> Optional[ServiceRegistration]:
        """Find the first non-keyed registration for an implementation class."""
        for registrations in self._services.values():
            for registration in registrations:
                if not registration.is_keyed and registration.implementation_type is implementation:
                    return registration
        return None

    def get_registrations(self) -> Dict[Type[Any], List[ServiceRegistration]]:
        """Get all service registrations (for debugging)."""
        return {service_type: list(registrations)
                for service_type, registrations in self._services.items()}

    def _add(self, registration: ServiceRegistration) -> None:
        self._services.setdefault(registration.service_type, []).append(registration)
        logger.debug(f"Added {registration!r}")

    def _registrations(self, service_type: Type[Any]) -> List[ServiceRegistration]:
        return [r for r in self._services.get(service_type, []) if not r.is_keyed]

    def _resolve_registration(self, registration: ServiceRegistration) -> Any:
        """Return the cached instance or build a new one."""
        if registration.has_instance:
            return registration.instance

        service_type = registration.service_type
        if service_type in self._resolution_stack:
            cycle = " -> ".join([t.__name__ for t in self._resolution_stack] +
                                [service_type.__name__])
            raise CircularDependencyException(
                f"Circular dependency detected: {cycle}")

        self._resolution_stack.append(service_type)
        try:
            instance = self._create_instance(registration)

            if registration.caches_instance:
                registration.instance = instance
                registration.has_instance = True

            return instance

        except CircularDependencyException:
            raise

        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve {service_type.__name__}: {str(e)}") from e

        finally:
            self._resolution_stack.pop()

    def _create_instance(self, registration: ServiceRegistration) -> Any:
        """Create an instance from a service registration."""
        implementation = registration.implementation

        # Factory function
        if callable(implementation) and not inspect.isclass(implementation):
            return implementation()

        # Class, resolve constructor dependencies
        if inspect.isclass(implementation):
            if inspect.isabstract(implementation):
                raise ServiceResolutionException(
                    f"Cannot instantiate abstract class {implementation.__name__}")
            return implementation(**self._resolve_constructor_args(implementation))

        raise ServiceResolutionException(
            f"Cannot create instance from {implementation}")

    def _resolve_constructor_args(self, implementation_class: Type[Any]) -> Dict[str, Any]:
        """Resolve constructor arguments from type hints."""
        constructor = implementation_class.__init__
        if constructor is object.__init__:
            return {}

        signature = inspect.signature(constructor)
        try:
            type_hints = get_type_hints(constructor)
        except Exception as e:
            logger.warning(
                f"Failed to analyze dependencies for {implementation_class.__name__}: {e}")
            type_hints = {}

        arguments: Dict[str, Any] = {}
        for param_name, param in signature.parameters.items():
            if param_name == 'self' or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue

            param_type = type_hints.get(param_name)
            has_default = param.default is not inspect.Parameter.empty

            if param_type is None:
                if has_default:
                    continue
                raise ServiceResolutionException(
                    f"Parameter '{param_name}' of {implementation_class.__name__} has no type hint")

            # Optional[T] resolves to None when T is unavailable
            optional_type = self._unwrap_optional(param_type)
            if optional_type is not None:
                dependency = self.try_resolve(optional_type)
                if dependency is None and has_default:
                    continue
                arguments[param_name] = dependency
            elif has_default:
                dependency = self.try_resolve(param_type)
                if dependency is not None:
                    arguments[param_name] = dependency
            else:
                arguments[param_name] = self.resolve(param_type)

        return arguments

    @staticmethod
    def _unwrap_optional(param_type: Any) -> Optional[Type[Any]]:
        """Return T for Optional[T], otherwise None."""
        if getattr(param_type, '__origin__', None) is Union or isinstance(param_type, _UNION_TYPES):
            args = param_type.__args__
            if len(args) == 2 and type(None) in args:
                return next(arg for arg in args if arg is not type(None))  # type: ignore[no-any-return]
        return None
