"""
Discovery of startup capability implementations across loaded components.

A component is a loaded Python module. Discovery walks the loaded modules,
skips framework and vendor modules and modules that never reference this
library, and collects the concrete classes implementing a capability.
"""

import importlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Type

logger = logging.getLogger(__name__)

LIBRARY_NAME = "phasekit"

# Top-level module names; their submodules are excluded with them
DEFAULT_EXCLUDED_PREFIXES: Sequence[str] = (
    "builtins",
    "_pytest",
    "abc",
    "asyncio",
    "collections",
    "concurrent",
    "contextlib",
    "encodings",
    "enum",
    "importlib",
    "inspect",
    "logging",
    "typing",
    "unittest",
    "pytest",
    "pluggy",
    "loguru",
    "opentelemetry",
    "typer",
    "click",
    "rich",
    "yaml",
    "pydantic",
    "setuptools",
    "pkg_resources",
    "pip",
)


class ComponentScanner:
    """
    Finds capability implementations in loaded modules.

    Modules are deduplicated by name (first occurrence wins). A module that
    fails to scan contributes whatever classes could be read before the
    failure; discovery itself never fails because of a single module.
    """

    def __init__(self,
                 library_name: str = LIBRARY_NAME,
                 excluded_prefixes: Optional[Iterable[str]] = None) -> None:
        self._library_name = library_name
        prefixes = DEFAULT_EXCLUDED_PREFIXES if excluded_prefixes is None else excluded_prefixes
        self._excluded_prefixes = tuple(p.lower() for p in prefixes if p)

    @property
    def excluded_prefixes(self) -> Sequence[str]:
        return self._excluded_prefixes

    def discover(self,
                 capability: Type[Any],
                 modules: Optional[Iterable[ModuleType]] = None) -> List[Type[Any]]:
        """
        Return the concrete classes implementing ``capability``.

        Args:
            capability: The capability interface to look for
            modules: Modules to scan; defaults to every loaded module

        Returns:
            Implementation classes in encounter order, without duplicates
        """
        found: List[Type[Any]] = []
        for module in self.iter_components(modules):
            for implementation in self._scan_module(module, capability):
                if implementation not in found:
                    found.append(implementation)

        logger.debug(
            f"Discovered {len(found)} implementation(s) of {capability.__name__}")
        return found

    def iter_components(self, modules: Optional[Iterable[ModuleType]] = None) -> Iterator[ModuleType]:
        """Yield the modules eligible for scanning."""
        if modules is None:
            modules = list(sys.modules.values())

        seen_names = set()
        for module in modules:
            name = getattr(module, '__name__', None)
            if not isinstance(module, ModuleType) or not isinstance(name, str) or not name:
                continue
            if self.is_excluded(name) or not self.references_library(module):
                continue
            if name in seen_names:
                continue
            seen_names.add(name)
            yield module

    def is_excluded(self, module_name: str) -> bool:
        """Check a module name against the deny-list and the library itself."""
        if self._is_library_module(module_name):
            return True
        lowered = module_name.lower()
        return any(lowered == prefix or lowered.startswith(prefix + ".")
                   for prefix in self._excluded_prefixes)

    def references_library(self, module: ModuleType) -> bool:
        """Check whether a module holds a reference to this library."""
        try:
            values = list(vars(module).values())
        except Exception:
            return False

        for value in values:
            try:
                if isinstance(value, ModuleType):
                    owner = value.__name__
                else:
                    owner = getattr(value, '__module__', None)
            except Exception:
                continue
            if isinstance(owner, str) and self._is_library_module(owner):
                return True
        return False

    def _is_library_module(self, module_name: str) -> bool:
        return module_name == self._library_name or module_name.startswith(self._library_name + ".")

    def _scan_module(self, module: ModuleType, capability: Type[Any]) -> List[Type[Any]]:
        """Collect implementations defined in a module, skipping unreadable members."""
        try:
            members = list(vars(module).items())
        except Exception as e:
            logger.debug(f"Skipping component {module.__name__}: {e}")
            return []

        implementations = []
        for attr_name, attr in members:
            try:
                if self._is_implementation(capability, attr, module.__name__):
                    implementations.append(attr)
            except Exception as e:
                logger.debug(f"Skipping {module.__name__}.{attr_name}: {e}")

        return implementations

    @staticmethod
    def _is_implementation(capability: Type[Any], attr: Any, module_name: str) -> bool:
        return (isinstance(attr, type) and
                attr.__module__ == module_name and
                attr is not capability and
                issubclass(attr, capability) and
                not inspect.isabstract(attr))


def discover_implementations(capability: Type[Any],
                             modules: Optional[Iterable[ModuleType]] = None,
                             library_name: str = LIBRARY_NAME,
                             excluded_prefixes: Optional[Iterable[str]] = None) -> List[Type[Any]]:
    """Discover implementations of a capability with a one-off scanner."""
    scanner = ComponentScanner(library_name, excluded_prefixes)
    return scanner.discover(capability, modules)


def import_components(targets: Iterable[str]) -> List[ModuleType]:
    """
    Import component modules by dotted name or ``.py`` file path.

    Import errors propagate: a component that was explicitly requested and
    cannot be loaded is a configuration problem.
    """
    modules = []
    for target in targets:
        if target.endswith(".py"):
            modules.append(_load_module_from_file(target))
        else:
            modules.append(importlib.import_module(target))
        logger.debug(f"Imported component: {target}")
    return modules


def _load_module_from_file(file_path: str) -> ModuleType:
    """Load a component module from a file."""
    path = Path(file_path)
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if not spec or not spec.loader:
        raise ImportError(f"Cannot load component from {file_path}")

    loaded = sys.modules.get(spec.name)
    if loaded is not None:
        loaded_file = getattr(loaded, "__file__", None)
        if loaded_file and Path(loaded_file).resolve() == path.resolve():
            return loaded
        raise ImportError(
            f"Cannot load component from {file_path}: module name {spec.name!r} is already in use")

    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[spec.name]
        raise

    return module
