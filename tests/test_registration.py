"""
Tests for registering discovered and explicitly added initializers.
"""

import types
import pytest
from typing import List

import phasekit
from phasekit.application.container import Container, IContainer, ServiceLifetime
from phasekit.application.discovery import ComponentScanner
from phasekit.application.registration import StartupBuilder, add_application_initializers
from phasekit.application.startup import ApplicationInitializer
from phasekit.core.domain.phases import Phase
from phasekit.core.exceptions import ConfigurationError
from phasekit.core.interfaces.lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer
from phasekit.infrastructure.config.models import StartupConfig


class CatalogSeeder(ISystemInitializer):
    async def run(self, container: IContainer) -> None:
        pass


class IPricingService(IAutoInitialize):
    pass


class PricingService(IPricingService):
    def __init__(self) -> None:
        self.initialize_calls = 0

    async def initialize(self) -> None:
        self.initialize_calls += 1


class ILedger(IAutoInitialize):
    pass


class AccountBook(ILedger):
    async def initialize(self) -> None:
        pass


class IndexWarmup(IStartupTask):
    order = 2

    async def execute(self) -> None:
        pass


def component_module(name: str, *classes: type) -> types.ModuleType:
    """Module defining copies of the given classes, as if written in ``name``."""
    module = types.ModuleType(name)
    module.phasekit = phasekit  # type: ignore[attr-defined]
    for cls in classes:
        copy = type(cls.__name__, (cls,), {"__module__": name})
        setattr(module, cls.__name__, copy)
    return module


@pytest.fixture
def catalog_module() -> types.ModuleType:
    return component_module("catalog.startup", CatalogSeeder, PricingService, IndexWarmup)


class TestAddApplicationInitializers:
    """Discovery-driven registration."""

    def test_registers_every_capability(self, catalog_module: types.ModuleType) -> None:
        container = Container()

        initializer = add_application_initializers(container, [catalog_module])

        system = container.resolve_all(ISystemInitializer)  # type: ignore[type-abstract]
        tasks = container.resolve_all(IStartupTask)  # type: ignore[type-abstract]
        assert [type(s).__name__ for s in system] == ["CatalogSeeder"]
        assert [type(t).__name__ for t in tasks] == ["IndexWarmup"]
        assert isinstance(container.resolve(IPricingService), PricingService)
        assert list(initializer.tracker) == [IPricingService]

    def test_initializer_and_container_are_registered(self, catalog_module: types.ModuleType) -> None:
        container = Container()

        initializer = add_application_initializers(container, [catalog_module])

        assert container.resolve(ApplicationInitializer) is initializer
        assert container.resolve(IContainer) is container

    def test_existing_registration_is_reused(self, catalog_module: types.ModuleType) -> None:
        container = Container()
        pricing = catalog_module.PricingService  # type: ignore[attr-defined]
        container.register(IPricingService, pricing)

        add_application_initializers(container, [catalog_module])

        assert len(container.get_registrations()[IPricingService]) == 1
        assert type(container.resolve(IPricingService)) is pricing

    def test_unconventional_service_fails_before_any_phase(self) -> None:
        module = component_module("ledger.startup", AccountBook)
        container = Container()

        with pytest.raises(ConfigurationError, match="AccountBook"):
            add_application_initializers(container, [module])

        assert not container.is_registered(ApplicationInitializer)

    def test_lifetime_argument_overrides_config(self, catalog_module: types.ModuleType) -> None:
        container = Container()

        add_application_initializers(container, [catalog_module], lifetime="transient")

        assert container.resolve(IPricingService) is not container.resolve(IPricingService)

    def test_config_excluded_prefixes(self, catalog_module: types.ModuleType) -> None:
        container = Container()
        config = StartupConfig(excluded_prefixes=["catalog"])

        initializer = add_application_initializers(container, [catalog_module], config=config)

        assert container.resolve_all(ISystemInitializer) == []  # type: ignore[type-abstract]
        assert len(initializer.tracker) == 0

    @pytest.mark.asyncio
    async def test_discovered_sequence_runs(self, catalog_module: types.ModuleType) -> None:
        container = Container()
        initializer = add_application_initializers(container, [catalog_module])

        report = await initializer.initialize_application()

        assert report.executed[Phase.SYSTEM] == ["CatalogSeeder"]
        assert report.executed[Phase.AUTO] == ["PricingService"]
        assert report.executed[Phase.STARTUP] == ["IndexWarmup"]
        assert container.resolve(IPricingService).initialize_calls == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["pipeline.tasks", "abcorp", "richards_app", "inspection"])
    async def test_modules_sharing_a_framework_prefix_run(self, name: str) -> None:
        module = component_module(name, IndexWarmup)

        report = await add_application_initializers(Container(), [module]).initialize_application()

        assert report.executed[Phase.STARTUP] == ["IndexWarmup"]


class TestStartupBuilder:
    """Explicit registration."""

    def test_duplicate_initializers_registered_once(self) -> None:
        container = Container()
        builder = StartupBuilder(container)

        builder.add_system_initializer(CatalogSeeder).add_system_initializer(CatalogSeeder)
        builder.add_startup_task(IndexWarmup).add_startup_task(IndexWarmup)

        assert len(container.resolve_all(ISystemInitializer)) == 1  # type: ignore[type-abstract]
        assert len(container.resolve_all(IStartupTask)) == 1  # type: ignore[type-abstract]

    def test_explicit_service_type(self) -> None:
        container = Container()
        builder = StartupBuilder(container)

        builder.add_auto_initialize(AccountBook, ILedger)

        assert isinstance(container.resolve(ILedger), AccountBook)
        assert list(builder.tracker) == [ILedger]

    @pytest.mark.parametrize("method,implementation", [
        ("add_system_initializer", IndexWarmup),
        ("add_startup_task", CatalogSeeder),
        ("add_auto_initialize", CatalogSeeder),
        ("add_startup_task", "IndexWarmup"),
    ])
    def test_rejects_wrong_capability(self, method: str, implementation: object) -> None:
        builder = StartupBuilder(Container())

        with pytest.raises(ConfigurationError):
            getattr(builder, method)(implementation)

    def test_build_is_idempotent(self) -> None:
        container = Container()
        builder = StartupBuilder(container)

        assert builder.build() is builder.build()

    def test_build_keeps_existing_container_registration(self) -> None:
        container = Container()
        other = Container()
        container.register_instance(IContainer, other)

        StartupBuilder(container).build()

        assert container.resolve(IContainer) is other

    def test_scan_with_custom_scanner(self, catalog_module: types.ModuleType) -> None:
        container = Container()
        builder = StartupBuilder(container, ServiceLifetime.SINGLETON)

        builder.scan([catalog_module], ComponentScanner(excluded_prefixes=["catalog"]))

        assert len(builder.tracker) == 0

    def test_custom_marker(self) -> None:
        class QLedger(IAutoInitialize):
            pass

        class Ledger(QLedger):
            async def initialize(self) -> None:
                pass

        builder = StartupBuilder(Container(), marker="Q")
        builder.add_auto_initialize(Ledger)

        assert list(builder.tracker) == [QLedger]
