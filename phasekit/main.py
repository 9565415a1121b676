"""
Command-line interface for running the initialization sequence.

The ``run`` command imports the given component modules, registers every
initializer found in them and runs the three startup phases. Any startup
failure exits with status 1.
"""

import asyncio
import logging
import sys
from typing import List, Optional

import typer

from .application.container import Container, ServiceLifetime
from .application.conventions import ConventionResolver, AutoInitializeTracker
from .application.discovery import ComponentScanner, import_components
from .application.registration import add_application_initializers
from .core.domain.phases import InitializationReport, Phase
from .core.exceptions import StartupError
from .core.interfaces.lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import StartupConfig
from .infrastructure.logging.setup import setup_logging
from .infrastructure.telemetry.instrumentation import StartupInstrumentation
from .infrastructure.telemetry.provider import create_tracer_provider, shutdown_tracer_provider

cli = typer.Typer(
    name="phasekit",
    help="Ordered, one-time application startup: system initializers, "
         "auto-initialize services, then startup tasks"
)

logger = logging.getLogger(__name__)


def _load_config(config_file: Optional[str], log_level: Optional[str]) -> StartupConfig:
    config = ConfigLoader().load_config(config_file)
    if log_level:
        config.logging.level = log_level.upper()
    return config


@cli.command()
def run(
    modules: List[str] = typer.Option(
        [], "--module", "-m", help="Component module (dotted name or .py path) to load"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
) -> None:
    """Load components and run the initialization sequence."""
    config = _load_config(config_file, log_level)
    setup_logging(config.logging)

    try:
        report = asyncio.run(run_startup(config, modules))
    except (StartupError, ImportError) as e:
        logger.error(f"Application startup failed: {e}")
        typer.echo(f"Application startup failed: {e}", err=True)
        sys.exit(1)

    for phase in Phase:
        names = report.executed[phase]
        typer.echo(f"{phase.category}: {', '.join(names) if names else '-'}")
    typer.echo(f"Initialization completed in {report.duration_ms:.2f}ms")


@cli.command()
def discover(
    modules: List[str] = typer.Option(
        [], "--module", "-m", help="Component module (dotted name or .py path) to load"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
) -> None:
    """List the initializers that would run, without running them."""
    config = _load_config(config_file, None)

    try:
        loaded = import_components(config.scan_modules + list(modules))
    except ImportError as e:
        typer.echo(f"Cannot load component: {e}", err=True)
        sys.exit(1)

    scanner = ComponentScanner(config.library_name, config.excluded_prefixes)
    resolver = ConventionResolver(
        Container(), AutoInitializeTracker(),
        ServiceLifetime.parse(config.service_lifetime), config.interface_marker)

    failed = False
    typer.echo("System initializers:")
    for implementation in scanner.discover(ISystemInitializer, loaded):
        typer.echo(f"  {implementation.__name__}")

    typer.echo("Auto-initialize services:")
    for implementation in scanner.discover(IAutoInitialize, loaded):
        try:
            service_type = resolver.select_service_interface(implementation)
            typer.echo(f"  {implementation.__name__} -> {service_type.__name__}")
        except StartupError as e:
            failed = True
            typer.echo(f"  {implementation.__name__} -> ERROR: {e}")

    typer.echo("Startup tasks:")
    for implementation in scanner.discover(IStartupTask, loaded):
        typer.echo(f"  {implementation.__name__}")

    if failed:
        sys.exit(1)


@cli.command()
def init_config(
    output: str = typer.Option(
        "phasekit.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""
    config = StartupConfig()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except (OSError, ValueError) as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


async def run_startup(config: StartupConfig, modules: List[str]) -> InitializationReport:
    """
    Load components, register their initializers and run all phases.

    Args:
        config: Startup configuration
        modules: Additional component modules to load

    Returns:
        Report of the completed run
    """
    loaded = import_components(config.scan_modules + list(modules))

    tracer_provider = create_tracer_provider(config.telemetry)
    try:
        container = Container()
        initializer = add_application_initializers(
            container,
            loaded,
            config=config,
            instrumentation=StartupInstrumentation(tracer_provider=tracer_provider))
        return await initializer.initialize_application()
    finally:
        shutdown_tracer_provider(tracer_provider)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
