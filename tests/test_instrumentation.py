"""
Tests for the spans, metrics and log records of an initialization run.
"""

import asyncio
import logging
import pytest
from typing import Tuple

from opentelemetry import trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from phasekit.application.container import Container, IContainer
from phasekit.application.registration import StartupBuilder
from phasekit.core.exceptions import PhaseExecutionError
from phasekit.core.interfaces.lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer
from phasekit.infrastructure.config.models import TelemetryConfig
from phasekit.infrastructure.telemetry.instrumentation import (
    DURATION_METRIC_NAME,
    INITIALIZER_CATEGORY_TAG,
    INITIALIZER_ORDER_TAG,
    INITIALIZER_TYPE_TAG,
    INITIALIZERS_DURATION_TAG,
    RUN_SPAN_NAME,
    StartupInstrumentation,
    qualified_name,
)
from phasekit.infrastructure.telemetry.provider import create_tracer_provider, shutdown_tracer_provider

INSTRUMENTATION_LOGGER = "phasekit.infrastructure.telemetry.instrumentation"


class MigrationInitializer(ISystemInitializer):
    async def run(self, container: IContainer) -> None:
        pass


class IInventoryService(IAutoInitialize):
    pass


class InventoryService(IInventoryService):
    async def initialize(self) -> None:
        pass


class WarmupTask(IStartupTask):
    order = 4

    async def execute(self) -> None:
        pass


class BrokenWarmupTask(IStartupTask):
    order = 9

    async def execute(self) -> None:
        raise RuntimeError("cache server unreachable")


class AbortedWarmupTask(IStartupTask):
    order = 1

    async def execute(self) -> None:
        raise asyncio.CancelledError()


Telemetry = Tuple[StartupInstrumentation, InMemorySpanExporter, InMemoryMetricReader]


@pytest.fixture
def telemetry() -> Telemetry:
    exporter = InMemorySpanExporter()
    tracer_provider = TracerProvider()
    tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))
    reader = InMemoryMetricReader()
    meter_provider = MeterProvider(metric_readers=[reader])

    instrumentation = StartupInstrumentation(tracer_provider=tracer_provider, meter_provider=meter_provider)
    return instrumentation, exporter, reader


def build_initializer(instrumentation: StartupInstrumentation, *tasks: type):
    builder = StartupBuilder(Container())
    builder.add_system_initializer(MigrationInitializer)
    builder.add_auto_initialize(InventoryService)
    for task in tasks:
        builder.add_startup_task(task)
    return builder.build(instrumentation)


def duration_points(reader: InMemoryMetricReader):
    points = []
    data = reader.get_metrics_data()
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == DURATION_METRIC_NAME:
                    points.extend(metric.data.data_points)
    return points


@pytest.mark.asyncio
class TestRunSpans:
    """Run span, child spans and phase events."""

    async def test_successful_run(self, telemetry: Telemetry) -> None:
        instrumentation, exporter, _ = telemetry
        initializer = build_initializer(instrumentation, WarmupTask)

        await initializer.initialize_application()

        spans = {span.name: span for span in exporter.get_finished_spans()}
        assert set(spans) == {RUN_SPAN_NAME, "MigrationInitializer", "InventoryService", "WarmupTask"}

        run_span = spans[RUN_SPAN_NAME]
        assert [event.name for event in run_span.events] == [
            "SystemInitializers.Started",
            "SystemInitializers.Completed",
            "AutoInitializeServices.Started",
            "AutoInitializeServices.Completed",
            "StartupTasks.Started",
            "StartupTasks.Completed",
        ]
        assert INITIALIZERS_DURATION_TAG in run_span.attributes
        assert run_span.status.status_code is not StatusCode.ERROR

        for name in ("MigrationInitializer", "InventoryService", "WarmupTask"):
            assert spans[name].parent.span_id == run_span.context.span_id

    async def test_child_span_attributes(self, telemetry: Telemetry) -> None:
        instrumentation, exporter, _ = telemetry
        await build_initializer(instrumentation, WarmupTask).initialize_application()

        spans = {span.name: span for span in exporter.get_finished_spans()}

        system = spans["MigrationInitializer"]
        assert system.attributes[INITIALIZER_TYPE_TAG] == qualified_name(MigrationInitializer)
        assert system.attributes[INITIALIZER_CATEGORY_TAG] == "system"
        assert INITIALIZER_ORDER_TAG not in system.attributes

        assert spans["InventoryService"].attributes[INITIALIZER_CATEGORY_TAG] == "auto"

        task = spans["WarmupTask"]
        assert task.attributes[INITIALIZER_CATEGORY_TAG] == "startup"
        assert task.attributes[INITIALIZER_ORDER_TAG] == 4

    async def test_failed_run_marks_spans(self, telemetry: Telemetry) -> None:
        instrumentation, exporter, _ = telemetry
        initializer = build_initializer(instrumentation, BrokenWarmupTask)

        with pytest.raises(PhaseExecutionError):
            await initializer.initialize_application()

        spans = {span.name: span for span in exporter.get_finished_spans()}

        broken = spans["BrokenWarmupTask"]
        assert broken.status.status_code is StatusCode.ERROR
        assert broken.status.description == "cache server unreachable"

        run_span = spans[RUN_SPAN_NAME]
        assert run_span.status.status_code is StatusCode.ERROR
        assert "BrokenWarmupTask" in run_span.status.description
        assert INITIALIZERS_DURATION_TAG in run_span.attributes
        assert run_span.events[-1].name == "StartupTasks.Completed"


@pytest.mark.asyncio
class TestDurationMetric:
    """Histogram of run durations."""

    async def test_completed_run_is_recorded(self, telemetry: Telemetry) -> None:
        instrumentation, _, reader = telemetry
        await build_initializer(instrumentation).initialize_application()

        points = duration_points(reader)

        assert len(points) == 1
        assert points[0].count == 1
        assert points[0].attributes["outcome"] == "completed"

    async def test_failed_run_is_recorded(self, telemetry: Telemetry) -> None:
        instrumentation, _, reader = telemetry

        with pytest.raises(PhaseExecutionError):
            await build_initializer(instrumentation, BrokenWarmupTask).initialize_application()

        points = duration_points(reader)
        assert [point.attributes["outcome"] for point in points] == ["failed"]

    async def test_cancelled_run_is_recorded_as_failed(self, telemetry: Telemetry) -> None:
        instrumentation, exporter, reader = telemetry

        with pytest.raises(asyncio.CancelledError):
            await build_initializer(instrumentation, AbortedWarmupTask).initialize_application()

        spans = {span.name: span for span in exporter.get_finished_spans()}
        assert spans[RUN_SPAN_NAME].status.status_code is StatusCode.ERROR
        assert [point.attributes["outcome"] for point in duration_points(reader)] == ["failed"]


@pytest.mark.asyncio
class TestLogRecords:
    """Structured log records around each initializer."""

    async def test_instance_records_carry_fields(self, telemetry: Telemetry,
                                                 caplog: pytest.LogCaptureFixture) -> None:
        instrumentation, _, _ = telemetry
        caplog.set_level(logging.DEBUG, logger=INSTRUMENTATION_LOGGER)

        await build_initializer(instrumentation, WarmupTask).initialize_application()

        messages = [record.getMessage() for record in caplog.records]
        assert "Starting application initialization sequence" in messages
        assert "Running system initializer: MigrationInitializer" in messages
        assert "Initializing service: InventoryService" in messages
        assert "Executing startup task: WarmupTask (order: 4)" in messages

        task_record = next(r for r in caplog.records if r.getMessage().startswith("Executing startup task"))
        assert task_record.initializer_name == "WarmupTask"
        assert task_record.initializer_category == "startup"
        assert task_record.initializer_order == 4

    async def test_failure_is_logged_at_error(self, telemetry: Telemetry,
                                              caplog: pytest.LogCaptureFixture) -> None:
        instrumentation, _, _ = telemetry
        caplog.set_level(logging.DEBUG, logger=INSTRUMENTATION_LOGGER)

        with pytest.raises(PhaseExecutionError):
            await build_initializer(instrumentation, BrokenWarmupTask).initialize_application()

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert [r.getMessage() for r in errors] == [
            "Error executing startup task: BrokenWarmupTask (order: 9)",
            "Application initialization failed",
        ]
        assert errors[0].exc_info is not None


class TestTracerProvider:
    """Provider construction from telemetry configuration."""

    def test_disabled_returns_noop_provider(self) -> None:
        provider = create_tracer_provider(TelemetryConfig(enabled=False))

        assert isinstance(provider, trace.NoOpTracerProvider)

    def test_default_uses_global_provider(self) -> None:
        assert create_tracer_provider(TelemetryConfig()) is None

    def test_console_export_builds_sdk_provider(self) -> None:
        provider = create_tracer_provider(TelemetryConfig(console_export=True, service_name="orders"))

        assert isinstance(provider, TracerProvider)
        assert provider.resource.attributes["service.name"] == "orders"
        shutdown_tracer_provider(provider)

    def test_shutdown_ignores_non_sdk_providers(self) -> None:
        shutdown_tracer_provider(None)
        shutdown_tracer_provider(trace.NoOpTracerProvider())
