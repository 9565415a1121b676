"""
Tracing, metrics and log records emitted around an initialization run.

Spans and the duration histogram are produced through the OpenTelemetry API
under the library name, so they are exported only when the host process has
configured an SDK provider. Log records go through the standard logging module
with structured ``extra`` fields.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import metrics, trace
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from ...core.domain.phases import Phase

LIBRARY_NAME = "phasekit"

RUN_SPAN_NAME = "initialize_application"
DURATION_METRIC_NAME = "phasekit.initializers.duration"

INITIALIZERS_DURATION_TAG = "initializers.duration_ms"
INITIALIZER_TYPE_TAG = "initializer.type"
INITIALIZER_ORDER_TAG = "initializer.order"
INITIALIZER_CATEGORY_TAG = "initializer.category"

PHASE_EVENT_NAMES: Dict[Phase, str] = {
    Phase.SYSTEM: "SystemInitializers",
    Phase.AUTO: "AutoInitializeServices",
    Phase.STARTUP: "StartupTasks",
}

_PHASE_MESSAGES: Dict[Phase, str] = {
    Phase.SYSTEM: "Running all system initializers",
    Phase.AUTO: "Initializing all auto-initializing services",
    Phase.STARTUP: "Executing all startup tasks",
}

_INSTANCE_MESSAGES: Dict[Phase, str] = {
    Phase.SYSTEM: "Running system initializer: {name}",
    Phase.AUTO: "Initializing service: {name}",
    Phase.STARTUP: "Executing startup task: {name} (order: {order})",
}

_INSTANCE_FAILED_MESSAGES: Dict[Phase, str] = {
    Phase.SYSTEM: "Error running system initializer: {name}",
    Phase.AUTO: "Error initializing service: {name}",
    Phase.STARTUP: "Error executing startup task: {name} (order: {order})",
}


def qualified_name(implementation: type) -> str:
    """Fully qualified class name used as the ``initializer.type`` tag."""
    return f"{implementation.__module__}.{implementation.__qualname__}"


class StartupInstrumentation:
    """
    Emits the spans, events, metrics and log records of an initialization run.

    One top-level span covers the run; each executed initializer gets a child
    span. Phase boundaries are recorded as events on the run span.
    """

    def __init__(self,
                 tracer_provider: Optional[trace.TracerProvider] = None,
                 meter_provider: Optional[metrics.MeterProvider] = None,
                 logger: Optional[logging.Logger] = None) -> None:
        self._tracer = trace.get_tracer(LIBRARY_NAME, tracer_provider=tracer_provider)
        self._meter = metrics.get_meter(LIBRARY_NAME, meter_provider=meter_provider)
        self._duration = self._meter.create_histogram(
            DURATION_METRIC_NAME,
            unit="ms",
            description="Duration of the application initialization sequence")
        self._logger = logger or logging.getLogger(__name__)

    @contextmanager
    def run_span(self) -> Iterator[Span]:
        """Span covering the whole initialization run."""
        with self._tracer.start_as_current_span(
                RUN_SPAN_NAME,
                record_exception=False,
                set_status_on_exception=False) as span:
            yield span

    def run_starting(self) -> None:
        self._logger.debug("Starting application initialization sequence")

    def run_completed(self, span: Span, duration_ms: float) -> None:
        span.set_attribute(INITIALIZERS_DURATION_TAG, f"{duration_ms:.2f}")
        self._duration.record(duration_ms, {"outcome": "completed"})
        self._logger.debug(
            f"Application initialization completed successfully in {duration_ms:.2f}ms",
            extra={"duration_ms": duration_ms})

    def run_failed(self, span: Span, duration_ms: float, error: BaseException) -> None:
        span.set_attribute(INITIALIZERS_DURATION_TAG, f"{duration_ms:.2f}")
        span.set_status(Status(StatusCode.ERROR, str(error)))
        self._duration.record(duration_ms, {"outcome": "failed"})
        self._logger.error(
            "Application initialization failed",
            exc_info=error,
            extra={"duration_ms": duration_ms})

    @contextmanager
    def phase(self, phase: Phase) -> Iterator[None]:
        """Record the start and completion of a phase on the current span."""
        event_name = PHASE_EVENT_NAMES[phase]
        current = trace.get_current_span()
        current.add_event(f"{event_name}.Started")
        try:
            self._logger.debug(_PHASE_MESSAGES[phase], extra={"initializer_category": phase.category})
            yield
        finally:
            current.add_event(f"{event_name}.Completed")

    @contextmanager
    def instance(self, phase: Phase, implementation: type, order: Optional[int] = None) -> Iterator[Span]:
        """
        Child span and log records around a single initializer.

        Failures are logged and marked on the span, then re-raised.
        """
        name = implementation.__name__
        extra = self._instance_extra(phase, name, order)
        self._logger.debug(_INSTANCE_MESSAGES[phase].format(name=name, order=order), extra=extra)

        attributes: Dict[str, Any] = {
            INITIALIZER_TYPE_TAG: qualified_name(implementation),
            INITIALIZER_CATEGORY_TAG: phase.category,
        }
        if order is not None:
            attributes[INITIALIZER_ORDER_TAG] = order

        with self._tracer.start_as_current_span(
                name,
                kind=SpanKind.INTERNAL,
                attributes=attributes,
                record_exception=True,
                set_status_on_exception=False) as span:
            try:
                yield span
            except Exception as e:
                self._logger.error(
                    _INSTANCE_FAILED_MESSAGES[phase].format(name=name, order=order),
                    exc_info=e,
                    extra=extra)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

    @staticmethod
    def _instance_extra(phase: Phase, name: str, order: Optional[int]) -> Dict[str, Any]:
        extra: Dict[str, Any] = {
            "initializer_name": name,
            "initializer_category": phase.category,
        }
        if order is not None:
            extra["initializer_order"] = order
        return extra
