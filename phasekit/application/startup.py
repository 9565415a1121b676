"""
Application initialization sequence.

This module runs the three startup phases in order (system initializers,
auto-initialize services, startup tasks), executing every initializer
sequentially and aborting the whole sequence on the first failure.
"""

import inspect
import logging
import threading
import time
from typing import Any, Awaitable, Callable, List, Optional

from .container import IContainer
from .conventions import AutoInitializeTracker
from ..core.domain.phases import InitializationReport, OrchestrationState, Phase, StartupTaskDescriptor
from ..core.exceptions import AlreadyInitializedError, PhaseExecutionError
from ..core.interfaces.lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer
from ..infrastructure.telemetry.instrumentation import StartupInstrumentation

logger = logging.getLogger(__name__)


async def _invoke(entry_point: Callable[..., Any], *args: Any) -> None:
    """Call an entry point and wait for it when it returns an awaitable."""
    result = entry_point(*args)
    if inspect.isawaitable(result):
        await result


class ApplicationInitializer:
    """
    Runs the application initialization sequence exactly once.

    The initializer owns the run-once guard and the auto-initialize tracker.
    Construct it once per process (``add_application_initializers`` does) and
    await ``initialize_application`` before the application accepts work.
    """

    def __init__(self,
                 container: IContainer,
                 tracker: Optional[AutoInitializeTracker] = None,
                 instrumentation: Optional[StartupInstrumentation] = None) -> None:
        self._container = container
        self._tracker = tracker if tracker is not None else AutoInitializeTracker()
        self._instrumentation = instrumentation or StartupInstrumentation()
        self._state = OrchestrationState.NOT_STARTED
        self._started = False
        self._guard = threading.Lock()

    @property
    def state(self) -> OrchestrationState:
        return self._state

    @property
    def tracker(self) -> AutoInitializeTracker:
        return self._tracker

    @property
    def has_started(self) -> bool:
        return self._started

    async def initialize_application(self) -> InitializationReport:
        """
        Run system initializers, auto-initialize services and startup tasks.

        Returns:
            Report of the executed initializers and the run duration

        Raises:
            AlreadyInitializedError: If the sequence was already started
            PhaseExecutionError: If any initializer fails; nothing after it runs
        """
        self._claim()

        report = InitializationReport()
        instrumentation = self._instrumentation

        with self._tracker.drain() as auto_service_types, instrumentation.run_span() as span:
            instrumentation.run_starting()
            start = time.perf_counter()
            try:
                await self._run_phase(Phase.SYSTEM, report, self._run_system_initializers)
                await self._run_phase(Phase.AUTO, report, self._run_auto_initializers, auto_service_types)
                await self._run_phase(Phase.STARTUP, report, self._run_startup_tasks)

            except BaseException as e:
                report.duration_ms = (time.perf_counter() - start) * 1000
                self._state = OrchestrationState.FAILED
                instrumentation.run_failed(span, report.duration_ms, e)
                raise

            report.duration_ms = (time.perf_counter() - start) * 1000
            self._state = OrchestrationState.COMPLETED
            instrumentation.run_completed(span, report.duration_ms)

        return report

    def _claim(self) -> None:
        """Atomically move from NOT_STARTED to running, or fail."""
        with self._guard:
            if self._started:
                raise AlreadyInitializedError()
            self._started = True
            self._state = OrchestrationState.RUNNING_SYSTEM

    async def _run_phase(self,
                         phase: Phase,
                         report: InitializationReport,
                         runner: Callable[..., Awaitable[None]],
                         *args: Any) -> None:
        self._state = OrchestrationState.running(phase)
        with self._instrumentation.phase(phase):
            await runner(report, *args)

    async def _run_system_initializers(self, report: InitializationReport) -> None:
        for initializer in self._container.resolve_all(ISystemInitializer):  # type: ignore[type-abstract]
            await self._execute(Phase.SYSTEM, initializer, report, initializer.run, self._container)

    async def _run_auto_initializers(self, report: InitializationReport, service_types: List[type]) -> None:
        for service in self._resolve_auto_initialize_services(service_types):
            await self._execute(Phase.AUTO, service, report, service.initialize)

    async def _run_startup_tasks(self, report: InitializationReport) -> None:
        tasks = self._container.resolve_all(IStartupTask)  # type: ignore[type-abstract]
        descriptors = sorted(
            (StartupTaskDescriptor(task, task.order, position) for position, task in enumerate(tasks)),
            key=lambda d: d.sort_key)

        for descriptor in descriptors:
            task = descriptor.instance
            await self._execute(Phase.STARTUP, task, report, task.execute, order=descriptor.order)

    def _resolve_auto_initialize_services(self, service_types: List[type]) -> List[IAutoInitialize]:
        services = []
        for service_type in service_types:
            service = self._container.try_resolve(service_type)
            if isinstance(service, IAutoInitialize):
                services.append(service)
            else:
                logger.debug(f"Skipping {service_type.__name__}: not resolvable as an auto-initialize service")
        return services

    async def _execute(self,
                       phase: Phase,
                       instance: Any,
                       report: InitializationReport,
                       entry_point: Callable[..., Any],
                       *args: Any,
                       order: Optional[int] = None) -> None:
        implementation = type(instance)
        try:
            with self._instrumentation.instance(phase, implementation, order):
                await _invoke(entry_point, *args)
        except Exception as e:
            raise PhaseExecutionError(phase, implementation.__name__, e, order) from e

        report.executed[phase].append(implementation.__name__)


async def initialize_application(container: IContainer) -> InitializationReport:
    """
    Run the initialization sequence of the initializer registered in a container.

    Raises:
        ServiceNotRegisteredException: If ``add_application_initializers`` was
            never called for this container
    """
    initializer = container.resolve(ApplicationInitializer)
    return await initializer.initialize_application()
