"""
Domain models describing the startup phases and the outcome of a run.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from typing import Any, Dict, List


class Phase(IntEnum):
    """Startup phases in execution order."""
    SYSTEM = 1
    AUTO = 2
    STARTUP = 3

    @property
    def category(self) -> str:
        """Category tag used in logs and telemetry."""
        return self.name.lower()


class OrchestrationState(Enum):
    """Lifecycle of a single initialization run."""
    NOT_STARTED = auto()
    RUNNING_SYSTEM = auto()
    RUNNING_AUTO = auto()
    RUNNING_STARTUP = auto()
    COMPLETED = auto()
    FAILED = auto()

    @classmethod
    def running(cls, phase: Phase) -> "OrchestrationState":
        return {
            Phase.SYSTEM: cls.RUNNING_SYSTEM,
            Phase.AUTO: cls.RUNNING_AUTO,
            Phase.STARTUP: cls.RUNNING_STARTUP,
        }[phase]


@dataclass(frozen=True)
class StartupTaskDescriptor:
    """
    A resolved startup task paired with its order.

    ``position`` is the resolution index and breaks ties between equal orders.
    """

    instance: Any
    order: int
    position: int

    @property
    def sort_key(self) -> tuple:
        return (self.order, self.position)


@dataclass
class InitializationReport:
    """Summary of a completed initialization run."""

    executed: Dict[Phase, List[str]] = field(
        default_factory=lambda: {phase: [] for phase in Phase})
    """Implementation type names executed per phase, in execution order."""

    duration_ms: float = 0.0
    """Total elapsed time of the run in milliseconds."""

    @property
    def total_executed(self) -> int:
        return sum(len(names) for names in self.executed.values())
