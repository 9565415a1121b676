"""
Exception hierarchy for application startup.

Every error raised by the startup machinery derives from StartupError and
carries an ErrorCode so hosting processes can classify fatal startup failures.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """Startup error codes."""
    UNKNOWN_ERROR = 20000
    CONFIGURATION_ERROR = 20001
    ALREADY_INITIALIZED = 20002
    PHASE_EXECUTION_FAILED = 20003


class StartupError(Exception):
    """Base class for startup errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(StartupError):
    """Raised while registering initializers, before any phase executes."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message, details)


class AlreadyInitializedError(StartupError):
    """Raised when the initialization sequence is invoked a second time."""

    def __init__(self, message: str = "Application startup has already been initialized.",
                 details: Any = None):
        super().__init__(ErrorCode.ALREADY_INITIALIZED, message, details)


class PhaseExecutionError(StartupError):
    """
    Raised when an initializer fails during a startup phase.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self,
                 phase: Any,
                 type_name: str,
                 cause: BaseException,
                 order: Optional[int] = None):
        self.phase = phase
        self.type_name = type_name
        self.order = order
        self.cause = cause

        location = f"{phase.category} initializer {type_name}"
        if order is not None:
            location += f" (order {order})"
        super().__init__(
            ErrorCode.PHASE_EXECUTION_FAILED,
            f"Error running {location}: {cause}",
            {"phase": phase.category, "type": type_name, "order": order},
        )
