"""
Configuration models and data structures.

This module defines the configuration models used by the startup machinery,
providing type safety and validation for configuration values.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
_LOG_BACKENDS = ("loguru", "standard")
_LIFETIMES = ("singleton", "transient", "scoped")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    backend: str = "loguru"
    log_directory: str = "logs"
    max_file_size: str = "10MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False

    def __post_init__(self) -> None:
        self.level = self.level.upper()
        if self.level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.backend not in _LOG_BACKENDS:
            raise ValueError(
                f"Logging backend must be one of {', '.join(_LOG_BACKENDS)}, got {self.backend}")
        if self.backup_count < 0:
            raise ValueError(f"Backup count must not be negative, got {self.backup_count}")


@dataclass
class TelemetryConfig:
    """Tracing configuration."""
    enabled: bool = True
    console_export: bool = False
    service_name: str = "phasekit"


@dataclass
class StartupConfig:
    """Main startup configuration."""

    # Registration settings
    service_lifetime: str = "singleton"
    library_name: str = "phasekit"
    interface_marker: str = "I"
    excluded_prefixes: Optional[List[str]] = None
    scan_modules: List[str] = field(default_factory=list)

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.service_lifetime.lower() not in _LIFETIMES:
            raise ValueError(
                f"Service lifetime must be one of {', '.join(_LIFETIMES)}, got {self.service_lifetime}")
        if not self.library_name:
            raise ValueError("Library name cannot be empty")
        if len(self.interface_marker) > 1:
            raise ValueError(
                f"Interface marker must be a single character, got {self.interface_marker!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StartupConfig':
        """Create configuration from dictionary."""
        return cls(
            service_lifetime=data.get('service_lifetime', 'singleton'),
            library_name=data.get('library_name', 'phasekit'),
            interface_marker=data.get('interface_marker', 'I'),
            excluded_prefixes=data.get('excluded_prefixes'),
            scan_modules=list(data.get('scan_modules') or []),
            logging=LoggingConfig(**data.get('logging', {})),
            telemetry=TelemetryConfig(**data.get('telemetry', {})),
            config_file_path=data.get('config_file_path'),
        )
