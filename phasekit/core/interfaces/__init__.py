"""
Capability interfaces for the three startup phases.
"""

from .lifecycle import IAutoInitialize, IStartupTask, ISystemInitializer

__all__ = [
    "ISystemInitializer",
    "IAutoInitialize",
    "IStartupTask",
]
