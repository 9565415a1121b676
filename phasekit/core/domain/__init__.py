"""
Domain models for the startup phases.
"""

from .phases import InitializationReport, OrchestrationState, Phase, StartupTaskDescriptor

__all__ = [
    "Phase",
    "OrchestrationState",
    "StartupTaskDescriptor",
    "InitializationReport",
]
