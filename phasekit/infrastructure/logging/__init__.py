"""
Logging infrastructure.

This module provides centralized logging configuration for processes that
run the initialization sequence.
"""

from .setup import LoguruHandler, setup_logging

__all__ = [
    "setup_logging",
    "LoguruHandler",
]
