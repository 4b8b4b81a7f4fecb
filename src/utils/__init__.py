"""
Utility helpers for the storage engine.
"""

from .logging_setup import setup_logging
from .progress import ProgressReporter, ProgressSnapshot
from .resource_monitor import ResourceMonitor

__all__ = [
    "setup_logging",
    "ResourceMonitor",
    "ProgressReporter",
    "ProgressSnapshot",
]
