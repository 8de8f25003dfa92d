"""Engine factory and mocked connection."""

from .database import create_harness_engine, dispose_engines, get_engine
from .recorder import SQLRecorder

__all__ = [
    "SQLRecorder",
    "create_harness_engine",
    "dispose_engines",
    "get_engine",
]
