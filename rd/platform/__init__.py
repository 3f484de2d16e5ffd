"""Platform abstraction layer."""

from .process import ProcessError, run, spawn, terminate

__all__ = ["ProcessError", "run", "spawn", "terminate"]
