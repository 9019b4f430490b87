"""Process and filesystem helpers."""

from .process import (
    ProcessError,
    run,
    run_async,
)

__all__ = [
    "ProcessError",
    "run",
    "run_async",
]
