"""Executors for external task modules."""

from .base import BaseExecutor, ISOLATION_OPTION
from .worker_executor import WorkerExecutor, run_module
from .process_executor import ProcessExecutor

__all__ = [
    "BaseExecutor",
    "ISOLATION_OPTION",
    "WorkerExecutor",
    "ProcessExecutor",
    "run_module"
]
