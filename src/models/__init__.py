"""Data models for CronTick."""

from .job import Job, Task, TaskKind, Isolation
from .crontab_entry import CrontabEntry, ValidatedEntry, FORK_FLAG

__all__ = [
    "Job",
    "Task",
    "TaskKind",
    "Isolation",
    "CrontabEntry",
    "ValidatedEntry",
    "FORK_FLAG"
]
