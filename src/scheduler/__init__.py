"""Cron schedule parsing and job dispatch."""

from .cron_schedule import CronSchedule, ALIASES
from .engine import CronEngine
from .errors import (
    CronError,
    ScheduleSyntaxError,
    ScheduleRangeError,
    TokenizationError,
    PathResolutionError,
    CrontabSyntaxError,
    CrontabEntryError,
    MonitorError
)

__all__ = [
    "CronSchedule",
    "ALIASES",
    "CronEngine",
    "CronError",
    "ScheduleSyntaxError",
    "ScheduleRangeError",
    "TokenizationError",
    "PathResolutionError",
    "CrontabSyntaxError",
    "CrontabEntryError",
    "MonitorError"
]
