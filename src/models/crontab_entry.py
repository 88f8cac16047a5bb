"""Crontab entries as read from a crontab file."""

from typing import TYPE_CHECKING, List, NamedTuple, Optional

if TYPE_CHECKING:
    from scheduler.cron_schedule import CronSchedule

FORK_FLAG = "F"


class CrontabEntry(NamedTuple):
    """A raw crontab line split into its parts."""
    line_number: int
    schedule: str
    flag: Optional[str]
    path: str
    args: List[str]


class ValidatedEntry(NamedTuple):
    """A crontab entry whose schedule parsed and whose module path resolved."""
    line_number: int
    schedule: "CronSchedule"
    path: str
    args: List[str]
    fork: bool
