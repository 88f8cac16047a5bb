"""Crontab files: tokenizing, reading, file lookup and change monitoring."""

from .tokenizer import parse_command_line
from .locator import FileLocator
from .reader import parse_crontab_line, parse_crontab_file, validate_crontab_entry, validate_crontab_file
from .monitor import ChangeKind, FileChange, FileChangeMonitor
from .service import CrontabService

__all__ = [
    "parse_command_line",
    "FileLocator",
    "parse_crontab_line",
    "parse_crontab_file",
    "validate_crontab_entry",
    "validate_crontab_file",
    "ChangeKind",
    "FileChange",
    "FileChangeMonitor",
    "CrontabService"
]
