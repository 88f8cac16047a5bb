"""Scheduler and crontab exceptions."""

from typing import Optional


class CronError(Exception):
    """Base exception for all CronTick errors."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.message = message
        self.line_number = line_number
        super().__init__(message)

    def __str__(self) -> str:
        if self.line_number is not None:
            return f"line {self.line_number}: {self.message}"
        return self.message


class ScheduleSyntaxError(CronError, ValueError):
    """Raised when a cron schedule expression cannot be parsed.

    Covers wrong field count, unknown aliases, malformed field grammar
    and invalid ranges.
    """

    def __init__(self, message: str, field: Optional[str] = None,
                 token: Optional[str] = None, line_number: Optional[int] = None):
        self.field = field
        self.token = token
        super().__init__(message, line_number)


class ScheduleRangeError(ScheduleSyntaxError):
    """Raised when a numeric value lies outside its field's domain."""
    pass


class TokenizationError(CronError, ValueError):
    """Raised when a command line has unbalanced quotes or a bad escape."""

    def __init__(self, message: str, quote: Optional[str] = None,
                 position: Optional[int] = None, line_number: Optional[int] = None):
        self.quote = quote
        self.position = position
        super().__init__(message, line_number)


class PathResolutionError(CronError, FileNotFoundError):
    """Raised when a file cannot be found in any search location."""

    def __init__(self, path: str, line_number: Optional[int] = None):
        self.path = path
        super().__init__(f"File not found: {path}", line_number)


class CrontabSyntaxError(CronError, ValueError):
    """Raised when a crontab line is structurally incomplete."""
    pass


class CrontabEntryError(CronError, ValueError):
    """Raised when a crontab entry carries an unsupported flag."""
    pass


class MonitorError(CronError, OSError):
    """Raised when the watched directory is missing, moved or removed."""
    pass
