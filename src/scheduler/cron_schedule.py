"""Cron expression parsing and matching."""

import re
from datetime import date, datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Sequence, Union
import logging

from .errors import ScheduleRangeError, ScheduleSyntaxError

logger = logging.getLogger(__name__)

DEFAULT_EXPRESSION = "* * * * *"

ALIASES = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

MINUTE, HOUR, DAY_OF_MONTH, MONTH, DAY_OF_WEEK = range(5)

FIELD_NAMES = ("minute", "hour", "day-of-month", "month", "day-of-week")

# Valid values as written in an expression (months are one-based here)
FIELD_DOMAINS = {
    MINUTE: (0, 59),
    HOUR: (0, 23),
    DAY_OF_MONTH: (1, 31),
    MONTH: (1, 12),
    DAY_OF_WEEK: (0, 7),
}

MONTH_NAMES = ("jan", "feb", "mar", "apr", "may", "jun",
               "jul", "aug", "sep", "oct", "nov", "dec")
DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

MAX_REVERSE_DAY = 9

_NUMERIC_TERM = re.compile(r"^(\d+)(?:-(\d+))?$")
_NAMED_TERM = re.compile(r"^([a-z]{3})(?:-([a-z]{3}))?$", re.IGNORECASE)
_REVERSE_TERM = re.compile(r"^_(\d+)$")
_STEP = re.compile(r"^\d+$")

Timestamp = Union[datetime, int, float]


def _local(when: Timestamp) -> datetime:
    """Return a naive local datetime for a datetime or epoch timestamp."""
    if isinstance(when, datetime):
        if when.tzinfo is not None:
            return when.astimezone().replace(tzinfo=None)
        return when
    if isinstance(when, (int, float)):
        return datetime.fromtimestamp(when)
    raise TypeError(f"Expected datetime or epoch timestamp, got {type(when).__name__}")


class CronSchedule:
    """Parsed representation of a GNU crontab schedule expression.

    Each of the five fields is materialized into a frozen set of integers.
    Months are stored zero-based; ``values`` exposes them one-based again.
    The day-of-month field also accepts ``_1`` .. ``_9``, meaning the N-th
    day counted from the end of the month; those offsets are kept apart
    as strictly negative integers.

    Example:
        schedule = CronSchedule("*/15 8-17 * * mon-fri")
        schedule.matches(datetime(2025, 6, 19, 8, 30))  # True
    """

    def __init__(self, expression: Optional[str] = None):
        if expression is None or expression == "":
            expression = DEFAULT_EXPRESSION
        if not isinstance(expression, str):
            raise TypeError("Cron expression must be a string")

        text = " ".join(expression.split())
        self._alias: Optional[str] = None
        if self.is_alias(text):
            if text not in ALIASES:
                raise ScheduleSyntaxError(f"Invalid alias: {text}", token=text)
            self._alias = text
            text = ALIASES[text]
        self._expression = text

        fields = text.split(" ")
        if len(fields) != len(FIELD_NAMES):
            raise ScheduleSyntaxError(
                f"Invalid number of fields: {len(fields)} instead of {len(FIELD_NAMES)}"
            )

        self._reverse_days: FrozenSet[int] = frozenset()
        self._fields: List[FrozenSet[int]] = [
            self._parse_field(index, field_expr) for index, field_expr in enumerate(fields)
        ]
        dow = self._fields[DAY_OF_WEEK]
        self._weekdays = dow | {0} if 7 in dow else dow

    @staticmethod
    def is_alias(expression: Union[str, Sequence[str]]) -> bool:
        """Check whether an expression (or its token list) is an ``@`` alias."""
        if not expression:
            return False
        if isinstance(expression, str):
            return expression.startswith("@")
        return len(expression) == 1 and expression[0].startswith("@")

    def _parse_field(self, index: int, field_expr: str) -> FrozenSet[int]:
        name = FIELD_NAMES[index]
        parts = field_expr.split("/")
        if len(parts) > 2:
            raise ScheduleSyntaxError(
                f"Illegal {name} field expression: \"{field_expr}\"", field=name, token=field_expr
            )
        values_expr = parts[0]

        step = 1
        if len(parts) == 2:
            step_expr = parts[1]
            if not _STEP.match(step_expr):
                raise ScheduleSyntaxError(
                    f"Illegal step expression in {name} field: \"{step_expr}\"",
                    field=name, token=step_expr
                )
            step = int(step_expr)
            if step == 0:
                raise ScheduleRangeError(
                    f"Step must be positive in {name} field: \"{step_expr}\"",
                    field=name, token=step_expr
                )

        if values_expr == "*":
            low, high = FIELD_DOMAINS[index]
            if index == MONTH:
                low, high = low - 1, high - 1
            return frozenset(range(low, high + 1, step))

        values = set()
        reverse = set()
        for term in values_expr.split(","):
            if index == DAY_OF_MONTH:
                match = _REVERSE_TERM.match(term)
                if match:
                    offset = int(match.group(1))
                    if not 1 <= offset <= MAX_REVERSE_DAY:
                        raise ScheduleRangeError(
                            f"Illegal value in {name} field: \"{term}\"", field=name, token=term
                        )
                    reverse.add(-offset)
                    continue
            first, last = self._parse_term(index, term)
            values.update(range(first, last + 1, step))

        if reverse:
            self._reverse_days = frozenset(reverse)
        if index == MONTH:
            values = {month - 1 for month in values}
        return frozenset(values)

    def _parse_term(self, index: int, term: str):
        """Resolve a value or range term to its inclusive bounds."""
        name = FIELD_NAMES[index]
        match = _NUMERIC_TERM.match(term)
        if match:
            first = int(match.group(1))
            last = int(match.group(2)) if match.group(2) is not None else first
        else:
            match = _NAMED_TERM.match(term)
            names = {MONTH: MONTH_NAMES, DAY_OF_WEEK: DAY_NAMES}.get(index)
            if not match or names is None:
                kind = "range values" if "-" in term else "value"
                raise ScheduleSyntaxError(
                    f"Invalid {kind} in {name} field: \"{term}\"", field=name, token=term
                )
            first_name = match.group(1).lower()
            last_name = (match.group(2) or match.group(1)).lower()
            if first_name not in names or last_name not in names:
                raise ScheduleSyntaxError(
                    f"Invalid name in {name} field: \"{term}\"", field=name, token=term
                )
            offset = 1 if index == MONTH else 0
            first = names.index(first_name) + offset
            last = names.index(last_name) + offset
            # "sun" closing a range stands for 7
            if index == DAY_OF_WEEK and match.group(2) and last == 0:
                last = 7

        low, high = FIELD_DOMAINS[index]
        if not (low <= first <= high and low <= last <= high):
            raise ScheduleRangeError(
                f"Illegal value in {name} field: \"{term}\"", field=name, token=term
            )
        if match.group(2) is not None and last <= first:
            raise ScheduleSyntaxError(
                f"Invalid range expression in {name} field: \"{term}\"", field=name, token=term
            )
        return first, last

    @property
    def expression(self) -> str:
        """The trimmed five-field expression (aliases expanded)."""
        return self._expression

    @property
    def alias(self) -> Optional[str]:
        return self._alias

    @property
    def values(self) -> Dict[str, List[int]]:
        """Sorted field values keyed by field name, months one-based."""
        data = {}
        for index, name in enumerate(FIELD_NAMES):
            values = self._fields[index]
            if index == MONTH:
                values = {month + 1 for month in values}
            data[name] = sorted(values)
        data["reverse-day-of-month"] = sorted(self._reverse_days)
        return data

    def matches(self, when: Timestamp) -> bool:
        """Check whether a timestamp is an exact minute boundary matching this schedule.

        Args:
            when: datetime (naive values are taken as local time) or epoch seconds

        Returns:
            True if every field matches and seconds/microseconds are zero
        """
        moment = _local(when)
        if moment.second or moment.microsecond:
            return False
        if moment.minute not in self._fields[MINUTE]:
            return False
        if moment.hour not in self._fields[HOUR]:
            return False
        if moment.month - 1 not in self._fields[MONTH]:
            return False
        if moment.isoweekday() % 7 not in self._weekdays:
            return False
        if moment.day in self._fields[DAY_OF_MONTH]:
            return True
        return self._matches_reverse_day(moment.date())

    def _matches_reverse_day(self, day: date) -> bool:
        for offset in self._reverse_days:
            if (day + timedelta(days=-offset)).day == 1:
                return True
        return False

    def next_match(self, start: Optional[Timestamp] = None,
                   horizon: timedelta = timedelta(days=1830)) -> datetime:
        """Find the first matching minute boundary strictly after ``start``.

        This is a minute-by-minute scan meant for previews and diagnostics.

        Args:
            start: Base time (default: now)
            horizon: Give up after scanning this far ahead

        Returns:
            Matching datetime; aware when ``start`` was aware, naive local otherwise

        Raises:
            ValueError: if nothing matches within the horizon
        """
        if start is None:
            start = datetime.now()
        aware = isinstance(start, datetime) and start.tzinfo is not None
        # Scan epoch minutes so skipped wall times (DST gaps) are never returned
        epoch = start.timestamp() if isinstance(start, datetime) else _local(start).timestamp()
        moment = int(epoch // 60 * 60) + 60
        limit = moment + horizon.total_seconds()
        while not self.matches(moment):
            moment += 60
            if moment > limit:
                raise ValueError(f"No match for '{self}' within {horizon.days} days")
        found = datetime.fromtimestamp(moment)
        return found.astimezone() if aware else found

    def __str__(self) -> str:
        return self._alias or self._expression

    def __repr__(self) -> str:
        return f"CronSchedule({str(self)!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, CronSchedule):
            return NotImplemented
        return self._fields == other._fields and self._reverse_days == other._reverse_days

    def __hash__(self) -> int:
        return hash((tuple(self._fields), self._reverse_days))
