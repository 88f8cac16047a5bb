"""Crontab file reading and validation."""

import os
import re
from typing import Dict, List, Optional, Union
import logging

from models import CrontabEntry, ValidatedEntry, FORK_FLAG
from scheduler.cron_schedule import CronSchedule
from scheduler.errors import CronError, CrontabEntryError, CrontabSyntaxError, TokenizationError
from .locator import FileLocator
from .tokenizer import parse_command_line

logger = logging.getLogger(__name__)

_LEADING_TOKENS = {n: re.compile(r"^\s*(?:\S+\s+){%d}" % n) for n in (1, 5)}


def parse_crontab_line(line: str, line_number: int) -> CrontabEntry:
    """Split one crontab line into schedule, flag, module path and arguments.

    A line too short to hold a module path is kept with an empty path, so
    validation reports it for that entry alone.

    Raises:
        TokenizationError: if the command part has unbalanced quotes
    """
    fields = line.split()
    schedule_size = 1 if CronSchedule.is_alias(fields[:1]) else 5
    prefix = _LEADING_TOKENS[schedule_size].match(line)
    if len(fields) <= schedule_size or prefix is None:
        return CrontabEntry(line_number, " ".join(fields), None, "", [])
    schedule = " ".join(fields[:schedule_size])

    try:
        tokens = parse_command_line(line[prefix.end():])
    except TokenizationError as err:
        err.line_number = line_number
        raise

    flag = None
    if tokens and len(tokens[0]) == 1 and len(tokens) > 1:
        flag = tokens.pop(0)
    if not tokens:
        return CrontabEntry(line_number, schedule, flag, "", [])
    return CrontabEntry(line_number, schedule, flag, tokens[0], tokens[1:])


def parse_crontab_file(path: Union[str, os.PathLike]) -> List[CrontabEntry]:
    """Read a crontab file into raw entries, skipping blank and comment lines.

    Args:
        path: Crontab file path

    Returns:
        Entries in file order, with 1-based line numbers

    Raises:
        OSError: if the file cannot be read
        TokenizationError: if a line has unbalanced quotes
    """
    entries = []
    with open(path, encoding="utf-8") as crontab:
        for line_number, line in enumerate(crontab, start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            entries.append(parse_crontab_line(line.rstrip("\r\n"), line_number))
    logger.debug(f"Parsed {len(entries)} entries from {path}")
    return entries


def validate_crontab_entry(entry: CrontabEntry, locator: FileLocator) -> ValidatedEntry:
    """Check a raw entry's schedule, flag and module path.

    Raises:
        ScheduleSyntaxError: if the schedule is invalid
        CrontabEntryError: if the flag is not the fork flag
        CrontabSyntaxError: if the line names no module path
        PathResolutionError: if the module cannot be found
    """
    try:
        schedule = CronSchedule(entry.schedule)
        if entry.flag is not None and entry.flag != FORK_FLAG:
            raise CrontabEntryError(f"Invalid flag '{entry.flag}', expected '{FORK_FLAG}'")
        if not entry.path:
            raise CrontabSyntaxError("Missing module path")
        path = locator.resolve(entry.path)
    except CronError as err:
        err.line_number = entry.line_number
        raise
    return ValidatedEntry(entry.line_number, schedule, path, list(entry.args), entry.flag == FORK_FLAG)


def validate_crontab_file(path: Union[str, os.PathLike],
                          locator: Optional[FileLocator] = None) -> Dict[int, Optional[CronError]]:
    """Validate every entry of a crontab file.

    Returns:
        Mapping of line number to the entry's error, or None if it is valid

    Raises:
        OSError, TokenizationError: if the file as a whole cannot be parsed
    """
    locator = locator or FileLocator()
    results: Dict[int, Optional[CronError]] = {}
    for entry in parse_crontab_file(path):
        try:
            validate_crontab_entry(entry, locator)
            results[entry.line_number] = None
        except CronError as err:
            logger.error(f"Invalid crontab entry: {err}")
            results[entry.line_number] = err
    return results
