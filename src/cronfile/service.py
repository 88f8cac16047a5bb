"""Crontab service: keeps a cron engine in sync with a crontab file."""

import asyncio
import os
from typing import Any, Dict, List, Optional, Union
import logging

from models import CrontabEntry
from scheduler.engine import CronEngine
from scheduler.errors import CronError
from .locator import FileLocator, PathSpec
from .monitor import ChangeKind, FileChange, FileChangeMonitor
from .reader import parse_crontab_file, validate_crontab_entry

logger = logging.getLogger(__name__)


class CrontabService:
    """Runs the jobs of a crontab file and reloads them when the file changes.

    The crontab file and the task modules it names are looked up with a
    FileLocator built from ``location_paths``. Entries are registered as
    worker-thread jobs, or as separate-process jobs when flagged ``F``.

    Reloads replace the whole job set. If the file cannot be parsed the
    current jobs are kept, and construction fails when it happens on the
    first load. An invalid entry only drops that entry. Deleting the file
    deregisters every job.

    Example:
        service = CrontabService("crontab", location_paths="tasks")
        ...
        service.stop()
    """

    def __init__(self, crontab_path: Union[str, os.PathLike], location_paths: PathSpec = None,
                 delay_start: bool = False, watch: bool = True):
        self.locator = FileLocator(location_paths)
        self.crontab_path = self.locator.resolve(crontab_path)
        self.engine = CronEngine(self.locator, delay_start=True)
        self.monitor: Optional[FileChangeMonitor] = FileChangeMonitor(self.crontab_path) if watch else None
        self._cancel: Optional[asyncio.Event] = None
        self._watcher: Optional[asyncio.Task] = None

        self._replace_jobs(parse_crontab_file(self.crontab_path))
        if not delay_start:
            self.start()

    def reload(self) -> bool:
        """Re-read the crontab file and replace all registered jobs.

        Returns:
            True if the job set was replaced, False if the file could not be parsed
        """
        try:
            entries = parse_crontab_file(self.crontab_path)
        except (OSError, CronError) as e:
            logger.error(f"Failed to load crontab {self.crontab_path}, keeping current jobs: {e}")
            return False
        self._replace_jobs(entries)
        return True

    def _replace_jobs(self, entries: List[CrontabEntry]) -> None:
        valid = []
        for entry in entries:
            try:
                valid.append(validate_crontab_entry(entry, self.locator))
            except CronError as e:
                logger.error(f"Skipping crontab entry: {e}")

        self.engine.deregister_all_jobs()
        for entry in valid:
            try:
                self.engine.register_job(entry.schedule, entry.path, entry.args or None, {"fork": entry.fork})
            except CronError as e:
                e.line_number = entry.line_number
                logger.error(f"Skipping crontab entry: {e}")

        logger.info(f"Loaded {len(self.engine.list_jobs())} of {len(entries)} entries from {self.crontab_path}")

    def handle_change(self, change: FileChange) -> None:
        if change.kind is ChangeKind.DELETE:
            logger.warning(f"Crontab {change.path} deleted, deregistering all jobs")
            self.engine.deregister_all_jobs()
        else:
            logger.info(f"Crontab {change.path} changed ({change.kind.value}), reloading")
            self.reload()

    async def _watch(self, cancel: asyncio.Event) -> None:
        async for change in self.monitor.changes(cancel):
            self.handle_change(change)

    def _on_watch_done(self, task: asyncio.Task) -> None:
        if task is self._watcher:
            self._watcher = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Crontab monitoring stopped", exc_info=task.exception())

    def start(self) -> bool:
        """Start the engine and the file monitor.

        Returns:
            True if the service was stopped and is now running, False if already running
        """
        if self.is_running:
            return False
        self.engine.start()
        if self.monitor is not None and self._watcher is None:
            self._cancel = asyncio.Event()
            self._watcher = asyncio.get_running_loop().create_task(self._watch(self._cancel))
            self._watcher.add_done_callback(self._on_watch_done)
        return True

    def stop(self) -> bool:
        """Stop the engine and the file monitor; launched tasks keep running.

        Returns:
            True if the service was running and is now stopped, False if already stopped
        """
        if self._cancel is not None:
            self._cancel.set()
            self._cancel = None
        self._watcher = None
        return self.engine.stop()

    @property
    def is_running(self) -> bool:
        return self.engine.is_running

    def list_jobs(self) -> List[Dict[str, Any]]:
        return self.engine.list_jobs()
