"""File change monitoring for a single file."""

import asyncio
import hashlib
import os
from enum import Enum
from typing import AsyncIterator, NamedTuple, Optional
import logging

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from scheduler.errors import MonitorError

logger = logging.getLogger(__name__)

# Watchdog event types telling that a directory entry appeared or disappeared
NAME_EVENTS = ("created", "deleted", "moved")


class ChangeKind(str, Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


class FileChange(NamedTuple):
    kind: ChangeKind
    path: str


def file_digest(path: str) -> Optional[str]:
    """MD5 hex digest of a file's content, or None if the file is missing."""
    try:
        with open(path, "rb") as f:
            return hashlib.md5(f.read()).hexdigest()
    except FileNotFoundError:
        return None


class _Forwarder(FileSystemEventHandler):
    """Hands watchdog events from the observer thread to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        self._loop = loop
        self._queue = queue

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)


class FileChangeMonitor:
    """Watches one file through its parent directory.

    The directory must exist; the file need not. Raw notifications are
    turned into create, modify and delete changes. A content notification
    only yields ``modify`` when the file's digest actually changed.

    Example:
        monitor = FileChangeMonitor("/etc/crontick/crontab")
        cancel = asyncio.Event()
        async for change in monitor.changes(cancel):
            print(change.kind, change.path)
    """

    def __init__(self, file_path: str):
        self.file_path = os.path.realpath(file_path)
        self.dir_path = os.path.dirname(self.file_path)
        if not os.path.isdir(self.dir_path):
            raise MonitorError(f"Directory {self.dir_path} does not exist")
        self._dir_stat = os.stat(self.dir_path)
        self._digest = file_digest(self.file_path)

    @property
    def digest(self) -> Optional[str]:
        return self._digest

    def check_directory(self) -> None:
        """Raise MonitorError unless the watched directory is still in place."""
        try:
            current = os.stat(self.dir_path)
        except FileNotFoundError:
            current = None
        if current is None or not os.path.samestat(current, self._dir_stat):
            raise MonitorError(f"Directory {self.dir_path} has been moved or deleted")

    def process_event(self, event: FileSystemEvent) -> Optional[FileChange]:
        """Translate a watchdog event into a change of the watched file.

        Returns:
            The change, or None if the event is irrelevant or a no-op

        Raises:
            MonitorError: if the watched directory was moved or removed
        """
        src_path = os.path.realpath(os.fsdecode(event.src_path))
        if event.is_directory and src_path == self.dir_path and event.event_type in ("deleted", "moved"):
            raise MonitorError(f"Directory {self.dir_path} has been moved or deleted")
        self.check_directory()

        dest_path = getattr(event, "dest_path", "")
        names_file = src_path == self.file_path or (
            bool(dest_path) and os.path.realpath(os.fsdecode(dest_path)) == self.file_path
        )
        if event.is_directory or not names_file:
            return None

        if event.event_type == "modified":
            digest = file_digest(self.file_path)
            if digest is None or digest == self._digest:
                return None
            self._digest = digest
            return FileChange(ChangeKind.MODIFY, self.file_path)

        if event.event_type in NAME_EVENTS:
            self._digest = file_digest(self.file_path)
            if self._digest is not None:
                return FileChange(ChangeKind.CREATE, self.file_path)
            return FileChange(ChangeKind.DELETE, self.file_path)

        return None

    async def changes(self, cancel: asyncio.Event) -> AsyncIterator[FileChange]:
        """Yield changes of the watched file until ``cancel`` is set.

        Raises:
            MonitorError: if the watched directory was moved or removed
        """
        queue: asyncio.Queue = asyncio.Queue()
        handler = _Forwarder(asyncio.get_running_loop(), queue)
        observer = Observer()
        observer.schedule(handler, self.dir_path, recursive=False)
        # Renaming a directory is only reported to a watch on its parent
        parent = os.path.dirname(self.dir_path)
        if parent != self.dir_path:
            observer.schedule(handler, parent, recursive=False)
        observer.daemon = True
        observer.start()
        logger.info(f"Watching {self.file_path}")

        cancelled = asyncio.ensure_future(cancel.wait())
        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait({getter, cancelled}, return_when=asyncio.FIRST_COMPLETED)
                if cancelled in done:
                    getter.cancel()
                    return
                change = self.process_event(getter.result())
                if change is not None:
                    logger.debug(f"File change: {change.kind.value} {change.path}")
                    yield change
        finally:
            cancelled.cancel()
            observer.stop()
            await asyncio.get_running_loop().run_in_executor(None, observer.join)
            logger.info(f"Stopped watching {self.file_path}")
