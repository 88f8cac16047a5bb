"""Separate-process executor."""

import subprocess
from typing import Any, Dict, List, Optional, Set
import logging
from .base import BaseExecutor
from config import settings

logger = logging.getLogger(__name__)


class ProcessExecutor(BaseExecutor):
    """Executor running task modules in a new Python interpreter process.

    The module receives its arguments on the command line (``sys.argv[1:]``).
    Options are passed verbatim to ``subprocess.Popen`` (e.g. ``cwd``,
    ``env``, ``start_new_session``).
    """

    def __init__(self, python_executable: Optional[str] = None):
        self.python_executable = python_executable or settings.python_executable
        self._children: Set[subprocess.Popen] = set()

    def launch(self, path: str, argv: List[str], options: Optional[Dict[str, Any]] = None) -> None:
        self._reap()
        process = subprocess.Popen(
            [self.python_executable, path, *argv],
            **self.passthrough_options(options)
        )
        self._children.add(process)
        logger.debug(f"Started process {process.pid} for {path}")

    def _reap(self) -> None:
        """Collect exit statuses of finished children."""
        self._children = {p for p in self._children if p.poll() is None}
