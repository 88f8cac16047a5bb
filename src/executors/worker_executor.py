"""Same-process worker executor."""

import runpy
import threading
from typing import Any, Dict, List, Optional
import logging
from .base import BaseExecutor

logger = logging.getLogger(__name__)


def run_module(path: str, argv: List[str]) -> None:
    """Execute a module as ``__main__`` with ``__argv__`` set to its arguments."""
    runpy.run_path(path, init_globals={"__argv__": list(argv)}, run_name="__main__")


class WorkerExecutor(BaseExecutor):
    """Executor running task modules in a new thread of this process.

    The module gets a fresh global namespace; the argument vector is
    published as the ``__argv__`` global since ``sys.argv`` is shared by
    every thread. Options are passed verbatim to ``threading.Thread``
    (e.g. ``name``, ``daemon``).
    """

    def launch(self, path: str, argv: List[str], options: Optional[Dict[str, Any]] = None) -> None:
        kwargs = self.passthrough_options(options)
        kwargs.setdefault("name", f"cron-worker-{argv[0] if argv else path}")
        kwargs.setdefault("daemon", True)

        worker = threading.Thread(target=run_module, args=(path, list(argv)), **kwargs)
        worker.start()
        logger.debug(f"Started worker thread {worker.name} for {path}")
