"""Task executor manager for the scheduler."""

from typing import Any, Dict, List, Optional
from executors import BaseExecutor, ProcessExecutor, WorkerExecutor
from models import Isolation
import logging

logger = logging.getLogger(__name__)


class TaskExecutorManager:
    """Maps each isolation strategy to the executor launching it."""

    def __init__(self):
        self.executors: Dict[Isolation, BaseExecutor] = {
            Isolation.WORKER: WorkerExecutor(),
            Isolation.PROCESS: ProcessExecutor()
        }

    def launch(self, isolation: Isolation, path: str, argv: List[str],
               options: Optional[Dict[str, Any]] = None) -> None:
        """Launch a task module with the executor registered for ``isolation``.

        Args:
            isolation: Isolation strategy of the job
            path: Absolute path of the task module
            argv: Positional string arguments
            options: Caller options forwarded to the executor
        """
        executor = self.executors.get(isolation)

        if not executor:
            raise ValueError(f"No executor available for isolation: {isolation}")

        executor.launch(path, argv, options)

    def register_executor(self, isolation: Isolation, executor: BaseExecutor):
        """Register a custom executor for an isolation strategy.

        Args:
            isolation: Isolation strategy to register executor for
            executor: Executor instance
        """
        self.executors[isolation] = executor
        logger.info(f"Registered executor for isolation: {isolation.value}")

    def get_executor(self, isolation: Isolation) -> Optional[BaseExecutor]:
        return self.executors.get(isolation)
