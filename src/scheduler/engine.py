"""Cron engine: job registry and per-minute dispatch loop."""

import asyncio
import inspect
import json
import math
import os
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Union
import logging

from executors import ISOLATION_OPTION
from models import Job, Task, Isolation
from .cron_schedule import CronSchedule
from .errors import PathResolutionError
from .executor import TaskExecutorManager

logger = logging.getLogger(__name__)

ONE_MINUTE = 60


def next_boundary(now: float) -> int:
    """Epoch seconds of the first exact minute strictly after ``now``."""
    return (math.floor(now) // ONE_MINUTE + 1) * ONE_MINUTE


def following_expiration(previous: int, now: float) -> int:
    """Expiration after ``previous``, skipping to the latest boundary if far behind.

    The next tick is anchored on the previous target rather than on the
    current time. If more than one boundary was missed, only the most
    recent one fires.
    """
    expiration = previous + ONE_MINUTE
    if now >= expiration + ONE_MINUTE:
        expiration = math.floor(now) // ONE_MINUTE * ONE_MINUTE
    return expiration


class CronEngine:
    """Runs registered jobs on every minute their schedule matches.

    Jobs are either inline callables, deferred onto the event loop, or
    Python module paths launched in a worker thread or a separate process
    (``options={"fork": True}``). Launched tasks are never monitored or
    cancelled; deregistering a job or stopping the engine only affects
    future ticks.

    All methods must be called from the event loop's thread. Unless
    ``delay_start`` is set the engine starts on construction, and starting
    requires a running loop. Inline tasks are called as
    ``func(job_id, schedule_text, target_datetime, args)``.

    Example:
        engine = CronEngine(delay_start=True)
        engine.register_job("*/5 * * * *", "/opt/tasks/report.py", ["daily"])
        engine.start()
    """

    def __init__(self, locator=None, delay_start: bool = False):
        self.locator = locator
        self.executors = TaskExecutorManager()
        self._counter = 0
        self._jobs: Dict[int, Job] = {}
        self._timer: Optional[asyncio.Task] = None
        self._inline_tasks: Set[asyncio.Task] = set()
        if not delay_start:
            self.start()

    def register_job(self, schedule: Union[str, CronSchedule, None], task: Union[Callable, str, os.PathLike],
                     args: Any = None, options: Optional[Dict[str, Any]] = None) -> int:
        """Register a recurring job.

        Args:
            schedule: Cron expression or parsed CronSchedule (default: every minute)
            task: Callable, or path of a Python module
            args: Optional data passed to the task after the standard arguments
            options: ``fork`` selects a separate process for modules; other
                keys go verbatim to the executor

        Returns:
            The new job id

        Raises:
            ScheduleSyntaxError: if the expression is invalid
            PathResolutionError: if the module path does not exist
            TypeError: if schedule or task has the wrong type
        """
        if schedule is None or isinstance(schedule, str):
            schedule = CronSchedule(schedule)
        elif not isinstance(schedule, CronSchedule):
            raise TypeError("Schedule must be a string or CronSchedule")

        options = dict(options or {})
        if callable(task):
            descriptor = Task.inline(task)
        elif isinstance(task, (str, os.PathLike)):
            descriptor = Task.external(self._resolve(os.fspath(task)), bool(options.get(ISOLATION_OPTION)))
        else:
            raise TypeError("Task must be a callable or a module path")

        self._counter += 1
        job = Job(self._counter, schedule, descriptor, args, options)
        self._jobs[job.id] = job
        logger.info(f"Registered job {job.id} '{schedule}' -> {self._describe(descriptor)}")
        return job.id

    def _resolve(self, path: str) -> str:
        if self.locator is not None:
            return self.locator.resolve(path)
        if not os.path.isfile(path):
            raise PathResolutionError(path)
        return os.path.abspath(path)

    @staticmethod
    def _describe(task: Task) -> str:
        if task.is_inline:
            return getattr(task.target, "__qualname__", repr(task.target))
        return f"{task.target} ({task.isolation.value})"

    def deregister_job(self, job_id: int) -> bool:
        """Deregister a job; already launched executions keep running.

        Returns:
            True if the job existed, False otherwise
        """
        removed = self._jobs.pop(job_id, None) is not None
        if removed:
            logger.info(f"Deregistered job {job_id}")
        return removed

    def deregister_all_jobs(self) -> None:
        count = len(self._jobs)
        self._jobs.clear()
        logger.info(f"Deregistered all {count} jobs")

    def list_jobs(self) -> List[Dict[str, Any]]:
        """Snapshot of registered jobs ordered by id."""
        return [self._jobs[job_id].to_dict() for job_id in sorted(self._jobs)]

    def get_job(self, job_id: int) -> Optional[Job]:
        return self._jobs.get(job_id)

    def execute_jobs(self, target: datetime) -> None:
        """Dispatch every job whose schedule matches ``target``, in id order."""
        due = [job for job_id, job in sorted(self._jobs.items()) if job.schedule.matches(target)]
        if due:
            logger.debug(f"Tick {target.isoformat()}: dispatching jobs {[job.id for job in due]}")
        for job in due:
            if job.task.is_inline:
                self._dispatch_inline(job, target)
            else:
                self._dispatch_external(job, target)

    def _dispatch_inline(self, job: Job, target: datetime) -> None:
        func = job.task.target
        call_args = (job.id, str(job.schedule), target, job.args)
        try:
            loop = asyncio.get_running_loop()
            if inspect.iscoroutinefunction(func):
                loop.call_soon(self._start_coroutine, loop, func, call_args)
            else:
                loop.call_soon(func, *call_args)
        except Exception as e:
            logger.error(f"Failed to schedule inline task of job {job.id}: {e}")

    def _start_coroutine(self, loop: asyncio.AbstractEventLoop, func, call_args) -> None:
        # The loop only keeps weak references to tasks
        task = loop.create_task(func(*call_args))
        self._inline_tasks.add(task)
        task.add_done_callback(self._inline_tasks.discard)

    def _dispatch_external(self, job: Job, target: datetime) -> None:
        argv = [str(job.id), str(job.schedule), target.isoformat()]
        if job.args is not None:
            argv.append(job.args if isinstance(job.args, str) else json.dumps(job.args))

        if job.task.isolation is Isolation.PROCESS:
            # Process creation failures are not caught here; they end the tick
            # and stop the engine.
            self.executors.launch(Isolation.PROCESS, job.task.target, argv, job.options)
            return
        try:
            self.executors.launch(Isolation.WORKER, job.task.target, argv, job.options)
        except Exception as e:
            logger.error(f"Failed to start worker for job {job.id}: {e}")

    async def _run(self) -> None:
        expiration = next_boundary(time.time())
        while True:
            delay = expiration - time.time()
            if delay > 0:
                await asyncio.sleep(delay)
            self.execute_jobs(datetime.fromtimestamp(expiration).astimezone())
            expiration = following_expiration(expiration, time.time())

    def _on_timer_done(self, task: asyncio.Task) -> None:
        if task is self._timer:
            self._timer = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Cron engine stopped by dispatch failure", exc_info=task.exception())

    def start(self) -> bool:
        """Start the dispatch loop.

        Returns:
            True if the engine was stopped and is now running, False if already running
        """
        if self.is_running:
            return False
        self._timer = asyncio.get_running_loop().create_task(self._run())
        self._timer.add_done_callback(self._on_timer_done)
        logger.info("Cron engine started")
        return True

    def stop(self, delay: Optional[float] = None):
        """Stop the dispatch loop; launched tasks are not affected.

        Args:
            delay: Optional delay in minutes; an awaitable is returned in that case

        Returns:
            True if the engine was running and is now stopped, False if already
            stopped, or an asyncio.Task resolving to that value when delayed
        """
        if delay:
            return asyncio.get_running_loop().create_task(self._stop_later(delay))
        if not self.is_running:
            return False
        timer, self._timer = self._timer, None
        timer.cancel()
        logger.info("Cron engine stopped")
        return True

    async def _stop_later(self, delay: float) -> bool:
        await asyncio.sleep(delay * ONE_MINUTE)
        return self.stop()

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.done()
