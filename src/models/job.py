"""Job and task descriptors owned by the cron engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Union

if TYPE_CHECKING:
    from scheduler.cron_schedule import CronSchedule


class TaskKind(str, Enum):
    INLINE = "inline"  # Callable run on the event loop
    EXTERNAL = "external"  # Python module run in isolation


class Isolation(str, Enum):
    WORKER = "worker"  # Thread in this process
    PROCESS = "process"  # Separate OS process


@dataclass(frozen=True)
class Task:
    """What a job runs: a callable or the path of a module.

    ``isolation`` only applies to external tasks.
    """
    kind: TaskKind
    target: Union[Callable[..., Any], str]
    isolation: Isolation = Isolation.WORKER

    @classmethod
    def inline(cls, func: Callable[..., Any]) -> "Task":
        return cls(TaskKind.INLINE, func)

    @classmethod
    def external(cls, path: str, fork: bool = False) -> "Task":
        return cls(TaskKind.EXTERNAL, path, Isolation.PROCESS if fork else Isolation.WORKER)

    @property
    def is_inline(self) -> bool:
        return self.kind is TaskKind.INLINE


@dataclass
class Job:
    id: int
    schedule: "CronSchedule"
    task: Task
    args: Any = None
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "schedule": str(self.schedule),
            "task": self.task.target,
            "args": self.args,
            "options": dict(self.options)
        }
