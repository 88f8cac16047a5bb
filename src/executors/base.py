"""Base executor class and interfaces."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

# Option consumed by the engine to pick an executor; never forwarded
ISOLATION_OPTION = "fork"


class BaseExecutor(ABC):
    """Base class for external task executors.

    An executor launches a Python module in an isolated execution context
    and returns as soon as that context exists. There is no result channel:
    the module only ever sees its positional string arguments.
    """

    @abstractmethod
    def launch(self, path: str, argv: List[str], options: Optional[Dict[str, Any]] = None) -> None:
        """Launch the module at ``path`` with the given argument vector."""
        pass

    @staticmethod
    def passthrough_options(options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Return caller options minus the isolation flag."""
        return {k: v for k, v in (options or {}).items() if k != ISOLATION_OPTION}
