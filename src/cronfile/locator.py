"""Search-path based file lookup for crontab files and task modules."""

import os
import stat
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union
import logging

from scheduler.errors import PathResolutionError

logger = logging.getLogger(__name__)

PathSpec = Union[str, os.PathLike, Iterable[Union[str, os.PathLike]], None]


def _program_dir() -> Optional[str]:
    main = sys.modules.get("__main__")
    main_file = getattr(main, "__file__", None) or (sys.argv[0] if sys.argv and sys.argv[0] else None)
    if not main_file:
        return None
    return os.path.dirname(os.path.abspath(main_file))


def _is_file(path: str) -> bool:
    """Like os.path.isfile, but only a missing path counts as absent."""
    try:
        return stat.S_ISREG(os.stat(path).st_mode)
    except (FileNotFoundError, NotADirectoryError):
        return False


def _split_paths(paths: PathSpec) -> List[str]:
    """Flatten a path, an OS path list or an iterable of either into entries."""
    if paths is None:
        return []
    if isinstance(paths, (str, os.PathLike)):
        paths = [paths]
    entries = []
    for item in paths:
        entries.extend(p for p in os.fspath(item).split(os.pathsep) if p)
    return entries


class FileLocator:
    """Resolves file names against a deduplicated set of directories.

    Base locations are the current working directory, the directory of the
    running program, the home directory and the interpreter's module search
    path. Every supplemental location, absolute or relative, is resolved
    against each base location; the existing directories found that way
    are added in front of the base locations.

    A locator is immutable: build it once and share it.

    Example:
        locator = FileLocator("tasks", "/opt/cron" + os.pathsep + "jobs")
        locator.resolve("report.py")  # '/home/me/tasks/report.py'
    """

    def __init__(self, *paths: PathSpec):
        bases = [os.getcwd(), _program_dir(), str(Path.home())]
        bases.extend(p for p in sys.path if p)
        base_dirs = self._unique(os.path.abspath(p) for p in bases if p and os.path.isdir(p))

        supplemental = []
        for entry in (e for spec in paths for e in _split_paths(spec)):
            candidates = [entry] if os.path.isabs(entry) else [os.path.join(base, entry) for base in base_dirs]
            found = [os.path.normpath(c) for c in candidates if os.path.isdir(c)]
            if not found:
                logger.warning(f"Search location not found: {entry}")
            supplemental.extend(found)

        self._paths: Tuple[str, ...] = tuple(self._unique([*supplemental, *base_dirs]))

    @staticmethod
    def _unique(paths: Iterable[str]) -> List[str]:
        seen = set()
        unique = []
        for path in paths:
            path = os.path.normpath(path)
            if path not in seen:
                seen.add(path)
                unique.append(path)
        return unique

    @property
    def paths(self) -> Tuple[str, ...]:
        """Directories searched by ``resolve``, in lookup order."""
        return self._paths

    def __contains__(self, path) -> bool:
        return os.path.normpath(os.fspath(path)) in self._paths

    def resolve(self, path: Union[str, os.PathLike]) -> str:
        """Return the absolute path of an existing file.

        Absolute paths are checked as is. A bare file name is treated as
        ``./name``; relative paths are looked up in every search directory.

        Raises:
            PathResolutionError: if the file exists in none of them
            OSError: on any other filesystem failure
        """
        name = os.fspath(path)
        if os.path.isabs(name):
            candidates = [name]
        else:
            if os.path.dirname(name) == "":
                name = os.path.join(os.curdir, name)
            candidates = [os.path.join(base, name) for base in self._paths]

        for candidate in candidates:
            if _is_file(candidate):
                return os.path.normpath(os.path.abspath(candidate))
        raise PathResolutionError(os.fspath(path))
