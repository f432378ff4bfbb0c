"""Directory scanning utilities for import operations."""

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import UiliciousLocalFileError
from ..utils import is_hidden_directory, is_hidden_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFile:
    """Represents a local file found during a walk."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Path relative to the walk root (forward slashes on all platforms)"""

    @property
    def name(self) -> str:
        """Base name of the file."""
        return self.path.name


def _list_directory(directory: Path) -> list[os.DirEntry]:
    with os.scandir(directory) as entries:
        return list(entries)


class DirectoryScanner:
    """Walks a local directory lazily and yields the files to import.

    The walk is iterative: each directory is listed once (off the event
    loop) and its entries are consumed in listing order, descending into a
    subdirectory as soon as it is met. Hidden entries are never yielded and
    hidden directories are not entered.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> async for local_file in scanner.iter_local(Path("tests")):
        ...     print(local_file.relative_path)
    """

    async def iter_local(self, root: Path) -> AsyncIterator[LocalFile]:
        """Yield every non-hidden file below ``root``.

        Direct children are matched without following symbolic links;
        deeper levels accept symbolic links to files but do not enter
        symbolic links to directories.

        Args:
            root: Directory to walk

        Raises:
            UiliciousLocalFileError: If ``root`` cannot be listed
        """
        root = root.resolve()
        try:
            top_entries = await asyncio.to_thread(_list_directory, root)
        except OSError as e:
            raise UiliciousLocalFileError(
                f"An error occurred while reading from folder <{root.name}>: {e}"
            ) from e

        stack: list[Iterator[os.DirEntry]] = [iter(top_entries)]
        while stack:
            entry = next(stack[-1], None)
            if entry is None:
                stack.pop()
                continue

            top_level = len(stack) == 1
            entry_path = Path(entry.path)
            relative_path = entry_path.relative_to(root).as_posix()

            try:
                if entry.is_dir(follow_symlinks=False):
                    if is_hidden_directory(relative_path):
                        logger.debug("Skipping hidden folder: %s", relative_path)
                        continue
                    children = await asyncio.to_thread(_list_directory, entry_path)
                    stack.append(iter(children))
                    continue
                is_file = entry.is_file(follow_symlinks=not top_level)
            except OSError as e:
                raise UiliciousLocalFileError(
                    f"An error occurred while reading from folder "
                    f"<{entry_path.parent.name}>: {e}"
                ) from e

            if not is_file:
                continue
            if is_hidden_path(relative_path):
                logger.debug("Skipping hidden file: %s", relative_path)
                continue
            yield LocalFile(path=entry_path, relative_path=relative_path)

    async def scan_local(self, root: Path) -> list[LocalFile]:
        """Collect the result of :meth:`iter_local` into a list."""
        return [local_file async for local_file in self.iter_local(root)]
