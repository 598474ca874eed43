"""Filesystem operations used while staging an agent jar."""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Callable

from .base import BaseTool, ToolResult, ToolStatus

logger = logging.getLogger(__name__)


class FileCopier:
    """Copy the full byte content of one file over another."""

    def copy(self, source: Path | str, destination: Path | str) -> Path:
        """Copy ``source`` into ``destination``.

        The destination is created empty first if it does not exist. On
        failure it may be left partially written; nothing is rolled back.

        Returns:
            The destination path
        """
        source = Path(source)
        destination = Path(destination)
        if not destination.exists():
            destination.touch()

        with open(source, "rb") as src, open(destination, "wb") as dst:
            shutil.copyfileobj(src, dst)

        logger.debug("Copied %s -> %s", source, destination)
        return destination


class TreeDeleter:
    """Delete a directory and everything beneath it, children first.

    Symlinks are removed, never followed. An entry whose attributes cannot
    be read is still unlinked, since removing it only needs write access to
    its parent. A directory that cannot be listed is left in place and the
    listing error propagates. Any failure to remove an entry aborts the walk.
    """

    def __init__(self, on_delete: Callable[[Path], None] | None = None) -> None:
        """Initialize tree deleter.

        Args:
            on_delete: Called with each path after it has been removed
        """
        self.on_delete = on_delete

    def delete(self, root: Path | str) -> None:
        self._visit(Path(root))

    def _visit(self, path: Path) -> None:
        try:
            mode = path.lstat().st_mode
        except OSError as e:
            logger.debug("Cannot read attributes of %s (%s); deleting anyway", path, e)
            self._remove_file(path)
            return

        if stat.S_ISDIR(mode):
            self._visit_directory(path)
        else:
            self._remove_file(path)

    def _visit_directory(self, directory: Path) -> None:
        with os.scandir(directory) as entries:
            children = [Path(entry.path) for entry in entries]

        for child in children:
            self._visit(child)

        directory.rmdir()
        self._deleted(directory)

    def _remove_file(self, path: Path) -> None:
        path.unlink()
        self._deleted(path)

    def _deleted(self, path: Path) -> None:
        if self.on_delete is not None:
            self.on_delete(path)


def move_path(source: Path | str, destination: Path | str) -> Path:
    """Move a file or directory with a single rename. Never falls back to copying."""
    source = Path(source)
    destination = Path(destination)
    source.rename(destination)
    logger.debug("Moved %s -> %s", source, destination)
    return destination


class TreeDeleteTool(BaseTool):
    """Tool wrapper over ``TreeDeleter`` for removing whole directories."""

    name = "delete_tree"
    description = "Recursive tree deletion"

    def __init__(self, base_path: Path | str | None = None) -> None:
        """Initialize tree deletion tool.

        Args:
            base_path: Base path for relative paths (default: current directory)
        """
        self.base_path = Path(base_path) if base_path else Path.cwd()

    def execute(self, path: Path | str) -> ToolResult:
        """Delete ``path`` and everything beneath it.

        Returns:
            ToolResult whose ``removed`` metadata counts deleted entries
        """
        root = self._resolve(path)
        if not root.exists():
            return ToolResult(status=ToolStatus.FAILURE, error=f"Path not found: {path}")

        removed: list[Path] = []
        try:
            TreeDeleter(on_delete=removed.append).delete(root)
        except OSError as e:
            return ToolResult(
                status=ToolStatus.FAILURE,
                output=str(root),
                error=str(e),
                metadata={"removed": len(removed)},
            )
        return ToolResult(
            status=ToolStatus.SUCCESS,
            output=str(root),
            metadata={"removed": len(removed)},
        )

    def _resolve(self, path: Path | str) -> Path:
        """Resolve path relative to base_path."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self.base_path / p
