"""Scoped staging workspace for assembling the jar contents."""

import logging
import tempfile
from pathlib import Path
from types import TracebackType

from tools.filesystem_tool import TreeDeleter

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "agent-jar"
METADATA_DIR = "META-INF"


class StagingWorkspace:
    """A uniquely named temporary directory owned by exactly one build.

    Used as a context manager: the directory is deleted when the block
    exits, whether it finished normally or raised. A failed deletion is
    logged and reported through ``removed`` so it never masks the error
    that ended the block.
    """

    def __init__(self, parent: Path, deleter: TreeDeleter | None = None) -> None:
        self.parent = Path(parent)
        self.deleter = deleter or TreeDeleter()
        self.path: Path | None = None
        self.removed = False

    def create(self) -> Path:
        """Create the workspace directory under ``parent``."""
        if self.path is None:
            self.path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self.parent))
            logger.info("Created staging workspace %s", self.path)
        return self.path

    @property
    def metadata_dir(self) -> Path:
        return self._require_path() / METADATA_DIR

    def remove(self) -> bool:
        """Delete the workspace and everything in it.

        Returns:
            True if the workspace no longer exists
        """
        if self.path is None or self.removed:
            return True
        try:
            self.deleter.delete(self.path)
        except OSError:
            logger.exception("Failed to delete staging workspace %s", self.path)
            return False
        self.removed = True
        logger.info("Deleted staging workspace %s", self.path)
        return True

    def _require_path(self) -> Path:
        if self.path is None:
            raise RuntimeError("Staging workspace has not been created")
        return self.path

    def __enter__(self) -> "StagingWorkspace":
        self.create()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.remove()
