"""Per-output-directory build lock.

The lock file ``.agent-build.lock`` is left in the output directory after
the build. Removing it on release would let a waiting build lock the old
inode while a new one locks a fresh file, so both would run.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import portalocker

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".agent-build.lock"


class BuildLockError(RuntimeError):
    """Raised when the build lock file cannot be opened."""

    def __init__(self, lock_path: Path, message: str) -> None:
        super().__init__(message)
        self.lock_path = lock_path


class BuildLockTimeout(BuildLockError):
    """Raised when another build holds the output directory for too long."""

    def __init__(self, lock_path: Path, timeout: float) -> None:
        super().__init__(
            lock_path,
            f"Another build is using {lock_path.parent} (waited {timeout:g}s for {lock_path.name})",
        )
        self.timeout = timeout


@contextmanager
def build_lock(output_directory: Path, timeout: float) -> Iterator[Path]:
    """Hold an exclusive advisory lock on ``output_directory`` for the block.

    Builds into the same directory share the compiled-classes tree and the
    weave descriptor, so only one may run at a time.

    Raises:
        BuildLockTimeout: If the lock is not acquired within ``timeout`` seconds
        BuildLockError: If the lock file cannot be opened
    """
    lock_path = Path(output_directory) / LOCK_FILE_NAME
    lock = portalocker.Lock(
        lock_path,
        mode="a",
        timeout=timeout,
        flags=portalocker.LockFlags.EXCLUSIVE | portalocker.LockFlags.NON_BLOCKING,
    )
    try:
        lock.acquire()
    except portalocker.exceptions.LockException as e:
        raise BuildLockTimeout(lock_path, timeout) from e
    except OSError as e:
        raise BuildLockError(lock_path, f"Cannot open build lock {lock_path}: {e}") from e

    logger.debug("Acquired build lock %s", lock_path)
    try:
        yield lock_path
    finally:
        lock.release()
        logger.debug("Released build lock %s", lock_path)
