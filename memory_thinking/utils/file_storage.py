"""
Locked, atomic whole-file persistence shared by the graph and chain stores.
"""

import contextlib
import fcntl
import os
import threading
from pathlib import Path
from typing import Iterator, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Custom exception for storage errors."""
    pass


class LockedFile:
    """A data file guarded by a thread lock and an exclusive `flock` on a sibling lock file.

    Every read-modify-write of the data file must happen inside `locked()`.
    Writes go to a temporary file in the same directory and are moved over the
    target with `os.replace`, so readers never observe a half-written file.
    """

    def __init__(self, path: Path):
        """
        Initialize the guarded file.

        Args:
            path: Absolute path of the data file
        """
        self.path = path
        self.lock_path = path.with_name(path.name + '.lock')
        self._thread_lock = threading.Lock()

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the in-process and cross-process locks for the duration of the block.

        Raises:
            StorageError: If the lock file cannot be created or locked
        """
        with self._thread_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                lock_file = open(self.lock_path, 'a+')
            except OSError as e:
                raise StorageError(f'Failed to open lock file {self.lock_path}: {e}')

            with lock_file:
                try:
                    fcntl.flock(lock_file, fcntl.LOCK_EX)
                except OSError as e:
                    raise StorageError(f'Failed to lock {self.lock_path}: {e}')
                try:
                    yield
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)

    def read_text(self) -> Optional[str]:
        """Read the data file.

        Returns:
            File contents, or None when the file does not exist

        Raises:
            StorageError: If the file exists but cannot be read
        """
        try:
            return self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f'Failed to read {self.path}: {e}')

    def write_text(self, text: str) -> None:
        """Atomically replace the data file with `text`.

        Raises:
            StorageError: If the file cannot be written
        """
        tmp_path = self.path.with_name(f'.{self.path.name}.{os.getpid()}.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding='utf-8')
            os.replace(tmp_path, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise StorageError(f'Failed to write {self.path}: {e}')
        logger.debug(f'Wrote {len(text)} characters to {self.path}')
