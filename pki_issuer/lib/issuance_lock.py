"""Single-flight lock guarding certificate issuance."""

import fcntl
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pki_issuer.lib.errors import IssuanceLockError

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".issuance.lock"

# One mutex per lock file, shared by every IssuanceLock in this process.
_process_locks: dict[Path, threading.Lock] = {}
_process_locks_guard = threading.Lock()


def _process_lock_for(path: Path) -> threading.Lock:
    with _process_locks_guard:
        lock = _process_locks.get(path)
        if lock is None:
            lock = threading.Lock()
            _process_locks[path] = lock
        return lock


class IssuanceLock:
    """Mutual exclusion for issuance against one PKI root.

    Combines an in-process mutex (threads) with an advisory flock() on a
    lock file inside the PKI root (other processes on the host).
    """

    def __init__(self, pki_root: Path) -> None:
        """Initialize lock for a PKI root.

        Args:
            pki_root: PKI directory shared by the CA tool invocations
        """
        self.path = (pki_root / LOCK_FILE_NAME).absolute()
        self._thread_lock = _process_lock_for(self.path)

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the lock for the duration of the with-block.

        Released on every exit path, including exceptions.

        Raises:
            IssuanceLockError: If the lock file cannot be opened or locked
        """
        with self._thread_lock:
            try:
                fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
            except OSError as e:
                raise IssuanceLockError(f"cannot open lock file {self.path}: {e}") from e

            try:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX)
                except OSError as e:
                    raise IssuanceLockError(f"cannot lock {self.path}: {e}") from e

                logger.debug("Acquired issuance lock %s", self.path)
                try:
                    yield
                finally:
                    fcntl.flock(fd, fcntl.LOCK_UN)
                    logger.debug("Released issuance lock %s", self.path)
            finally:
                os.close(fd)
