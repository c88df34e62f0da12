"""Non-blocking file lock preventing overlapping cycles."""
import os
import fcntl
import logging
from pathlib import Path

logger = logging.getLogger("tradecycle.lock")


class RunLock:
    """Exclusive ``flock`` on a lock file, held for the duration of one cycle.

    The kernel drops the lock when the process exits, so a crashed cycle
    never leaves a stale lock behind.

    Usage:
        lock = RunLock("data/cycle.lock")
        if not lock.acquire():
            return  # another cycle is running
        try:
            ...
        finally:
            lock.release()
    """

    def __init__(self, path="data/cycle.lock"):
        self.path = Path(path)
        self._fd = None

    @property
    def acquired(self):
        return self._fd is not None

    def acquire(self):
        """Try to take the lock. Returns False if another process holds it."""
        if self._fd is not None:
            return True

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            holder = self._read_holder()
            logger.warning(f"Cycle lock {self.path} held by PID {holder or '?'}")
            return False

        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        self._fd = fd
        logger.debug(f"Cycle lock acquired ({self.path})")
        return True

    def release(self):
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug(f"Cycle lock released ({self.path})")

    def _read_holder(self):
        try:
            return self.path.read_text().strip()
        except OSError:
            return None

    def __enter__(self):
        if not self.acquire():
            raise RuntimeError(f"Cycle lock {self.path} is held by another process")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
