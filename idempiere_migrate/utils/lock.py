"""Single-run guard: only one migration wizard may work on a host at a time."""

import fcntl
import os
from pathlib import Path
from typing import Optional


class RunLock:
    """
    Exclusive, non-blocking lock on ``lock_file`` held for the whole run.

    The holder writes its PID and run log path into the file so a second
    wizard can say which run is in the way.
    """

    def __init__(self, lock_file, log_file: Optional[Path] = None):
        self.lock_file = Path(lock_file)
        self.log_file = log_file
        self._handle = None

    def holder(self) -> str:
        """Description of the current holder as recorded in the lock file."""
        try:
            lines = self.lock_file.read_text().splitlines()
        except OSError:
            return 'unknown'
        if not lines:
            return 'unknown'
        pid = lines[0].strip()
        log = lines[1].strip() if len(lines) > 1 else ''
        return f"pid {pid}, log {log}" if log else f"pid {pid}"

    def __enter__(self):
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            # append mode so a refused attempt leaves the holder's details intact
            self._handle = open(self.lock_file, 'a+')
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            self._release_handle()
            raise RuntimeError(f"Another migration is already running ({self.holder()})")
        except OSError as e:
            self._release_handle()
            raise RuntimeError(f"Cannot acquire lock {self.lock_file}: {e}")

        self._handle.seek(0)
        self._handle.truncate()
        self._handle.write(f"{os.getpid()}\n{self.log_file or ''}\n")
        self._handle.flush()
        return self

    def _release_handle(self):
        if self._handle:
            self._handle.close()
            self._handle = None

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._handle:
            return
        try:
            self.lock_file.unlink()
        except FileNotFoundError:
            pass
        finally:
            self._release_handle()
