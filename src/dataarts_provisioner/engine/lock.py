"""Advisory lock on ``<state>.lock``.

Locking never waits: a second run against the same state fails at once
with ``StateLockError`` naming the pid that holds the lock.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import IO, TYPE_CHECKING

from dataarts_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from types import TracebackType

if sys.platform == "win32":  # pragma: no cover
    import msvcrt

    def _try_lock(f: IO[str]) -> None:
        msvcrt.locking(f.fileno(), msvcrt.LK_NBLCK, 1)

    def _unlock(f: IO[str]) -> None:
        msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _try_lock(f: IO[str]) -> None:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

    def _unlock(f: IO[str]) -> None:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


logger = logging.getLogger(__name__)


class StateLock:
    def __init__(self, state_path: Path) -> None:
        self.path = Path(f"{state_path}.lock")
        self._file: IO[str] | None = None

    def __enter__(self) -> StateLock:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        f = self.path.open("a+", encoding="utf-8")
        try:
            _try_lock(f)
        except OSError as e:
            f.seek(0)
            holder = f.read().strip() or "unknown"
            f.close()
            raise StateLockError(f"State is locked by pid {holder} ({self.path})") from e

        f.seek(0)
        f.truncate()
        f.write(str(os.getpid()))
        f.flush()
        self._file = f
        logger.debug("Locked %s", self.path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        f, self._file = self._file, None
        if f is None:
            return
        try:
            f.truncate(0)
            _unlock(f)
        finally:
            f.close()
