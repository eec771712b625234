# src/synq_exec/control/instance_guard.py
import os
import logging
from pathlib import Path
from types import TracebackType
from dataclasses import dataclass, field
from returns.pipeline import is_successful
from returns.result import Failure, Result, Success

from ..domain.outcomes import LivenessOutcome, classify_probe_error

# os.kill takes a C int.
MAX_PID = 2**31 - 1


class ProcessLockError(RuntimeError):
    pass


class InstanceConflictError(ProcessLockError):
    def __init__(self, pid: int) -> None:
        super().__init__("Pid '%d' already exists, will not run" % pid)
        self.pid = pid


def probe_liveness(pid: int) -> LivenessOutcome:
    """Signal 0: nothing is delivered, only existence is checked."""
    try:
        os.kill(pid, 0)
    except OSError as e:
        return classify_probe_error(e)
    return LivenessOutcome.ALIVE


@dataclass(frozen=True)
class InstanceGuard:
    """
    PID-file check-and-claim for a single-instance process.

    Best effort only: the file itself is not locked, so two processes
    reclaiming the same stale file at once can both win.
    """

    lock_file: Path
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def claim(self) -> Result[int, InstanceConflictError]:
        own_pid = os.getpid()
        if not self.lock_file.exists():
            return Success(self._write(own_pid))

        recorded = self._read_pid()
        if recorded == own_pid:
            self.logger.info("this is pid %d, ok to proceed", own_pid)
            return Success(own_pid)

        if recorded is None:
            self.logger.warning("Unreadable pid file %s, reclaiming", self.lock_file)
            return Success(self._write(own_pid))

        # INDETERMINATE counts as alive: refuse rather than risk two owners.
        if probe_liveness(recorded) is not LivenessOutcome.NOT_ALIVE:
            return Failure(InstanceConflictError(recorded))

        self.logger.warning("could not find pid %d, allow to process", recorded)
        return Success(self._write(own_pid))

    def release(self) -> None:
        if self.lock_file.exists() and self._read_pid() == os.getpid():
            self.lock_file.unlink()
            self.logger.info("Released %s", self.lock_file)

    def __enter__(self) -> int:
        result = self.claim()
        if not is_successful(result):
            raise result.failure()
        return result.unwrap()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def _read_pid(self) -> int | None:
        try:
            pid = int(self.lock_file.read_text().strip())
        except ValueError:
            return None
        return pid if 0 < pid <= MAX_PID else None

    def _write(self, pid: int) -> int:
        self.lock_file.write_text(str(pid))
        self.logger.info("Acquired %s for pid %d", self.lock_file, pid)
        return pid
