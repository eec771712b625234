# src/synq_exec/domain/outcomes.py
"""
Outcome classification policy.

Turns exit codes and liveness-probe errors into a small set of outcomes.
Nothing in here touches processes or files; callers decide what to do
with the answer.
"""
import errno
import signal
from enum import Enum

# Exit code a child uses to say "I already wrote a structured error to stderr".
REPORTED_EXIT_CODE = 1

# Probe error texts that mean the process is gone, for errors that carry no errno.
_GONE_MARKERS = ("already finished", "no such process")


class ExitOutcome(Enum):
    SUCCESS = "success"
    REPORTED_BY_CHILD = "reported_by_child"
    FAILED = "failed"


class LivenessOutcome(Enum):
    ALIVE = "alive"
    NOT_ALIVE = "not_alive"
    INDETERMINATE = "indeterminate"


def classify_exit(returncode: int) -> ExitOutcome:
    if returncode == 0:
        return ExitOutcome.SUCCESS
    if returncode == REPORTED_EXIT_CODE:
        return ExitOutcome.REPORTED_BY_CHILD
    return ExitOutcome.FAILED


def describe_exit(returncode: int) -> str:
    if returncode >= 0:
        return "exit status %d" % returncode
    try:
        text = signal.strsignal(-returncode)
    except ValueError:
        text = None
    return "signal: %s" % (text.lower() if text else -returncode)


def classify_probe_error(err: OSError) -> LivenessOutcome:
    if isinstance(err, ProcessLookupError) or err.errno == errno.ESRCH:
        return LivenessOutcome.NOT_ALIVE
    if isinstance(err, PermissionError) or err.errno == errno.EPERM:
        # Exists, owned by another user.
        return LivenessOutcome.ALIVE

    text = str(err).lower()
    if any(marker in text for marker in _GONE_MARKERS):
        return LivenessOutcome.NOT_ALIVE
    return LivenessOutcome.INDETERMINATE
