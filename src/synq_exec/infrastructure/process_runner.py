# src/synq_exec/infrastructure/process_runner.py
import os
import logging
import subprocess
from http import HTTPStatus
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Mapping, Sequence
from returns.result import Failure, Result, Success, safe

from ..domain.models import DEFAULT_ERROR, ERROR_STATUS, SUCCESS_STATUS, ApiError
from ..domain.outcomes import ExitOutcome, classify_exit, describe_exit

InputWriter = Callable[[BinaryIO], None]


class ProcessRunnerError(Exception):
    pass


class PipeError(ProcessRunnerError):
    pass


class StartError(ProcessRunnerError):
    pass


class InputError(ProcessRunnerError):
    pass


class DrainError(ProcessRunnerError):
    pass


class WaitError(ProcessRunnerError):
    pass


class ExitStatusError(ProcessRunnerError):
    def __init__(self, returncode: int) -> None:
        super().__init__(describe_exit(returncode))
        self.returncode = returncode


class RunnerNotInvokedError(RuntimeError):
    pass


class RunnerReusedError(RuntimeError):
    pass


def _translate(kind: type[ProcessRunnerError]) -> Callable[[Exception], ProcessRunnerError]:
    def _(exc: Exception) -> ProcessRunnerError:
        error = kind(str(exc))
        error.__cause__ = exc
        return error
    return _


@dataclass(frozen=True)
class _Pipes:
    stdin: BinaryIO
    stdout: BinaryIO
    stderr: BinaryIO
    child_stdin: int
    child_stdout: int
    child_stderr: int
    child_ends: ExitStack


@dataclass(frozen=True)
class _Child:
    pipes: _Pipes
    process: "subprocess.Popen[bytes]"


@dataclass
class _Capture:
    stdout: bytes = b""
    stderr: bytes = b""
    returncode: int | None = None
    outcome: Result[None, ProcessRunnerError] | None = None
    invoked: bool = False


@dataclass(frozen=True)
class ProcessRunner:
    """
    Runs one external command to completion.

    The caller streams input through a callback, then reads the outcome
    through status_code() / response_body(). One runner is one process
    lifetime; build a new runner for every invocation.
    """

    command: str
    args: Sequence[str] = ()
    env: Mapping[str, str] | None = None
    error_template: ApiError = DEFAULT_ERROR
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _capture: _Capture = field(default_factory=_Capture, init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        env = dict(os.environ) if self.env is None else dict(self.env)
        object.__setattr__(self, "env", env)

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]

    # -------------------- Invocation --------------------

    def invoke(self, write_input: InputWriter | None = None) -> Result[None, ProcessRunnerError]:
        """
        Open pipes, start the child, feed it, drain it and wait for it.

        The first failing step short-circuits the rest. Every handle opened
        along the way is closed on exit, whichever step failed.
        Exceptions raised by write_input propagate unchanged.
        """
        if self._capture.invoked:
            raise RunnerReusedError("ProcessRunner for %r was already invoked" % self.command)
        self._capture.invoked = True

        self.logger.info("Running %s", " ".join(self.argv))
        with ExitStack() as stack:
            outcome: Result[None, ProcessRunnerError] = (
                self._acquire_pipes(stack).alt(_translate(PipeError))
                .bind(lambda pipes: self._start(pipes, stack).alt(_translate(StartError)))
                .bind(lambda child: self._feed(child, write_input))
                .bind(lambda child: self._drain(child).alt(_translate(DrainError)))
                .bind(lambda child: self._wait(child).alt(_translate(WaitError)))
                .bind(self._check_exit)
            )

        self._capture.outcome = outcome
        outcome.alt(lambda err: self.logger.warning("%s failed: %s", self.command, err))
        return outcome

    @safe((OSError,))
    def _acquire_pipes(self, stack: ExitStack) -> _Pipes:
        # Child-side ends are closed as soon as the child holds them.
        child_ends = stack.enter_context(ExitStack())

        child_stdin, stdin_w = os.pipe()
        child_ends.callback(os.close, child_stdin)
        stdin = stack.enter_context(os.fdopen(stdin_w, "wb"))

        stdout_r, child_stdout = os.pipe()
        child_ends.callback(os.close, child_stdout)
        stdout = stack.enter_context(os.fdopen(stdout_r, "rb"))

        stderr_r, child_stderr = os.pipe()
        child_ends.callback(os.close, child_stderr)
        stderr = stack.enter_context(os.fdopen(stderr_r, "rb"))

        return _Pipes(
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            child_stdin=child_stdin,
            child_stdout=child_stdout,
            child_stderr=child_stderr,
            child_ends=child_ends,
        )

    @safe((OSError, ValueError))
    def _start(self, pipes: _Pipes, stack: ExitStack) -> _Child:
        try:
            process = subprocess.Popen(
                self.argv,
                stdin=pipes.child_stdin,
                stdout=pipes.child_stdout,
                stderr=pipes.child_stderr,
                env=self.env,
            )
        finally:
            pipes.child_ends.close()

        stack.callback(self._reap, process)
        return _Child(pipes=pipes, process=process)

    def _feed(self, child: _Child, write_input: InputWriter | None) -> Result[_Child, ProcessRunnerError]:
        if write_input is not None:
            write_input(child.pipes.stdin)
        return self._close_input(child).alt(_translate(InputError))

    @safe((OSError, ValueError))
    def _close_input(self, child: _Child) -> _Child:
        child.pipes.stdin.close()
        return child

    @safe((OSError, ValueError))
    def _drain(self, child: _Child) -> _Child:
        # stdout first, then stderr, both to EOF before waiting.
        self._capture.stdout = child.pipes.stdout.read()
        self._capture.stderr = child.pipes.stderr.read()
        return child

    @safe((OSError,))
    def _wait(self, child: _Child) -> int:
        return child.process.wait()

    def _check_exit(self, returncode: int) -> Result[None, ProcessRunnerError]:
        self._capture.returncode = returncode
        if classify_exit(returncode) is ExitOutcome.SUCCESS:
            return Success(None)
        return Failure(ExitStatusError(returncode))

    def _reap(self, process: "subprocess.Popen[bytes]") -> None:
        if process.poll() is not None:
            return
        self.logger.warning("Killing unfinished child %d (%s)", process.pid, self.command)
        process.kill()
        process.wait()

    # -------------------- Outcome --------------------

    def _require_outcome(self) -> Result[None, ProcessRunnerError]:
        if self._capture.outcome is None:
            raise RunnerNotInvokedError("ProcessRunner for %r has no completed run" % self.command)
        return self._capture.outcome

    @property
    def stdout(self) -> bytes:
        return self._capture.stdout

    @property
    def stderr(self) -> bytes:
        return self._capture.stderr

    @property
    def returncode(self) -> int | None:
        return self._capture.returncode

    @property
    def error(self) -> ProcessRunnerError | None:
        match self._require_outcome():
            case Failure(err):
                return err
            case _:
                return None

    def error_msg(self) -> str:
        err = self.error
        return "" if err is None else str(err)

    def status_code(self) -> HTTPStatus:
        """Two-valued on purpose: OK or BAD_REQUEST, never the exit code."""
        return SUCCESS_STATUS if self.error is None else ERROR_STATUS

    def response_body(self) -> bytes:
        if self.error is None:
            return self.stdout
        return self.build_error_payload()

    def build_error_payload(self) -> bytes:
        match self._require_outcome():
            case Failure(ExitStatusError() as err) if (
                classify_exit(err.returncode) is ExitOutcome.REPORTED_BY_CHILD
            ):
                # The child wrote its own structured error to stderr.
                return self.error_template.with_details(self.stderr).to_json()

            case Failure(err):
                self.logger.error("stdout: %s", self.stdout.decode(errors="replace"))
                self.logger.error("stderr: %s", self.stderr.decode(errors="replace"))
                return self.error_template.with_message(str(err)).to_json()

            case _:
                return self.error_template.to_json()
