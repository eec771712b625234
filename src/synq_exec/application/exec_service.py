# src/synq_exec/application/exec_service.py
import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, Sequence

from ..domain.models import ExecResponse
from ..infrastructure.process_runner import ProcessRunner

RunnerFactory = Callable[..., ProcessRunner]


@dataclass(frozen=True)
class ExecService:
    runner_factory: RunnerFactory
    logger: logging.Logger

    def run(self, command: str, args: Sequence[str] = (), payload: bytes = b"") -> ExecResponse:
        """
        Run command once with payload on its stdin.

        The response is what an HTTP handler renders as-is: OK with the raw
        output, or BAD_REQUEST with a structured error document.
        """
        runner = self.runner_factory(command=command, args=tuple(args))

        def write_payload(stdin: BinaryIO) -> None:
            if not payload:
                return
            try:
                stdin.write(payload)
            except BrokenPipeError:
                # Child stopped reading; its exit status tells the rest.
                self.logger.warning("%s closed stdin before reading %d bytes", command, len(payload))

        runner.invoke(write_payload)
        response = ExecResponse(status_code=runner.status_code(), body=runner.response_body())
        self.logger.info("%s -> %d (%d bytes)", command, response.status_code, len(response.body))
        return response
