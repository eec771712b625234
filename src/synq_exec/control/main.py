# src/synq_exec/control/main.py
import sys
import argparse
from typing import Any, Sequence
from pathlib import Path
from returns.pipeline import is_successful
from returns.result import Failure, Result, Success

from ..domain.models import ExecResponse
from .dependency_container import Container
from .instance_guard import InstanceConflictError

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_LOCKED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="synq-exec",
        description="Run a command with stdin piped through, print its output "
        "or a structured error document.",
    )
    parser.add_argument("--pid-file", type=Path, help="refuse to run while another live process owns this file")
    parser.add_argument("--config", type=Path, help="YAML config file")
    parser.add_argument("--env-file", type=Path, default=Path(".env"), help="dotenv file (default: .env)")
    parser.add_argument("--log-dir", type=Path, help="directory for synq-exec.log")
    parser.add_argument("command")
    parser.add_argument("args", nargs=argparse.REMAINDER)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config: dict[str, Any] = {
        "dotenv_path": args.env_file,
        "config_path": args.config,
        "pid_file": args.pid_file,
        "log_dir": args.log_dir,
        "console": True,
    }

    payload = sys.stdin.buffer.read() if not sys.stdin.isatty() else b""
    result = run_app(config, args.command, args.args, payload)

    result.alt(lambda err: print("synq-exec: %s" % err, file=sys.stderr))
    if not is_successful(result):
        return EXIT_LOCKED

    response = result.unwrap()
    sys.stdout.buffer.write(response.body)
    sys.stdout.buffer.flush()
    return EXIT_OK if response.ok else EXIT_RUN_FAILED


def run_app(
    config: dict[str, Any],
    command: str,
    args: Sequence[str],
    payload: bytes,
) -> Result[ExecResponse, InstanceConflictError]:
    container = Container()
    container.config.from_dict(config)

    # Settings not given explicitly fall back to the (dotenv-loaded) environment.
    env = container.env()
    if not config.get("config_path"):
        container.config.config_path.from_value(env.get_path("SYNQ_EXEC_CONFIG"))
    if not config.get("pid_file"):
        container.config.pid_file.from_value(env.get_path("SYNQ_EXEC_PID_FILE"))

    pid_file: Path | None = container.pid_file()
    if pid_file is None:
        return Success(container.exec_service().run(command, args, payload))

    guard = container.guard()
    claimed = guard.claim()
    if not is_successful(claimed):
        container.logger().error("%s", claimed.failure())
        return Failure(claimed.failure())

    try:
        return Success(container.exec_service().run(command, args, payload))
    finally:
        guard.release()


if __name__ == "__main__":
    sys.exit(main())
