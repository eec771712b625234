import os
import logging
import subprocess
from typing import Iterator

import pytest


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("tests.synq_exec")


@pytest.fixture
def minimal_env() -> dict[str, str]:
    return {"PATH": os.environ.get("PATH", "/usr/bin:/bin")}


@pytest.fixture
def live_pid() -> Iterator[int]:
    proc = subprocess.Popen(["sleep", "30"])
    try:
        yield proc.pid
    finally:
        proc.kill()
        proc.wait()


@pytest.fixture
def dead_pid() -> int:
    proc = subprocess.Popen(["true"])
    proc.wait()
    return proc.pid


@pytest.fixture
def clean_app_logger() -> Iterator[None]:
    yield
    app_logger = logging.getLogger("synq_exec")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
