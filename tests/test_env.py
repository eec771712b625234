import os

import pytest

from synq_exec.infrastructure.env import Env

KEYS = ("SYNQ_TEST_CONFIG", "SYNQ_TEST_NAME")


@pytest.fixture
def dotenv_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text("SYNQ_TEST_CONFIG=/etc/synq/exec.yaml\nSYNQ_TEST_NAME=transcoder\n")
    for key in KEYS:
        os.environ.pop(key, None)
    yield path
    for key in KEYS:
        os.environ.pop(key, None)


def test_load_reads_dotenv_into_snapshot(dotenv_file):
    env = Env().load(dotenv_file).unwrap()

    assert env.get_str("SYNQ_TEST_NAME") == "transcoder"
    assert str(env.get_path("SYNQ_TEST_CONFIG")) == "/etc/synq/exec.yaml"
    assert env.process_env()["SYNQ_TEST_NAME"] == "transcoder"


def test_missing_dotenv_still_loads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("SYNQ_TEST_NAME", "from-shell")
    monkeypatch.setenv("SYNQ_TEST_EMPTY", "")

    env = Env().load(tmp_path / "absent.env").unwrap()

    assert env.get_str("SYNQ_TEST_NAME") == "from-shell"
    assert env.get_str("SYNQ_TEST_EMPTY") is None
    assert env.get_path("SYNQ_TEST_UNSET") is None
