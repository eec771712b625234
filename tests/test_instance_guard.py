import os
import errno

import pytest
from returns.pipeline import is_successful

from synq_exec.control.instance_guard import InstanceConflictError, InstanceGuard


def test_absent_lock_file_is_claimed(tmp_path, logger):
    lock_file = tmp_path / "worker.pid"
    result = InstanceGuard(lock_file, logger=logger).claim()

    assert result.unwrap() == os.getpid()
    assert lock_file.read_text() == str(os.getpid())


def test_same_process_may_claim_again(tmp_path, logger):
    lock_file = tmp_path / "worker.pid"
    guard = InstanceGuard(lock_file, logger=logger)

    assert guard.claim().unwrap() == os.getpid()
    before = (lock_file.read_text(), lock_file.stat().st_mtime_ns)
    assert guard.claim().unwrap() == os.getpid()

    assert (lock_file.read_text(), lock_file.stat().st_mtime_ns) == before


def test_live_competitor_blocks_claim(tmp_path, logger, live_pid):
    lock_file = tmp_path / "worker.pid"
    lock_file.write_text(str(live_pid))

    result = InstanceGuard(lock_file, logger=logger).claim()

    assert not is_successful(result)
    err = result.failure()
    assert isinstance(err, InstanceConflictError)
    assert err.pid == live_pid
    assert str(err) == "Pid '%d' already exists, will not run" % live_pid
    assert lock_file.read_text() == str(live_pid)


def test_stale_claim_is_reclaimed(tmp_path, logger, dead_pid):
    lock_file = tmp_path / "worker.pid"
    lock_file.write_text(str(dead_pid))

    result = InstanceGuard(lock_file, logger=logger).claim()

    assert result.unwrap() == os.getpid()
    assert lock_file.read_text() == str(os.getpid())


@pytest.mark.parametrize("content", ["", "not-a-pid", "0", "-12", "99999999999"])
def test_unreadable_claim_is_reclaimed(tmp_path, logger, content):
    lock_file = tmp_path / "worker.pid"
    lock_file.write_text(content)

    assert InstanceGuard(lock_file, logger=logger).claim().unwrap() == os.getpid()
    assert lock_file.read_text() == str(os.getpid())


def test_trailing_newline_is_tolerated(tmp_path, logger, live_pid):
    lock_file = tmp_path / "worker.pid"
    lock_file.write_text("%d\n" % live_pid)

    assert InstanceGuard(lock_file, logger=logger).claim().failure().pid == live_pid


def test_unknown_probe_error_fails_closed(tmp_path, logger, monkeypatch):
    lock_file = tmp_path / "worker.pid"
    lock_file.write_text("424242")

    def broken_kill(pid, sig):
        raise OSError(errno.EIO, "Input/output error")

    monkeypatch.setattr(os, "kill", broken_kill)
    result = InstanceGuard(lock_file, logger=logger).claim()

    assert result.failure().pid == 424242
    assert lock_file.read_text() == "424242"


def test_finished_message_without_errno_means_not_alive(tmp_path, logger, monkeypatch):
    lock_file = tmp_path / "worker.pid"
    lock_file.write_text("424242")

    def finished(pid, sig):
        raise OSError("os: process already finished")

    monkeypatch.setattr(os, "kill", finished)

    assert InstanceGuard(lock_file, logger=logger).claim().unwrap() == os.getpid()


def test_release_only_removes_own_claim(tmp_path, logger, live_pid):
    own = tmp_path / "own.pid"
    foreign = tmp_path / "foreign.pid"
    foreign.write_text(str(live_pid))

    guard = InstanceGuard(own, logger=logger)
    guard.claim()
    guard.release()
    InstanceGuard(foreign, logger=logger).release()

    assert not own.exists()
    assert foreign.read_text() == str(live_pid)


def test_context_manager_claims_and_releases(tmp_path, logger):
    lock_file = tmp_path / "worker.pid"

    with InstanceGuard(lock_file, logger=logger) as pid:
        assert pid == os.getpid()
        assert lock_file.read_text() == str(pid)

    assert not lock_file.exists()


def test_context_manager_raises_on_conflict(tmp_path, logger, live_pid):
    lock_file = tmp_path / "worker.pid"
    lock_file.write_text(str(live_pid))

    with pytest.raises(InstanceConflictError):
        with InstanceGuard(lock_file, logger=logger):
            pass

    assert lock_file.read_text() == str(live_pid)
