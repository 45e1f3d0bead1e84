import os
import signal
import time

from gpsalarm.tools.wake_lock import InhibitWakeLock, NullWakeLock


def test_null_wake_lock():
    lock = NullWakeLock()
    assert lock.acquire() is True
    assert lock.held
    lock.release()
    assert not lock.held


def test_inhibit_without_binary_is_a_noop():
    lock = InhibitWakeLock(command="definitely-not-installed-inhibitor")
    assert lock.acquire() is False
    assert not lock.held
    lock.release()


def test_inhibit_holds_child_process(tmp_path, monkeypatch):
    # Stand-in inhibitor that just runs its trailing command
    script = tmp_path / "fake-inhibit"
    script.write_text('#!/bin/sh\nexec sleep 30\n', encoding="utf-8")
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{tmp_path}{os.pathsep}{os.environ['PATH']}")

    lock = InhibitWakeLock(command="fake-inhibit")
    assert lock.acquire() is True
    assert lock.held

    lock.release()
    assert not lock.held


def test_release_reaps_child_that_ignores_sigterm(tmp_path, monkeypatch):
    script = tmp_path / "stubborn-inhibit"
    script.write_text("#!/bin/sh\ntrap '' TERM\nexec sleep 30\n", encoding="utf-8")
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{tmp_path}{os.pathsep}{os.environ['PATH']}")

    lock = InhibitWakeLock(command="stubborn-inhibit", term_timeout=0.1)
    assert lock.acquire() is True
    proc = lock._proc
    time.sleep(0.2)  # let the shell install its trap

    lock.release()

    assert not lock.held
    # Killed and waited on: exit status collected, no zombie left
    assert proc.returncode in (-signal.SIGKILL, -signal.SIGTERM)
