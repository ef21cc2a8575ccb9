import os

import pytest

from pidwarden.core.errors import (
    LifecycleIOError,
    PidFileCorruptError,
    PidFileExistsError,
    PidFileNotFoundError,
)
from pidwarden.runtime.pidfile import MAX_PID, PidFileStore


def test_write_then_read_round_trips_pid(pid_file):
    store = PidFileStore(pid_file)

    store.write(31337)

    assert store.read() == 31337
    assert pid_file.read_text() == "31337"


def test_write_creates_parent_directories(tmp_path):
    nested = tmp_path / "a" / "b" / "c" / "app.pid"

    PidFileStore(nested).write(1)

    assert nested.exists()


def test_write_overwrites_previous_content(pid_file):
    store = PidFileStore(pid_file)
    store.write(123456)

    store.write(7)

    assert pid_file.read_text() == "7"


def test_write_does_not_grant_group_or_world_write(pid_file):
    PidFileStore(pid_file).write(os.getpid())

    mode = pid_file.stat().st_mode & 0o777
    assert mode & 0o600 == 0o600
    assert mode & 0o022 == 0


def test_read_missing_marker_raises_not_found(pid_file):
    with pytest.raises(PidFileNotFoundError) as exc_info:
        PidFileStore(pid_file).read()

    assert str(pid_file) in exc_info.value.message


@pytest.mark.parametrize(
    "content",
    ["not-a-number", "", "   ", "-5", "12abc", "1.5", "0", "\u00b2", "\u0661\u0662", "99999999999"],
)
def test_read_invalid_content_raises_corrupt(pid_file, content):
    pid_file.parent.mkdir(parents=True)
    pid_file.write_text(content, encoding="utf-8")

    with pytest.raises(PidFileCorruptError):
        PidFileStore(pid_file).read()


def test_read_binary_content_raises_corrupt(pid_file):
    pid_file.parent.mkdir(parents=True)
    pid_file.write_bytes(b"\xff\xfe\x00")

    with pytest.raises(PidFileCorruptError):
        PidFileStore(pid_file).read()


def test_read_accepts_largest_platform_pid(pid_file):
    PidFileStore(pid_file).write(MAX_PID)

    assert PidFileStore(pid_file).read() == MAX_PID


def test_read_tolerates_surrounding_whitespace(pid_file):
    pid_file.parent.mkdir(parents=True)
    pid_file.write_text("42\n")

    assert PidFileStore(pid_file).read() == 42


def test_remove_is_idempotent(pid_file):
    store = PidFileStore(pid_file)
    store.write(1)

    store.remove()
    store.remove()

    assert store.exists() is False


def test_remove_missing_marker_succeeds(pid_file):
    PidFileStore(pid_file).remove()

    assert pid_file.exists() is False


def test_exclusive_write_creates_marker_when_absent(pid_file):
    store = PidFileStore(pid_file)

    store.write(99, exclusive=True)

    assert store.read() == 99


def test_exclusive_write_refuses_existing_marker(pid_file):
    store = PidFileStore(pid_file)
    store.write(99)

    with pytest.raises(PidFileExistsError):
        store.write(100, exclusive=True)

    assert store.read() == 99


def test_exclusive_conflict_is_an_io_error(pid_file):
    store = PidFileStore(pid_file)
    store.write(99)

    with pytest.raises(LifecycleIOError):
        store.write(100, exclusive=True)


def test_write_fails_with_io_error_when_parent_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(LifecycleIOError) as exc_info:
        PidFileStore(blocker / "app.pid").write(1)

    assert exc_info.value.__cause__ is not None
