from pathlib import Path
from typing import Optional


class LifecycleError(Exception):
    """
    Base error for every lifecycle operation failure.
    Carries a human readable message suitable for the operator's error stream.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PidFileNotFoundError(LifecycleError):
    """The PID marker was required but does not exist."""
    def __init__(self, pid_file: Path):
        self.pid_file = pid_file
        super().__init__(f"PID file not found: {pid_file}")


class PidFileCorruptError(LifecycleError):
    """The PID marker exists but does not hold a decimal process id."""
    def __init__(self, pid_file: Path, content: str):
        self.pid_file = pid_file
        self.content = content
        super().__init__(f"Invalid PID in file {pid_file}: {content!r}")


class LifecycleIOError(LifecycleError):
    """Filesystem create/open/write/remove failure on the marker or log sink."""
    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class PidFileExistsError(LifecycleIOError):
    """Exclusive marker creation found a marker already in place."""
    def __init__(self, pid_file: Path):
        super().__init__(f"PID file already exists: {pid_file}", path=pid_file)


class SpawnError(LifecycleError):
    """The daemon child could not be started."""


class SignalDeliveryError(LifecycleError):
    """The OS refused to deliver a signal to the tracked process."""
    def __init__(self, message: str, pid: int):
        self.pid = pid
        super().__init__(message)


class TargetNotFoundError(SignalDeliveryError):
    """The tracked pid no longer corresponds to a live process."""
    def __init__(self, pid: int):
        super().__init__(f"Process {pid} is not running", pid=pid)


class AlreadyRunningError(LifecycleError):
    """A start was requested while the marker points at a live process."""
    def __init__(self, pid: int, pid_file: Path):
        self.pid = pid
        self.pid_file = pid_file
        super().__init__(f"Process is already running with PID {pid} (PID file: {pid_file})")
