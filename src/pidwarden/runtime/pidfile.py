from __future__ import annotations

import os
from pathlib import Path

from pidwarden.core.errors import (
    LifecycleIOError,
    PidFileCorruptError,
    PidFileExistsError,
    PidFileNotFoundError,
)

PID_FILE_MODE = 0o644

# pid_t is a signed 32-bit integer on supported platforms
MAX_PID = 2**31 - 1


class PidFileStore:
    """Durable record of the tracked worker's process id.

    No locking happens here: deciding whether a live process already owns the
    marker is the controller's job.
    """

    def __init__(self, pid_file: Path) -> None:
        self.pid_file = Path(pid_file)

    def exists(self) -> bool:
        """Return True when the marker file is present."""
        return self.pid_file.exists()

    def write(self, pid: int, exclusive: bool = False) -> Path:
        """Persist ``pid`` as decimal text, creating parent directories as needed."""
        try:
            self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LifecycleIOError(
                f"Failed to create PID directory {self.pid_file.parent}: {exc}",
                path=self.pid_file.parent,
            ) from exc

        flags = os.O_WRONLY | os.O_CREAT
        flags |= os.O_EXCL if exclusive else os.O_TRUNC

        try:
            fd = os.open(self.pid_file, flags, PID_FILE_MODE)
        except FileExistsError as exc:
            raise PidFileExistsError(self.pid_file) from exc
        except OSError as exc:
            raise LifecycleIOError(f"Failed to write PID file {self.pid_file}: {exc}", path=self.pid_file) from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(str(pid))
        except OSError as exc:
            raise LifecycleIOError(f"Failed to write PID file {self.pid_file}: {exc}", path=self.pid_file) from exc

        return self.pid_file

    def read(self) -> int:
        """Return the recorded pid; raises when the marker is absent or unparsable."""
        try:
            content = self.pid_file.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise PidFileNotFoundError(self.pid_file) from exc
        except UnicodeDecodeError as exc:
            raise PidFileCorruptError(self.pid_file, "<binary>") from exc
        except OSError as exc:
            raise LifecycleIOError(f"Failed to read PID file {self.pid_file}: {exc}", path=self.pid_file) from exc

        stripped = content.strip()
        if not (stripped.isascii() and stripped.isdigit()):
            raise PidFileCorruptError(self.pid_file, content)

        pid = int(stripped)
        if not 0 < pid <= MAX_PID:
            raise PidFileCorruptError(self.pid_file, content)
        return pid

    def remove(self) -> None:
        """Delete the marker. A missing marker is not an error."""
        try:
            self.pid_file.unlink(missing_ok=True)
        except OSError as exc:
            raise LifecycleIOError(f"Failed to remove PID file {self.pid_file}: {exc}", path=self.pid_file) from exc
