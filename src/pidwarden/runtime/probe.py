from __future__ import annotations

import os
import time

from pidwarden.core.models import DEFAULT_POLL_INTERVAL


def is_process_alive(pid: int) -> bool:
    """Return True when a process id appears to be alive on this host."""
    if pid <= 0:
        return False

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except (OSError, OverflowError):
        return False

    return True


def wait_for_exit(pid: int, timeout: float, interval: float = DEFAULT_POLL_INTERVAL) -> bool:
    """Poll until ``pid`` disappears; returns False if it is still alive after ``timeout`` seconds.

    The target is usually not our child, so this cannot use waitpid.
    """
    deadline = time.monotonic() + max(timeout, 0.0)
    while True:
        if not is_process_alive(pid):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)
