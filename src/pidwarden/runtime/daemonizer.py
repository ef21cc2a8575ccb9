from __future__ import annotations

import os
import subprocess
import sys
from typing import Mapping, Optional, Protocol, Sequence

from pidwarden.core.errors import LifecycleIOError, SpawnError
from pidwarden.core.models import DAEMON_ENV_VAR, LifecycleConfig

DAEMON_ENV_VALUE = "1"


def is_daemon_child(env_var: str = DAEMON_ENV_VAR, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when the current process was spawned as the daemon child."""
    env = os.environ if environ is None else environ
    return env.get(env_var) == DAEMON_ENV_VALUE


def current_argv() -> list[str]:
    """Return the command line that re-executes this program with its original arguments."""
    orig_argv = getattr(sys, "orig_argv", None)
    if orig_argv:
        # orig_argv keeps interpreter options such as ``-m pkg``
        return [sys.executable, *orig_argv[1:]]
    return [sys.executable, *sys.argv]


class Daemonizer(Protocol):
    """Backend that turns the current program into a detached background process."""

    def spawn(self, config: LifecycleConfig) -> int:
        ...


class SelfReexecDaemonizer:
    """Re-execute the current program in a new session with output sent to the log sink."""

    def __init__(
        self,
        argv: Optional[Sequence[str]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.argv = list(argv) if argv is not None else None
        self.env = dict(env) if env is not None else None

    def build_command(self) -> list[str]:
        return list(self.argv) if self.argv is not None else current_argv()

    def build_env(self, config: LifecycleConfig) -> dict[str, str]:
        env = dict(os.environ) if self.env is None else dict(self.env)
        env[config.daemon_env_var] = DAEMON_ENV_VALUE
        env["PYTHONUNBUFFERED"] = "1"
        return env

    def spawn(self, config: LifecycleConfig) -> int:
        """Start the daemon child and return its pid without waiting for it."""
        log_file = config.log_file
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_handle = open(log_file, "a", encoding="utf-8")
        except OSError as exc:
            raise LifecycleIOError(f"Failed to open log file {log_file}: {exc}", path=log_file) from exc

        command = self.build_command()
        with log_handle:
            try:
                process = subprocess.Popen(
                    command,
                    env=self.build_env(config),
                    stdin=subprocess.DEVNULL,
                    stdout=log_handle,
                    stderr=log_handle,
                    start_new_session=True,
                    close_fds=True,
                )
            except (OSError, ValueError) as exc:
                raise SpawnError(f"Failed to start daemon ({command[0]}): {exc}") from exc

        return process.pid
