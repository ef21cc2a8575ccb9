from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DAEMON_ENV_VAR = "PIDWARDEN_DAEMON"
DEFAULT_PID_FILE = Path("./pidwarden.pid")
DEFAULT_LOG_FILE = Path("./pidwarden.log")
DEFAULT_STOP_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_SHUTDOWN_GRACE = 5.0

# Constraints shared by the environment-backed settings and the frozen config
PositiveSeconds = Annotated[float, Field(gt=0)]
GraceSeconds = Annotated[float, Field(ge=0)]


class LifecycleSettings(BaseSettings):
    """
    Tunable lifecycle settings (the 'pidwarden' section in pidwarden.yaml).
    """
    model_config = SettingsConfigDict(env_prefix='PIDWARDEN_', extra='ignore')

    pid_file: Path = DEFAULT_PID_FILE
    log_file: Path = DEFAULT_LOG_FILE
    stop_timeout: PositiveSeconds = DEFAULT_STOP_TIMEOUT
    poll_interval: PositiveSeconds = DEFAULT_POLL_INTERVAL
    shutdown_grace: GraceSeconds = DEFAULT_SHUTDOWN_GRACE
    exclusive_pidfile: bool = False


class LifecycleConfig(BaseModel):
    """
    Immutable configuration handed to the lifecycle controller by the embedding program.
    """
    model_config = ConfigDict(frozen=True, extra='forbid', arbitrary_types_allowed=True)

    pid_file: Path = DEFAULT_PID_FILE
    log_file: Path = DEFAULT_LOG_FILE

    # Business logic; may accept a ShutdownToken as its single argument
    worker: Optional[Callable[..., Any]] = None

    # Run by the termination path before the marker is removed
    cleanup: Optional[Callable[[], Any]] = None

    # Reload notification; no default action
    on_reload: Optional[Callable[[], Any]] = None

    stop_timeout: PositiveSeconds = DEFAULT_STOP_TIMEOUT
    poll_interval: PositiveSeconds = DEFAULT_POLL_INTERVAL
    shutdown_grace: GraceSeconds = DEFAULT_SHUTDOWN_GRACE
    exclusive_pidfile: bool = False
    daemon_env_var: str = DAEMON_ENV_VAR


class ProcessState(str, Enum):
    """Believed state of the tracked process, derived from the marker and a liveness probe."""

    STOPPED = "stopped"
    RUNNING = "running"
    STALE = "stale"


class StatusReport(BaseModel):
    """Read-only status payload for operator visibility."""

    state: ProcessState
    pid: Optional[int] = None
    pid_file: str
    log_file: str
    reason: str


class StopResult(BaseModel):
    """Outcome of a stop request that delivered its signal."""

    pid: int
    exited: bool
    marker_removed: bool = False
