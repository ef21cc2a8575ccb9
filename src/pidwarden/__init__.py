from __future__ import annotations

from pidwarden.cli.main import run
from pidwarden.config.loader import build_config, load_config
from pidwarden.core.errors import (
	AlreadyRunningError,
	LifecycleError,
	LifecycleIOError,
	PidFileCorruptError,
	PidFileExistsError,
	PidFileNotFoundError,
	SignalDeliveryError,
	SpawnError,
	TargetNotFoundError,
)
from pidwarden.core.models import LifecycleConfig, LifecycleSettings, ProcessState, StatusReport, StopResult
from pidwarden.runtime import LifecycleController, ShutdownToken

__all__ = [
	"AlreadyRunningError",
	"LifecycleConfig",
	"LifecycleController",
	"LifecycleError",
	"LifecycleIOError",
	"LifecycleSettings",
	"PidFileCorruptError",
	"PidFileExistsError",
	"PidFileNotFoundError",
	"ProcessState",
	"ShutdownToken",
	"SignalDeliveryError",
	"SpawnError",
	"StatusReport",
	"StopResult",
	"TargetNotFoundError",
	"build_config",
	"load_config",
	"run",
]
