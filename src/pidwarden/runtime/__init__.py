"""Process-lifecycle components: marker store, liveness probe, daemonizer, signal routing."""

from pidwarden.runtime.controller import LifecycleController, send_signal
from pidwarden.runtime.daemonizer import Daemonizer, SelfReexecDaemonizer, is_daemon_child
from pidwarden.runtime.pidfile import PidFileStore
from pidwarden.runtime.probe import is_process_alive, wait_for_exit
from pidwarden.runtime.signals import ShutdownToken, SignalRouter

__all__ = [
	"Daemonizer",
	"LifecycleController",
	"PidFileStore",
	"SelfReexecDaemonizer",
	"ShutdownToken",
	"SignalRouter",
	"is_daemon_child",
	"is_process_alive",
	"send_signal",
	"wait_for_exit",
]
