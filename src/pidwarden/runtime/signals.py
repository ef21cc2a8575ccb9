from __future__ import annotations

import queue
import signal
import sys
import threading
from typing import Any, Callable, Dict, Optional

from pidwarden.cli.formatter import OutputFormatter
from pidwarden.core.errors import LifecycleError, LifecycleIOError
from pidwarden.core.models import LifecycleConfig
from pidwarden.runtime.pidfile import PidFileStore

TERMINATION_SIGNALS = (signal.SIGTERM, signal.SIGINT)
RELOAD_SIGNAL = signal.SIGHUP


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class ShutdownToken:
    """Cancellation notice handed to the worker when a termination signal arrives."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.signal: Optional[int] = None

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown is requested or ``timeout`` elapses."""
        return self._event.wait(timeout)

    def trigger(self, signum: Optional[int] = None) -> None:
        if self.signal is None:
            self.signal = signum
        self._event.set()


class SignalRouter:
    """
    Routes termination and reload signals to the worker's exit path.

    Handlers only enqueue the signal number; the supervising thread drains the
    queue with ``dispatch_pending`` while the worker runs on its own thread.
    The first termination signal is final: the token is set, ``cleanup`` runs,
    the worker gets ``shutdown_grace`` seconds to return, the marker is removed
    and the process exits with status 0.
    """

    def __init__(
        self,
        config: LifecycleConfig,
        store: PidFileStore,
        cleanup: Optional[Callable[[], Any]] = None,
        token: Optional[ShutdownToken] = None,
        exit_func: Callable[[int], Any] = sys.exit,
    ) -> None:
        self.config = config
        self.store = store
        self.cleanup = cleanup if cleanup is not None else config.cleanup
        self.token = token or ShutdownToken()
        self.exit_func = exit_func
        self.worker_thread: Optional[threading.Thread] = None

        self._pending: "queue.SimpleQueue[int]" = queue.SimpleQueue()
        self._previous: Dict[int, Any] = {}
        self._terminating = False

    @property
    def installed(self) -> bool:
        return bool(self._previous)

    @property
    def terminating(self) -> bool:
        return self._terminating

    def install(self) -> None:
        """Register handlers for termination and reload signals."""
        if threading.current_thread() is not threading.main_thread():
            raise LifecycleError("Signal handlers can only be installed from the main thread.")
        if self.installed:
            return

        for signum in (*TERMINATION_SIGNALS, RELOAD_SIGNAL):
            self._previous[signum] = signal.signal(signum, self._enqueue)

    def uninstall(self) -> None:
        """Restore the handlers that were active before ``install``."""
        for signum, previous in self._previous.items():
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()

    def dispatch_pending(self) -> None:
        """Process every signal received since the last call."""
        while True:
            try:
                signum = self._pending.get_nowait()
            except queue.Empty:
                return
            self.dispatch(signum)

    def dispatch(self, signum: int) -> None:
        OutputFormatter.log(f"Received signal: {signal_name(signum)}", severity="info")

        if signum == RELOAD_SIGNAL:
            self._reload()
        elif signum in TERMINATION_SIGNALS:
            self._terminate(signum)

    def _enqueue(self, signum: int, frame: Any) -> None:
        self._pending.put(signum)

    def _reload(self) -> None:
        OutputFormatter.log("Reloading configuration...", severity="info")
        if self.config.on_reload is None:
            return

        try:
            self.config.on_reload()
        except Exception as exc:
            OutputFormatter.log(f"Reload callback failed: {exc}", severity="error")

    def _terminate(self, signum: int) -> None:
        if self._terminating:
            OutputFormatter.log(f"Shutdown already in progress; ignoring {signal_name(signum)}.", severity="warning")
            return
        self._terminating = True

        self.token.trigger(signum)

        if self.cleanup is not None:
            try:
                self.cleanup()
            except Exception as exc:
                OutputFormatter.log(f"Cleanup callback failed: {exc}", severity="error")

        worker = self.worker_thread
        if worker is not None and worker.is_alive() and self.config.shutdown_grace > 0:
            worker.join(timeout=self.config.shutdown_grace)
            if worker.is_alive():
                OutputFormatter.log(
                    f"Worker did not finish within {self.config.shutdown_grace:g}s; exiting anyway.",
                    severity="warning",
                )

        try:
            self.store.remove()
        except LifecycleIOError as exc:
            OutputFormatter.log(exc.message, severity="error")

        OutputFormatter.log("Process stopped.", severity="info")
        self.exit_func(0)
