from __future__ import annotations

import inspect
import os
import signal
import sys
import threading
from typing import Any, Callable, Dict, Mapping, Optional

from pidwarden.cli.formatter import OutputFormatter
from pidwarden.core.errors import (
    AlreadyRunningError,
    LifecycleError,
    LifecycleIOError,
    PidFileCorruptError,
    PidFileExistsError,
    PidFileNotFoundError,
    SignalDeliveryError,
    TargetNotFoundError,
)
from pidwarden.core.models import LifecycleConfig, ProcessState, StatusReport, StopResult
from pidwarden.runtime.daemonizer import Daemonizer, SelfReexecDaemonizer, is_daemon_child
from pidwarden.runtime.pidfile import PidFileStore
from pidwarden.runtime.probe import is_process_alive, wait_for_exit
from pidwarden.runtime.signals import ShutdownToken, SignalRouter


def send_signal(pid: int, signum: int) -> None:
    """Deliver ``signum`` to ``pid``; OS errors propagate to the caller."""
    os.kill(pid, signum)


def _accepts_token(worker: Callable[..., Any]) -> bool:
    try:
        parameters = inspect.signature(worker).parameters.values()
    except (TypeError, ValueError):
        return False

    for parameter in parameters:
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD, parameter.VAR_POSITIONAL):
            return True
    return False


class LifecycleController:
    """Drives the single tracked worker through start, stop, restart, reload and status.

    All coordination between independent invocations goes through the PID marker
    and OS signals; nothing is cached between calls.
    """

    def __init__(
        self,
        config: LifecycleConfig,
        daemonizer: Optional[Daemonizer] = None,
        environ: Optional[Mapping[str, str]] = None,
        exit_func: Callable[[int], Any] = sys.exit,
    ) -> None:
        self.config = config
        self.store = PidFileStore(config.pid_file)
        self.daemonizer: Daemonizer = daemonizer or SelfReexecDaemonizer()
        self.environ = environ
        self.exit_func = exit_func
        self.router: Optional[SignalRouter] = None

    @property
    def is_daemon_child(self) -> bool:
        return is_daemon_child(self.config.daemon_env_var, self.environ)

    def status(self) -> StatusReport:
        """Classify the tracked process as stopped, running or stale. Never mutates state."""
        pid_file = str(self.config.pid_file)
        log_file = str(self.config.log_file)

        try:
            pid = self.store.read()
        except PidFileNotFoundError:
            return StatusReport(
                state=ProcessState.STOPPED,
                pid=None,
                pid_file=pid_file,
                log_file=log_file,
                reason="PID file not found.",
            )
        except PidFileCorruptError as exc:
            return StatusReport(
                state=ProcessState.STALE,
                pid=None,
                pid_file=pid_file,
                log_file=log_file,
                reason=exc.message,
            )

        if not is_process_alive(pid):
            return StatusReport(
                state=ProcessState.STALE,
                pid=pid,
                pid_file=pid_file,
                log_file=log_file,
                reason=f"Process pid={pid} is not alive (stale PID file).",
            )

        return StatusReport(
            state=ProcessState.RUNNING,
            pid=pid,
            pid_file=pid_file,
            log_file=log_file,
            reason="Process is alive.",
        )

    def start(self, daemon: bool = False) -> Optional[int]:
        """Start the worker.

        From a CLI context with ``daemon=True`` this spawns the daemon child and
        returns its pid immediately. Otherwise the current process becomes the
        worker: it records its pid, installs signal handling and runs the worker
        callback until it returns (result ``None``).
        """
        daemon_child = self.is_daemon_child

        if not daemon_child:
            current = self.status()
            if current.state == ProcessState.RUNNING and current.pid is not None:
                raise AlreadyRunningError(current.pid, self.config.pid_file)

            if daemon:
                child_pid = self.daemonizer.spawn(self.config)
                OutputFormatter.log(f"Daemon started with PID: {child_pid}", severity="success")
                OutputFormatter.log(f"Log file: {self.config.log_file}", severity="info")
                return child_pid

        self._write_own_marker()
        if daemon_child:
            OutputFormatter.log(f"Daemon process started with PID: {os.getpid()}", severity="info")
        else:
            OutputFormatter.log(f"Process started with PID: {os.getpid()}", severity="info")
        OutputFormatter.log(f"PID file: {self.config.pid_file}", severity="info")

        self._supervise_worker()
        return None

    def stop(self) -> StopResult:
        """Send the termination signal to the tracked process."""
        pid = self.store.read()

        try:
            send_signal(pid, signal.SIGTERM)
        except ProcessLookupError as exc:
            self._remove_marker_best_effort()
            raise TargetNotFoundError(pid) from exc
        except OSError as exc:
            raise SignalDeliveryError(f"Failed to send SIGTERM to process {pid}: {exc}", pid=pid) from exc

        OutputFormatter.log(f"Sent SIGTERM signal to process {pid}", severity="info")

        exited = wait_for_exit(pid, self.config.stop_timeout, self.config.poll_interval)
        marker_removed = False
        if exited and self._marker_names(pid):
            # the target exited without running its own handler
            self._remove_marker_best_effort()
            marker_removed = True

        return StopResult(pid=pid, exited=exited, marker_removed=marker_removed)

    def restart(self) -> Optional[int]:
        """Stop the tracked process if alive, clear its marker, then start in daemon mode."""
        if not self.is_daemon_child:
            self._stop_for_restart()

        OutputFormatter.log("Starting daemon process...", severity="info")
        return self.start(daemon=True)

    def reload(self) -> int:
        """Send the reload signal to a live tracked process. Fire-and-forget."""
        pid = self.store.read()
        if not is_process_alive(pid):
            raise TargetNotFoundError(pid)

        try:
            send_signal(pid, signal.SIGHUP)
        except ProcessLookupError as exc:
            raise TargetNotFoundError(pid) from exc
        except OSError as exc:
            raise SignalDeliveryError(f"Failed to send SIGHUP to process {pid}: {exc}", pid=pid) from exc

        OutputFormatter.log(f"Sent SIGHUP signal to process {pid}", severity="info")
        return pid

    def _write_own_marker(self) -> None:
        pid = os.getpid()
        if not self.config.exclusive_pidfile:
            self.store.write(pid)
            return

        try:
            self.store.write(pid, exclusive=True)
            return
        except PidFileExistsError:
            current = self.status()
            if current.state == ProcessState.RUNNING and current.pid not in (None, pid):
                raise AlreadyRunningError(current.pid, self.config.pid_file)

        OutputFormatter.log("Replacing stale PID file.", severity="warning")
        self.store.remove()
        try:
            self.store.write(pid, exclusive=True)
        except PidFileExistsError:
            # another start claimed the marker between our remove and write
            current = self.status()
            if current.pid is not None:
                raise AlreadyRunningError(current.pid, self.config.pid_file)
            raise

    def _supervise_worker(self) -> None:
        router = SignalRouter(self.config, self.store, token=ShutdownToken(), exit_func=self.exit_func)
        try:
            router.install()
        except LifecycleError:
            # the worker never ran, so the marker must not outlive this call
            self._remove_marker_best_effort()
            raise
        self.router = router

        outcome: Dict[str, BaseException] = {}
        worker_thread = threading.Thread(
            target=self._invoke_worker,
            args=(router.token, outcome),
            name="pidwarden-worker",
            daemon=True,
        )
        router.worker_thread = worker_thread

        try:
            worker_thread.start()
            while worker_thread.is_alive():
                worker_thread.join(self.config.poll_interval)
                router.dispatch_pending()
            router.dispatch_pending()
        finally:
            router.uninstall()
            self.router = None

        self.store.remove()
        OutputFormatter.log("Worker finished; PID file removed.", severity="info")

        error = outcome.get("error")
        if error is not None:
            raise error

    def _invoke_worker(self, token: ShutdownToken, outcome: Dict[str, BaseException]) -> None:
        worker = self.config.worker
        if worker is None:
            return

        try:
            if _accepts_token(worker):
                worker(token)
            else:
                worker()
        except Exception as exc:
            outcome["error"] = exc

    def _stop_for_restart(self) -> None:
        try:
            pid = self.store.read()
        except PidFileNotFoundError:
            return
        except PidFileCorruptError as exc:
            OutputFormatter.log(f"{exc.message}; removing it.", severity="warning")
            self.store.remove()
            return

        if is_process_alive(pid):
            try:
                send_signal(pid, signal.SIGTERM)
            except OSError as exc:
                OutputFormatter.log(f"Failed to send SIGTERM to process {pid}: {exc}", severity="warning")
            else:
                OutputFormatter.log(f"Stopping process {pid}...", severity="info")
                if not wait_for_exit(pid, self.config.stop_timeout, self.config.poll_interval):
                    OutputFormatter.log(
                        f"Process {pid} did not exit within {self.config.stop_timeout:g}s; starting a new instance anyway.",
                        severity="warning",
                    )
        else:
            OutputFormatter.log(f"Process {pid} is not running; removing stale PID file.", severity="warning")

        self.store.remove()

    def _marker_names(self, pid: int) -> bool:
        try:
            return self.store.read() == pid
        except LifecycleError:
            return False

    def _remove_marker_best_effort(self) -> None:
        try:
            self.store.remove()
        except LifecycleIOError as exc:
            OutputFormatter.log(f"Warning: {exc.message}", severity="warning")


