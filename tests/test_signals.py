import os
import signal
import threading
import time

import pytest

from pidwarden.core.errors import LifecycleError
from pidwarden.runtime.pidfile import PidFileStore
from pidwarden.runtime.signals import ShutdownToken, SignalRouter, signal_name


def _make_router(config, **kwargs):
    store = PidFileStore(config.pid_file)
    store.write(os.getpid())
    exits = []
    router = SignalRouter(config, store, exit_func=exits.append, **kwargs)
    return router, store, exits


def test_shutdown_token_records_first_signal():
    token = ShutdownToken()
    assert token.is_set() is False
    assert token.wait(timeout=0) is False

    token.trigger(signal.SIGTERM)
    token.trigger(signal.SIGINT)

    assert token.is_set() is True
    assert token.wait(timeout=0) is True
    assert token.signal == signal.SIGTERM


def test_signal_name_falls_back_to_number():
    assert signal_name(signal.SIGHUP) == "SIGHUP"
    assert signal_name(12345) == "12345"


def test_reload_signal_notifies_without_terminating(config):
    reloads = []
    config = config.model_copy(update={"on_reload": lambda: reloads.append(True)})
    router, store, exits = _make_router(config)

    router.dispatch(signal.SIGHUP)

    assert reloads == [True]
    assert exits == []
    assert store.exists() is True
    assert router.token.is_set() is False


def test_reload_without_callback_is_a_noop(config):
    router, store, exits = _make_router(config)

    router.dispatch(signal.SIGHUP)

    assert exits == []
    assert store.exists() is True


def test_failing_reload_callback_does_not_terminate(config):
    def broken_reload():
        raise RuntimeError("bad config")

    config = config.model_copy(update={"on_reload": broken_reload})
    router, store, exits = _make_router(config)

    router.dispatch(signal.SIGHUP)

    assert exits == []
    assert store.exists() is True


@pytest.mark.parametrize("signum", [signal.SIGTERM, signal.SIGINT])
def test_termination_runs_cleanup_removes_marker_and_exits_zero(config, signum):
    calls = []
    router, store, exits = _make_router(config, cleanup=lambda: calls.append("cleanup"))

    router.dispatch(signum)

    assert calls == ["cleanup"]
    assert store.exists() is False
    assert exits == [0]
    assert router.token.is_set() is True
    assert router.token.signal == signum


def test_cleanup_defaults_to_config_callback(config):
    calls = []
    config = config.model_copy(update={"cleanup": lambda: calls.append("config-cleanup")})
    router, _, _ = _make_router(config)

    router.dispatch(signal.SIGTERM)

    assert calls == ["config-cleanup"]


def test_first_termination_is_final(config):
    calls = []
    router, _, exits = _make_router(config, cleanup=lambda: calls.append("cleanup"))

    router.dispatch(signal.SIGTERM)
    router.dispatch(signal.SIGTERM)
    router.dispatch(signal.SIGINT)

    assert calls == ["cleanup"]
    assert exits == [0]
    assert router.terminating is True


def test_failing_cleanup_still_removes_marker_and_exits(config):
    def broken_cleanup():
        raise RuntimeError("boom")

    router, store, exits = _make_router(config, cleanup=broken_cleanup)

    router.dispatch(signal.SIGTERM)

    assert store.exists() is False
    assert exits == [0]


def test_termination_gives_worker_grace_period_to_react(config):
    router, _, _ = _make_router(config)
    observed = []

    def worker():
        router.token.wait(timeout=5)
        time.sleep(0.05)
        observed.append("worker saw shutdown")

    thread = threading.Thread(target=worker, daemon=True)
    router.worker_thread = thread
    thread.start()

    router.dispatch(signal.SIGTERM)

    assert observed == ["worker saw shutdown"]


def test_worker_cannot_block_termination_beyond_grace(config):
    config = config.model_copy(update={"shutdown_grace": 0.1})
    router, store, exits = _make_router(config)
    release = threading.Event()
    thread = threading.Thread(target=release.wait, args=(10,), daemon=True)
    router.worker_thread = thread
    thread.start()

    started = time.monotonic()
    router.dispatch(signal.SIGTERM)
    elapsed = time.monotonic() - started
    release.set()

    assert elapsed < 5
    assert exits == [0]
    assert store.exists() is False


def test_install_routes_real_signals_through_queue(config):
    reloads = []
    config = config.model_copy(update={"on_reload": lambda: reloads.append(True)})
    router, _, exits = _make_router(config)
    previous = signal.getsignal(signal.SIGHUP)

    router.install()
    try:
        assert router.installed is True
        os.kill(os.getpid(), signal.SIGHUP)

        deadline = time.monotonic() + 2
        while not reloads and time.monotonic() < deadline:
            router.dispatch_pending()
            time.sleep(0.01)
    finally:
        router.uninstall()

    assert reloads == [True]
    assert exits == []
    assert router.installed is False
    assert signal.getsignal(signal.SIGHUP) == previous


def test_dispatch_pending_is_a_noop_without_signals(config):
    router, store, exits = _make_router(config)

    router.dispatch_pending()

    assert exits == []
    assert store.exists() is True


def test_install_outside_main_thread_is_rejected(config):
    router, _, _ = _make_router(config)
    errors = []

    def install():
        try:
            router.install()
        except LifecycleError as exc:
            errors.append(exc)

    thread = threading.Thread(target=install)
    thread.start()
    thread.join()

    assert len(errors) == 1
    assert router.installed is False
