import os
import pytest
import sys
from pathlib import Path

# Ensure src/ is in the python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def _clear_daemon_marker(monkeypatch):
    """Tests run in a CLI context unless they opt into the daemon child role."""
    monkeypatch.delenv("PIDWARDEN_DAEMON", raising=False)


@pytest.fixture
def pid_file(tmp_path):
    return tmp_path / "run" / "app.pid"


@pytest.fixture
def log_file(tmp_path):
    return tmp_path / "logs" / "app.log"


@pytest.fixture
def config(pid_file, log_file):
    from pidwarden.core.models import LifecycleConfig

    return LifecycleConfig(
        pid_file=pid_file,
        log_file=log_file,
        stop_timeout=2.0,
        poll_interval=0.02,
        shutdown_grace=1.0,
    )


@pytest.fixture
def subprocess_env():
    """Environment for child interpreters that import pidwarden from src/."""
    env = os.environ.copy()
    env.pop("PIDWARDEN_DAEMON", None)
    existing_pythonpath = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = f"{src_path}:{existing_pythonpath}" if existing_pythonpath else str(src_path)
    return env
