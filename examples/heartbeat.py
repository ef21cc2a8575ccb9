"""Example service managed by pidwarden.

    python examples/heartbeat.py start --daemon
    python examples/heartbeat.py status
    python examples/heartbeat.py reload
    python examples/heartbeat.py stop
"""

from datetime import datetime

from pidwarden import ShutdownToken, run


def heartbeat(token: ShutdownToken) -> None:
    print("Application starting...", flush=True)
    count = 0
    while not token.wait(5):
        count += 1
        print(f"[{datetime.now():%Y-%m-%d %H:%M:%S}] heartbeat #{count}", flush=True)
    print("Shutdown requested, leaving heartbeat loop.", flush=True)


def on_reload() -> None:
    print("Reload requested; nothing to re-read in this example.", flush=True)


if __name__ == "__main__":
    run(heartbeat, pid_file="./myapp.pid", log_file="./myapp.log", on_reload=on_reload)
