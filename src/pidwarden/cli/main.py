import sys
import typer
from pathlib import Path
from typing import Any, Callable, List, NoReturn, Optional

from pidwarden.cli.formatter import OutputFormatter
from pidwarden.config.loader import build_config
from pidwarden.core.errors import LifecycleError
from pidwarden.core.models import LifecycleConfig
from pidwarden.runtime.controller import LifecycleController

app = typer.Typer(
    name="pidwarden",
    help="Process manager with daemon support: start, stop, restart, reload and status.",
    rich_markup_mode=None,
    no_args_is_help=True,
    add_completion=False,
)


def _controller(ctx: typer.Context) -> LifecycleController:
    config = ctx.obj if isinstance(ctx.obj, LifecycleConfig) else build_config()
    return LifecycleController(config)


def _fail(exc: LifecycleError) -> NoReturn:
    OutputFormatter.log(exc.message, severity="error")
    raise typer.Exit(code=1)


@app.command()
def start(
    ctx: typer.Context,
    daemon: bool = typer.Option(False, "--daemon", "-d", help="Run in daemon mode"),
):
    """Start the process in foreground or daemon mode."""
    controller = _controller(ctx)
    try:
        controller.start(daemon=daemon)
    except LifecycleError as exc:
        _fail(exc)


@app.command()
def stop(ctx: typer.Context):
    """Stop the daemon process by sending SIGTERM signal."""
    controller = _controller(ctx)
    try:
        result = controller.stop()
    except LifecycleError as exc:
        _fail(exc)

    if result.exited:
        OutputFormatter.log(f"Process {result.pid} stopped.", severity="success")
    else:
        OutputFormatter.log(
            f"Process {result.pid} is still running after {controller.config.stop_timeout:g}s.",
            severity="warning",
        )


@app.command()
def restart(ctx: typer.Context):
    """Stop the daemon process and start it again in daemon mode."""
    controller = _controller(ctx)
    try:
        controller.restart()
    except LifecycleError as exc:
        _fail(exc)


@app.command()
def reload(ctx: typer.Context):
    """Send SIGHUP signal to the daemon process to trigger reload."""
    controller = _controller(ctx)
    try:
        controller.reload()
    except LifecycleError as exc:
        _fail(exc)


@app.command()
def status(
    ctx: typer.Context,
    format: str = typer.Option("text", "--format", "-f", help="Output format: text|json"),
):
    """Check and display the current status of the daemon process."""
    if format not in {"text", "json"}:
        raise typer.BadParameter("Option --format must be one of: text, json")

    controller = _controller(ctx)
    try:
        report = controller.status()
    except LifecycleError as exc:
        _fail(exc)

    if format == "json":
        OutputFormatter.print_data(report)
    else:
        OutputFormatter.print_status(report)


def run(
    worker: Optional[Callable[..., Any]] = None,
    *,
    pid_file: Optional[Path] = None,
    log_file: Optional[Path] = None,
    config_path: Optional[Path] = None,
    args: Optional[List[str]] = None,
    prog_name: Optional[str] = None,
    **options: Any,
) -> None:
    """
    Main entry point for embedding programs.

    Builds the lifecycle configuration around ``worker`` and dispatches the
    command line (``sys.argv[1:]`` unless ``args`` is given) to one of the
    start/stop/restart/reload/status commands. Exits the process.
    """
    config = build_config(
        worker,
        config_path=config_path,
        pid_file=pid_file,
        log_file=log_file,
        **options,
    )
    app(args=args, prog_name=prog_name or Path(sys.argv[0]).name, obj=config)


if __name__ == "__main__":
    app()
