import json
import typer
from typing import Any
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from pidwarden.core.models import ProcessState, StatusReport

# Create a stderr console for logging
error_console = Console(stderr=True)

class OutputFormatter:
    """
    Handles output formatting for lifecycle commands.
    Keeps System Logs (stderr) apart from Data (stdout); in the daemon child
    stderr is the log sink.
    """

    @staticmethod
    def log(message: str, severity: str = "info") -> None:
        """
        Print system messages to stderr with color coding.
        """
        style = "white"
        prefix = "[SYSTEM]"

        if severity == "warning":
            style = "yellow"
        elif severity == "error":
            style = "red"
        elif severity == "critical":
            style = "bold red"
        elif severity == "success":
            style = "green"

        error_console.print(f"[{style}]{prefix} {escape(message)}[/{style}]", highlight=False, soft_wrap=True)

    @staticmethod
    def print_status(report: StatusReport) -> None:
        """Print a status report as plain operator-readable lines on stdout."""
        if report.state == ProcessState.RUNNING:
            typer.echo("Status: running")
            typer.echo(f"PID: {report.pid}")
            typer.echo(f"PID file: {report.pid_file}")
            typer.echo(f"Log file: {report.log_file}")
        elif report.state == ProcessState.STALE:
            typer.echo("Status: stopped (stale PID file)")
            if report.pid is not None:
                typer.echo(f"PID: {report.pid} (not running)")
            typer.echo(f"PID file: {report.pid_file} (stale)")
            typer.echo(f"Log file: {report.log_file}")
        else:
            typer.echo("Status: stopped")
            typer.echo(f"PID file: {report.pid_file} (not found)")
            typer.echo(f"Log file: {report.log_file}")

    @staticmethod
    def print_data(data: Any) -> None:
        """
        Print a payload to stdout as JSON.
        Handles Pydantic models.
        """
        if isinstance(data, BaseModel):
            data = data.model_dump(mode='json')

        try:
            typer.echo(json.dumps(data, indent=2, default=str))
        except TypeError as e:
            OutputFormatter.log(f"JSON Serialization failed: {e}", severity="error")
            typer.echo(str(data))
