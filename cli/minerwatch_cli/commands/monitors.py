import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from ..client import run_command

console = Console()

STATE_STYLES = {
    "running": "green",
    "attaching": "yellow",
    "stopped": "dim",
    "failed": "bold red",
}


@click.command()
def monitors():
    """List log monitors and their counters."""
    try:
        data = run_command("monitors")

        if not data:
            console.print("No log sources configured.")
            return

        table = Table(title="Log Monitors")
        table.add_column("Metric", style="cyan")
        table.add_column("Path", style="dim")
        table.add_column("Family")
        table.add_column("State")
        table.add_column("Lines", justify="right")
        table.add_column("Pushed", justify="right")
        table.add_column("Errors", justify="right")
        table.add_column("Last error")

        for monitor in data:
            style = STATE_STYLES.get(monitor["state"], "white")
            table.add_row(
                monitor["name"],
                escape(monitor["path"]),
                monitor["family"],
                f"[{style}]{monitor['state'].upper()}[/{style}]",
                str(monitor["lines"]),
                str(monitor["published"]),
                str(monitor["publish_errors"]),
                escape(monitor.get("last_error") or ""),
            )

        console.print(table)

    except ConnectionError:
        console.print("[bold red]Error:[/bold red] Agent not running.")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
