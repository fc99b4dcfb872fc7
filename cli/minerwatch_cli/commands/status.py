import click
from rich.console import Console
from ..client import run_command

console = Console()


def format_uptime(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {secs}s"


@click.command()
def status():
    """Show agent status."""
    try:
        data = run_command("status")

        console.print(f"\n[bold green]MinerWatch Agent v{data.get('version', '?')}[/bold green]")
        console.print(f"Status: [green]● {data.get('status', 'unknown')}[/green]")
        console.print(f"Uptime: {format_uptime(data.get('uptime', 0))}")
        console.print(f"Pushgateway: {data.get('pushgateway', 'N/A')}")
        console.print(f"Monitors: {data.get('monitors', 0)}")

    except ConnectionError:
        console.print("[bold red]Error:[/bold red] Agent not running.")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
