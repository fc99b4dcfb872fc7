import click

from agent.minerwatch.config.defaults import AGENT_VERSION
from .commands.status import status
from .commands.monitors import monitors


@click.group()
@click.version_option(version=AGENT_VERSION)
def cli():
    """MinerWatch - miner log telemetry for Prometheus"""
    pass

cli.add_command(status)
cli.add_command(monitors)

if __name__ == "__main__":
    cli()
