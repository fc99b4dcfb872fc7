import asyncio
import signal
import time
from pathlib import Path
from typing import Optional

import click

from .config.defaults import AGENT_VERSION
from .config.loader import load_config
from .config.schema import MinerWatchConfig
from .errors import ConfigError
from .ipc import IPCServer
from .supervisor import Supervisor
from .utils.logging import setup_logging, get_logger

logger = get_logger("agent")


class MinerWatchAgent:
    def __init__(self, config: MinerWatchConfig, supervisor: Optional[Supervisor] = None):
        self.config = config
        self.supervisor = supervisor or Supervisor(config)

        # IPC handlers
        self.ipc_handlers = {
            "status": self.handle_status,
            "monitors": self.handle_monitors,
        }
        self.ipc = IPCServer(config.agent.ipc_socket, self.ipc_handlers) if config.agent.ipc_socket else None

        self._started_at: Optional[float] = None
        self._stop_task: Optional[asyncio.Task] = None

    async def run(self):
        """Main service loop."""
        gateway = self.config.pushgateway
        logger.info(f"Starting MinerWatch Agent v{AGENT_VERSION}")
        logger.info(f"Pushgateway: {gateway.url} (job={gateway.job}, instance={gateway.instance})")

        self._started_at = time.monotonic()
        await self.start_ipc()

        try:
            await self.supervisor.run()
        except asyncio.CancelledError:
            logger.info("Agent stopping...")
        finally:
            await self.shutdown()

    async def start_ipc(self):
        if not self.ipc:
            return
        try:
            await self.ipc.start()
        except OSError as e:
            # monitoring continues without the status socket
            logger.error(f"IPC Server unavailable on {self.ipc.socket_path}: {e}")
            self.ipc = None

    async def stop(self):
        """Ask the supervisor to stop; run() then finishes with shutdown()."""
        await self.supervisor.stop()

    def request_stop(self) -> asyncio.Task:
        """Schedule stop() from a signal handler; repeated signals reuse the pending task."""
        if self._stop_task is None or self._stop_task.done():
            self._stop_task = asyncio.get_running_loop().create_task(self.stop())
        return self._stop_task

    async def shutdown(self):
        await self.supervisor.stop()
        if self.ipc:
            await self.ipc.stop()
        logger.info("Agent stopped.")

    def uptime(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    async def handle_status(self, params):
        return {
            "status": "running",
            "name": self.config.agent.name,
            "version": AGENT_VERSION,
            "uptime": round(self.uptime(), 1),
            "pushgateway": self.config.pushgateway.url,
            "monitors": len(self.supervisor.monitors),
        }

    async def handle_monitors(self, params):
        return self.supervisor.snapshot()


@click.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              envvar="MINERWATCH_CONFIG", help="Path to the YAML config file")
@click.option("--oula-log", envvar="MINERWATCH_OULA_LOG", default="", help="Path to the oula log file")
@click.option("--oula-new-log", envvar="MINERWATCH_OULA_NEW_LOG", default="",
              help="Path to the new version oula log file")
@click.option("--zkwork-log", envvar="MINERWATCH_ZKWORK_LOG", default="", help="Path to the zkwork log file")
@click.option("--cysic-log", envvar="MINERWATCH_CYSIC_LOG", default="", help="Path to the cysic log file")
@click.option("--source", "extra_sources", multiple=True, metavar="FAMILY=PATH",
              help="Additional log to monitor, e.g. instant-rate=/var/log/prover.log")
@click.option("--pushgateway-url", envvar="MINERWATCH_PUSHGATEWAY_URL", help="Pushgateway URL")
@click.option("--job-name", envvar="MINERWATCH_JOB_NAME", help="Job name for Pushgateway")
@click.option("--instance-name", envvar="MINERWATCH_INSTANCE_NAME", help="Instance name for Pushgateway")
@click.option("--log-level", envvar="MINERWATCH_LOG_LEVEL", help="Logging level (DEBUG, INFO, ...)")
@click.version_option(version=AGENT_VERSION)
def main(config_path, oula_log, oula_new_log, zkwork_log, cysic_log, extra_sources,
         pushgateway_url, job_name, instance_name, log_level):
    """Tail miner logs and push their latest values to a Prometheus Pushgateway."""
    try:
        config = load_config(
            config_path,
            log_paths={
                "oula": oula_log,
                "oula_new": oula_new_log,
                "zkwork": zkwork_log,
                "cysic": cysic_log,
            },
            extra_sources=extra_sources,
            pushgateway_url=pushgateway_url,
            job_name=job_name,
            instance_name=instance_name,
            log_level=log_level,
        )
    except ConfigError as e:
        raise click.ClickException(str(e))

    log_file = Path(config.agent.log_file) if config.agent.log_file else None
    setup_logging(config.agent.log_level, log_file)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    agent = MinerWatchAgent(config)

    # Signal handling
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, agent.request_stop)

    try:
        loop.run_until_complete(agent.run())
    except KeyboardInterrupt:
        pass
    finally:
        loop.close()


if __name__ == "__main__":
    main()
