import asyncio
from typing import Any, Callable, Dict, List, Optional

from .collector.monitor import SourceMonitor
from .collector.tailer import FileTailer, LineSource
from .config.schema import LogSource, MinerWatchConfig
from .parser.registry import get_parser
from .publisher.pushgateway import MetricPublisher, PushTarget
from .utils.logging import get_logger

logger = get_logger("supervisor")

TailerFactory = Callable[[LogSource], LineSource]
PublisherFactory = Callable[[LogSource], MetricPublisher]


class Supervisor:
    """Runs one SourceMonitor task per configured log source.

    Monitors are independent: a monitor that ends, for whatever reason, is
    reported in the log and its siblings keep running.
    """

    def __init__(
        self,
        config: MinerWatchConfig,
        tailer_factory: Optional[TailerFactory] = None,
        publisher_factory: Optional[PublisherFactory] = None,
    ):
        self.config = config
        self.tailer_factory = tailer_factory or self.default_tailer
        self.publisher_factory = publisher_factory or self.default_publisher
        self.monitors: List[SourceMonitor] = []
        self.tasks: Dict[str, asyncio.Task] = {}
        self._stop_event = asyncio.Event()

    def default_tailer(self, source: LogSource) -> LineSource:
        return FileTailer(
            source.path,
            poll_interval=self.config.tail.poll_interval,
            encoding=self.config.tail.encoding,
        )

    def default_publisher(self, source: LogSource) -> MetricPublisher:
        gateway = self.config.pushgateway
        target = PushTarget.for_instance(gateway.url, gateway.job, gateway.instance, source.version)
        return MetricPublisher(target, timeout=gateway.timeout, help_text=source.help)

    def configured_sources(self) -> List[LogSource]:
        return [source for source in self.config.sources if source.configured]

    def start(self):
        sources = self.configured_sources()
        if not sources:
            logger.warning("No log sources configured, nothing to monitor")

        for source in sources:
            monitor = SourceMonitor(
                source,
                line_source=self.tailer_factory(source),
                parser=get_parser(source.family),
                publisher=self.publisher_factory(source),
            )
            task = asyncio.create_task(monitor.run(), name=f"monitor:{monitor.name}")
            task.add_done_callback(lambda t, m=monitor: self._on_monitor_done(m, t))
            self.monitors.append(monitor)
            self.tasks[monitor.name] = task

        logger.info(f"Started {len(self.tasks)} monitor(s)")

    def _on_monitor_done(self, monitor: SourceMonitor, task: asyncio.Task):
        if task.cancelled():
            logger.info(f"Monitor {monitor.name} stopped")
            return

        error = task.exception()
        if error:
            logger.error(f"Monitor {monitor.name} failed on {monitor.source.path}: {error}")
        else:
            logger.info(f"Monitor {monitor.name} finished: {monitor.source.path} has no more lines")

    async def run(self):
        """Start all monitors and block until stop() is called."""
        self.start()
        await self._stop_event.wait()

    async def stop(self):
        self._stop_event.set()
        for task in self.tasks.values():
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks.values(), return_exceptions=True)

    def snapshot(self) -> List[Dict[str, Any]]:
        return [monitor.snapshot() for monitor in self.monitors]
