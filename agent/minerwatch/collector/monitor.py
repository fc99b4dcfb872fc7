import asyncio
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..config.schema import LogSource
from ..errors import PublishError, TailError
from ..parser.base import LineParser, Sample
from ..publisher.pushgateway import MetricPublisher
from ..utils.logging import get_logger
from .tailer import LineSource

logger = get_logger("source_monitor")


class MonitorState(str, Enum):
    ATTACHING = "attaching"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class MonitorStats:
    lines: int = 0
    samples: int = 0
    published: int = 0
    publish_errors: int = 0
    last_error: Optional[str] = None


class SourceMonitor:
    """Tail -> parse -> publish loop for a single log source."""

    def __init__(
        self,
        source: LogSource,
        line_source: LineSource,
        parser: LineParser,
        publisher: MetricPublisher,
    ):
        self.source = source
        self.line_source = line_source
        self.parser = parser
        self.publisher = publisher
        self.state = MonitorState.ATTACHING
        self.stats = MonitorStats()

    @property
    def name(self) -> str:
        return self.source.name

    async def run(self):
        """
        Follow the source until cancelled.
        Tail errors, and anything else that escapes the loop, mark the monitor
        failed and are re-raised to the caller; publish errors are logged and
        the loop moves on to the next line.
        """
        self.state = MonitorState.ATTACHING
        try:
            await self.line_source.open()
            self.state = MonitorState.RUNNING
            logger.info(f"Monitoring {self.source.path} ({self.source.family} -> {self.name})")

            async for line in self.line_source.lines():
                await self.handle_line(line)

            self.state = MonitorState.STOPPED
        except TailError as e:
            self.state = MonitorState.FAILED
            self.stats.last_error = str(e)
            raise
        except asyncio.CancelledError:
            self.state = MonitorState.STOPPED
            raise
        except Exception as e:
            self.state = MonitorState.FAILED
            self.stats.last_error = f"{type(e).__name__}: {e}"
            raise
        finally:
            self.line_source.close()

    async def handle_line(self, line: str):
        self.stats.lines += 1

        value = self.parser.parse(line)
        if value is None:
            logger.debug(f"{self.name}: no sample in {line!r}")
            return

        self.stats.samples += 1
        sample = Sample(metric=self.source.metric, value=value)
        try:
            await asyncio.to_thread(self.publisher.publish, sample)
        except PublishError as e:
            self.stats.publish_errors += 1
            self.stats.last_error = str(e)
            logger.warning(f"Could not push to Pushgateway: {e}")
            return

        self.stats.published += 1

    def snapshot(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.source.path,
            "family": self.source.family,
            "metric": self.source.metric,
            "version": self.source.version,
            "state": self.state.value,
            **asdict(self.stats),
        }
