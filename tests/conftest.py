"""Shared fakes for the monitor pipeline tests."""

import asyncio
from typing import Callable, Iterable, List

import pytest

from agent.minerwatch.collector.tailer import LineSource
from agent.minerwatch.config.schema import LogSource
from agent.minerwatch.errors import PublishError, TailAttachError, TailReadError
from agent.minerwatch.parser.base import Sample
from agent.minerwatch.publisher.pushgateway import MetricPublisher, PushTarget


class ScriptedLineSource(LineSource):
    """Feeds literal lines, then either ends or blocks like a real tailer."""

    def __init__(self, lines: Iterable[str], name: str = "scripted", hold_open: bool = False):
        self.name = name
        self.script = list(lines)
        self.hold_open = hold_open
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def lines(self):
        for line in self.script:
            yield line
        if self.hold_open:
            await asyncio.Event().wait()

    def close(self):
        self.closed = True


class UnreadableLineSource(ScriptedLineSource):
    async def open(self):
        raise TailAttachError(self.name, "No such file or directory")


class BrokenLineSource(ScriptedLineSource):
    """Yields its script, then fails the way a broken read channel does."""

    async def lines(self):
        for line in self.script:
            yield line
        raise TailReadError(self.name, "Input/output error")


class RecordingPublisher(MetricPublisher):
    def __init__(self, fail_on: Iterable = ()):
        super().__init__(PushTarget.for_instance("http://gateway:9091", "log_monitor", "rig1"))
        self.attempts: List[Sample] = []
        self.fail_on = set(fail_on)

    def publish(self, sample: Sample):
        self.attempts.append(sample)
        if sample.value in self.fail_on:
            raise PublishError(sample.metric, "connection refused")

    @property
    def values(self):
        return [sample.value for sample in self.attempts]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll predicate until it holds or fail the test after timeout."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def proof_source() -> LogSource:
    return LogSource(path="/var/log/cysic.log", family="proof-rate")


@pytest.fixture
def recording_publisher() -> RecordingPublisher:
    return RecordingPublisher()
