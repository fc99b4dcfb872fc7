"""Tests for the per-source tail -> parse -> publish loop."""

import asyncio

import pytest

from agent.minerwatch.collector.monitor import MonitorState, SourceMonitor
from agent.minerwatch.config.schema import LogSource
from agent.minerwatch.errors import TailAttachError, TailReadError
from agent.minerwatch.parser.registry import get_parser
from agent.minerwatch.publisher.pushgateway import MetricPublisher, PushTarget

from conftest import (
    BrokenLineSource,
    RecordingPublisher,
    ScriptedLineSource,
    UnreadableLineSource,
    wait_until,
)


def make_monitor(source: LogSource, line_source, publisher) -> SourceMonitor:
    return SourceMonitor(source, line_source, get_parser(source.family), publisher)


class TestSourceMonitor:
    @pytest.mark.asyncio
    async def test_publishes_every_matching_line_in_order(self, proof_source, recording_publisher) -> None:
        lines = ScriptedLineSource([
            "1min-proof-rate: 10",
            "connecting to pool",
            "1min-proof-rate: 30",
            "1min-proof-rate: 20",
            "1min-proof-rate: 20",
        ])
        monitor = make_monitor(proof_source, lines, recording_publisher)

        await monitor.run()

        assert recording_publisher.values == [10, 30, 20, 20]
        assert all(s.metric == "cysic_proof_rate" for s in recording_publisher.attempts)
        assert monitor.stats.lines == 5
        assert monitor.stats.samples == 4
        assert monitor.stats.published == 4

    @pytest.mark.asyncio
    async def test_publish_error_does_not_stop_the_loop(self, proof_source) -> None:
        publisher = RecordingPublisher(fail_on={2})
        lines = ScriptedLineSource(["1min-proof-rate: 1", "1min-proof-rate: 2", "1min-proof-rate: 3"])
        monitor = make_monitor(proof_source, lines, publisher)

        await monitor.run()

        assert publisher.values == [1, 2, 3]
        assert monitor.stats.published == 2
        assert monitor.stats.publish_errors == 1
        assert "connection refused" in monitor.stats.last_error
        assert monitor.state == MonitorState.STOPPED

    @pytest.mark.asyncio
    async def test_unparseable_lines_are_skipped(self, recording_publisher) -> None:
        source = LogSource(path="/var/log/oula.log", family="keyword-column", version="v2")
        lines = ScriptedLineSource(["total", "worker total 1 many", "worker total 1 3000 ok"])
        monitor = make_monitor(source, lines, recording_publisher)

        await monitor.run()

        assert recording_publisher.values == [3000]
        assert recording_publisher.attempts[0].metric == "oula_total"

    @pytest.mark.asyncio
    async def test_attach_failure_marks_monitor_failed(self, proof_source, recording_publisher) -> None:
        lines = UnreadableLineSource([])
        monitor = make_monitor(proof_source, lines, recording_publisher)

        with pytest.raises(TailAttachError):
            await monitor.run()

        assert monitor.state == MonitorState.FAILED
        assert "No such file" in monitor.stats.last_error
        assert lines.closed
        assert recording_publisher.attempts == []

    @pytest.mark.asyncio
    async def test_read_failure_after_running(self, proof_source, recording_publisher) -> None:
        lines = BrokenLineSource(["1min-proof-rate: 5"])
        monitor = make_monitor(proof_source, lines, recording_publisher)

        with pytest.raises(TailReadError):
            await monitor.run()

        assert recording_publisher.values == [5]
        assert monitor.state == MonitorState.FAILED
        assert lines.closed

    @pytest.mark.asyncio
    async def test_cancel_stops_the_monitor(self, proof_source, recording_publisher) -> None:
        lines = ScriptedLineSource(["1min-proof-rate: 5"], hold_open=True)
        monitor = make_monitor(proof_source, lines, recording_publisher)
        task = asyncio.create_task(monitor.run())

        await wait_until(lambda: monitor.stats.published == 1)
        assert monitor.state == MonitorState.RUNNING

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert monitor.state == MonitorState.STOPPED
        assert lines.closed

    def test_snapshot(self, proof_source, recording_publisher) -> None:
        monitor = make_monitor(proof_source, ScriptedLineSource([]), recording_publisher)

        snapshot = monitor.snapshot()

        assert snapshot["name"] == "cysic_proof_rate"
        assert snapshot["path"] == "/var/log/cysic.log"
        assert snapshot["family"] == "proof-rate"
        assert snapshot["state"] == "attaching"
        assert snapshot["published"] == 0
        assert snapshot["last_error"] is None


class ExplodingPublisher(RecordingPublisher):
    def publish(self, sample):
        self.attempts.append(sample)
        raise RuntimeError("registry exploded")


async def garbage_gateway(reader, writer):
    """Answers any HTTP request with a line that is not a status line."""
    try:
        await reader.readuntil(b"\r\n\r\n")
        writer.write(b"garbage\r\n\r\n")
        await writer.drain()
    except (asyncio.IncompleteReadError, ConnectionError):
        pass
    finally:
        writer.close()


class TestSourceMonitorFailures:
    @pytest.mark.asyncio
    async def test_out_of_range_value_does_not_stop_the_loop(self, recording_publisher) -> None:
        source = LogSource(path="/var/log/oula.log", family="keyword-column")
        lines = ScriptedLineSource(["w total 1 " + "9" * 400 + " ok", "w total 1 5 ok"])
        monitor = make_monitor(source, lines, recording_publisher)

        await monitor.run()

        assert recording_publisher.values == [5]
        assert monitor.stats.lines == 2
        assert monitor.state == MonitorState.STOPPED

    @pytest.mark.asyncio
    async def test_malformed_gateway_reply_is_a_publish_error(self, proof_source) -> None:
        server = await asyncio.start_server(garbage_gateway, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        publisher = MetricPublisher(
            PushTarget.for_instance(f"http://127.0.0.1:{port}", "log_monitor", "rig1"), timeout=2.0
        )
        lines = ScriptedLineSource(["1min-proof-rate: 1", "1min-proof-rate: 2"])
        monitor = make_monitor(proof_source, lines, publisher)

        try:
            await monitor.run()
        finally:
            server.close()
            await server.wait_closed()

        assert monitor.stats.samples == 2
        assert monitor.stats.publish_errors == 2
        assert monitor.stats.published == 0
        assert monitor.state == MonitorState.STOPPED

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_monitor_failed(self, proof_source) -> None:
        lines = ScriptedLineSource(["1min-proof-rate: 1", "1min-proof-rate: 2"])
        monitor = make_monitor(proof_source, lines, ExplodingPublisher())

        with pytest.raises(RuntimeError, match="registry exploded"):
            await monitor.run()

        assert monitor.state == MonitorState.FAILED
        assert monitor.stats.last_error == "RuntimeError: registry exploded"
        assert monitor.snapshot()["state"] == "failed"
        assert lines.closed
