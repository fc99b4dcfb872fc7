from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Callable, Dict, Optional

from prometheus_client import CollectorRegistry, Gauge, pushadd_to_gateway
from prometheus_client.exposition import default_handler

from ..errors import PublishError
from ..parser.base import Sample
from ..utils.logging import get_logger

logger = get_logger("publisher")


@dataclass(frozen=True)
class PushTarget:
    url: str
    job: str
    grouping_key: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_instance(cls, url: str, job: str, instance: str, version: Optional[str] = None) -> "PushTarget":
        grouping_key = {"instance": instance}
        if version:
            grouping_key["version"] = version
        return cls(url=url, job=job, grouping_key=grouping_key)


class MetricPublisher:
    """Pushes one gauge observation per call to a Prometheus Pushgateway.

    Every push builds its own registry, so nothing carries over between calls.
    The POST replaces the previous value of the same metric name under the
    target's grouping key and leaves other metrics in that group alone.
    Failures are raised as PublishError and the sample is dropped.
    """

    def __init__(
        self,
        target: PushTarget,
        timeout: float = 10.0,
        help_text: str = "",
        handler: Callable = default_handler,
    ):
        self.target = target
        self.timeout = timeout
        self.help_text = help_text
        self.handler = handler

    def build_registry(self, sample: Sample) -> CollectorRegistry:
        registry = CollectorRegistry()
        gauge = Gauge(sample.metric, self.help_text or sample.metric, registry=registry)
        gauge.set(sample.value)
        return registry

    def publish(self, sample: Sample):
        registry = self.build_registry(sample)
        try:
            pushadd_to_gateway(
                self.target.url,
                job=self.target.job,
                registry=registry,
                grouping_key=self.target.grouping_key,
                timeout=self.timeout,
                handler=self.handler,
            )
        except (OSError, HTTPException, ValueError) as e:
            raise PublishError(sample.metric, str(e)) from e

        logger.debug(f"Pushed {sample.metric}={sample.value} {self.target.grouping_key}")
