import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..parser.registry import FAMILIES, get_family
from .defaults import (
    DEFAULT_INSTANCE_NAME,
    DEFAULT_JOB_NAME,
    DEFAULT_PUSHGATEWAY_URL,
    DEFAULT_SOCKET_PATH,
)

METRIC_NAME_PATTERN = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")


class AgentConfig(BaseModel):
    name: str = "minerwatch-agent"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    ipc_socket: str = str(DEFAULT_SOCKET_PATH)


class PushgatewayConfig(BaseModel):
    url: str = DEFAULT_PUSHGATEWAY_URL
    job: str = DEFAULT_JOB_NAME
    instance: str = DEFAULT_INSTANCE_NAME
    timeout: float = Field(default=10.0, gt=0)


class TailConfig(BaseModel):
    poll_interval: float = Field(default=0.5, gt=0)
    encoding: str = "utf-8"


class LogSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = ""
    family: str
    metric: str = ""
    help: str = ""
    version: Optional[str] = None
    enabled: bool = True

    @model_validator(mode="before")
    @classmethod
    def fill_from_family(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("family") not in FAMILIES:
            return data
        family = get_family(data["family"])
        data = dict(data)
        if not data.get("metric"):
            data["metric"] = family.default_metric
        if not data.get("help"):
            data["help"] = family.description
        return data

    @field_validator("family")
    @classmethod
    def check_family(cls, value: str) -> str:
        if value not in FAMILIES:
            raise ValueError(f"unknown family '{value}', expected one of {sorted(FAMILIES)}")
        return value

    @field_validator("metric")
    @classmethod
    def check_metric(cls, value: str) -> str:
        if not METRIC_NAME_PATTERN.fullmatch(value):
            raise ValueError(f"invalid metric name '{value}'")
        return value

    @property
    def configured(self) -> bool:
        return self.enabled and bool(self.path)

    @property
    def name(self) -> str:
        if self.version:
            return f"{self.metric}[{self.version}]"
        return self.metric


class MinerWatchConfig(BaseModel):
    agent: AgentConfig = Field(default_factory=AgentConfig)
    pushgateway: PushgatewayConfig = Field(default_factory=PushgatewayConfig)
    tail: TailConfig = Field(default_factory=TailConfig)
    sources: List[LogSource] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_metric_owners(self) -> "MinerWatchConfig":
        owners = {}
        for source in self.sources:
            if not source.configured:
                continue
            key = (source.metric, source.version)
            if key in owners:
                raise ValueError(
                    f"{source.path} and {owners[key]} both publish {source.name}"
                )
            owners[key] = source.path
        return self
