from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .defaults import DEFAULT_CONFIG_PATH, KNOWN_SOURCES
from .schema import MinerWatchConfig


class ConfigLoader:
    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        self.config_path = config_path

    def load_raw(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path, "r") as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing config file: {e}")

        if not isinstance(raw_config, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a mapping")
        return raw_config

    def load(self) -> MinerWatchConfig:
        """
        Load configuration from YAML file, validation with Pydantic schema.
        Returns default config if file does not exist.
        """
        return build_config(self.load_raw())


def build_config(raw_config: Dict[str, Any]) -> MinerWatchConfig:
    try:
        return MinerWatchConfig(**raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")


def parse_source_option(option: str) -> Dict[str, str]:
    """Turn a FAMILY=PATH command line value into a source mapping."""
    family, sep, path = option.partition("=")
    if not sep or not family.strip():
        raise ConfigError(f"Expected FAMILY=PATH, got '{option}'")
    return {"family": family.strip(), "path": path.strip()}


def apply_overrides(
    raw_config: Dict[str, Any],
    log_paths: Optional[Dict[str, Optional[str]]] = None,
    extra_sources: Iterable[str] = (),
    pushgateway_url: Optional[str] = None,
    job_name: Optional[str] = None,
    instance_name: Optional[str] = None,
    log_level: Optional[str] = None,
) -> Dict[str, Any]:
    """Merge command line values over a raw config mapping. Flags win over the file."""
    merged = dict(raw_config)

    pushgateway = dict(merged.get("pushgateway") or {})
    if pushgateway_url:
        pushgateway["url"] = pushgateway_url
    if job_name:
        pushgateway["job"] = job_name
    if instance_name:
        pushgateway["instance"] = instance_name
    merged["pushgateway"] = pushgateway

    if log_level:
        agent = dict(merged.get("agent") or {})
        agent["log_level"] = log_level
        merged["agent"] = agent

    sources = list(merged.get("sources") or [])
    for key, path in (log_paths or {}).items():
        if path:
            sources.append({**KNOWN_SOURCES[key], "path": path})
    for option in extra_sources:
        sources.append(parse_source_option(option))
    merged["sources"] = sources

    return merged


def load_config(path: Optional[Path] = None, **overrides: Any) -> MinerWatchConfig:
    """Helper function to load config from a specific path or default, with flag overrides."""
    loader = ConfigLoader(path or DEFAULT_CONFIG_PATH)
    return build_config(apply_overrides(loader.load_raw(), **overrides))
