"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import dataclasses
import os
import re
import types
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

SPOT_ALLOCATION_STRATEGIES = (
    "lowest-price",
    "capacity-optimized",
    "capacity-optimized-prioritized",
    "price-capacity-optimized",
)


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class AWSConfig:
    role_arn: str = ""  # empty = use the default boto3 credential chain
    external_id: str = ""
    region: str = ""  # empty = boto3 default region resolution
    session_name: str = "spot-asg"


@dataclass(frozen=True)
class EventBridgeConfig:
    event_bus_arn: str = ""  # empty = print results instead of publishing
    role_arn: str = ""
    external_id: str = ""
    region: str = ""
    session_name: str = "spot-asg-events"
    source: str = "spot-asg"
    detail_type: str = "autoscaling-group"


@dataclass(frozen=True)
class DiscoveryConfig:
    tags: dict[str, str] = field(default_factory=dict)
    describe_workers: int = 1  # 1 = sequential batches
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class SpotPolicyConfig:
    on_demand_base_capacity: int = 0
    on_demand_percentage_above_base: int = 0
    spot_allocation_strategy: str = "capacity-optimized"
    instance_types: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    aws: AWSConfig = field(default_factory=AWSConfig)
    eventbridge: EventBridgeConfig = field(default_factory=EventBridgeConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    spot: SpotPolicyConfig = field(default_factory=SpotPolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_dataclass_type(ft: Any) -> type | None:
    """Return the underlying dataclass type from a type annotation (handles Optional/X|None)."""
    if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__"):
        return ft
    if isinstance(ft, types.UnionType):
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    origin = getattr(ft, "__origin__", None)
    if origin is typing.Union:
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    return None


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        dc_type = _get_dataclass_type(field_types[key])
        if dc_type is not None and isinstance(value, dict):
            kwargs[key] = _build_nested(dc_type, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    validate(config)
    return config


def config_from_env(environ: typing.Mapping[str, str] | None = None) -> AppConfig:
    """Build a configuration from SPOT_ASG_* environment variables (Lambda deployments)."""
    env = os.environ if environ is None else environ
    timeout = env.get("SPOT_ASG_TIMEOUT_SECONDS")
    try:
        config = AppConfig(
            aws=AWSConfig(
                role_arn=env.get("SPOT_ASG_ROLE_ARN", ""),
                external_id=env.get("SPOT_ASG_EXTERNAL_ID", ""),
                region=env.get("SPOT_ASG_REGION", ""),
            ),
            eventbridge=EventBridgeConfig(
                event_bus_arn=env.get("SPOT_ASG_EVENT_BUS_ARN", ""),
                role_arn=env.get("SPOT_ASG_EB_ROLE_ARN", ""),
                external_id=env.get("SPOT_ASG_EB_EXTERNAL_ID", ""),
                region=env.get("SPOT_ASG_EB_REGION", ""),
            ),
            discovery=DiscoveryConfig(
                tags=parse_tags(env.get("SPOT_ASG_TAGS", "").split(",")),
                describe_workers=int(env.get("SPOT_ASG_DESCRIBE_WORKERS", "1")),
                timeout_seconds=float(timeout) if timeout else None,
            ),
            logging=LoggingConfig(
                level=env.get("SPOT_ASG_LOG_LEVEL", "INFO"),
                format=env.get("SPOT_ASG_LOG_FORMAT", "json"),
            ),
        )
    except ValueError as exc:
        raise ConfigError(f"Invalid numeric environment setting: {exc}") from exc
    validate(config)
    return config


def parse_tags(items: typing.Iterable[str]) -> dict[str, str]:
    """Parse "key=value" strings into a tag map; items without exactly one '=' are ignored."""
    tags: dict[str, str] = {}
    for item in items:
        kv = item.split("=")
        if len(kv) == 2:
            tags[kv[0]] = kv[1]
    return tags


def apply_overrides(config: AppConfig, **overrides: Any) -> AppConfig:
    """Return a copy of config with dotted-path overrides applied, e.g. ``aws__region="eu-west-1"``.

    Overrides whose value is None or empty are ignored so unset CLI flags keep file values.
    """
    sections: dict[str, dict[str, Any]] = {}
    for name, value in overrides.items():
        if value is None or value == "" or value == {}:
            continue
        section, _, attr = name.partition("__")
        if not attr or not hasattr(config, section) or not hasattr(getattr(config, section), attr):
            raise ConfigError(f"Unknown configuration override: {name}")
        sections.setdefault(section, {})[attr] = value

    for section, values in sections.items():
        config = dataclasses.replace(config, **{section: dataclasses.replace(getattr(config, section), **values)})
    validate(config)
    return config


def validate(config: AppConfig) -> None:
    """Validate configuration values."""
    for label, arn in (("aws.role_arn", config.aws.role_arn), ("eventbridge.role_arn", config.eventbridge.role_arn)):
        if arn and not arn.startswith("arn:"):
            raise ConfigError(f"{label} must be an ARN (got '{arn}')")

    if config.eventbridge.event_bus_arn and not config.eventbridge.event_bus_arn.startswith("arn:"):
        raise ConfigError("eventbridge.event_bus_arn must be an event bus ARN")

    if not isinstance(config.discovery.tags, dict):
        raise ConfigError("discovery.tags must be a mapping of tag key to value")

    if config.discovery.describe_workers < 1:
        raise ConfigError("discovery.describe_workers must be >= 1")

    if config.discovery.timeout_seconds is not None and config.discovery.timeout_seconds <= 0:
        raise ConfigError("discovery.timeout_seconds must be > 0")

    if config.spot.on_demand_base_capacity < 0:
        raise ConfigError("spot.on_demand_base_capacity must be >= 0")

    if not 0 <= config.spot.on_demand_percentage_above_base <= 100:
        raise ConfigError("spot.on_demand_percentage_above_base must be between 0 and 100")

    if config.spot.spot_allocation_strategy not in SPOT_ALLOCATION_STRATEGIES:
        raise ConfigError(
            "spot.spot_allocation_strategy must be one of: " + ", ".join(SPOT_ALLOCATION_STRATEGIES)
        )

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")
