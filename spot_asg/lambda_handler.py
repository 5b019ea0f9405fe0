"""AWS Lambda entry point.

Example event:
    {"command": "recommend", "tags": {"env": "prod"}}

Configuration comes from the YAML file named by SPOT_ASG_CONFIG when set,
otherwise from SPOT_ASG_* environment variables (see config.config_from_env).
"""

from __future__ import annotations

import logging
import os
from typing import Any

from .autoscaling.cancellation import CancelToken
from .commands import run_command
from .config import AppConfig, config_from_env, load_config, parse_tags
from .exceptions import ConfigError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

# Stop paging this long before Lambda kills the invocation
_SAFETY_MARGIN_MS = 5000


def _load_config() -> AppConfig:
    path = os.environ.get("SPOT_ASG_CONFIG")
    if path:
        return load_config(path)
    return config_from_env()


def _event_tags(event: dict[str, Any]) -> dict[str, str] | None:
    tags = event.get("tags")
    if tags is None:
        return None
    if isinstance(tags, dict):
        return {str(k): str(v) for k, v in tags.items()}
    if isinstance(tags, str):
        return parse_tags(tags.split(","))
    if isinstance(tags, list):
        return parse_tags(str(t) for t in tags)
    raise ConfigError(
        f"Event tags must be a mapping, a list or a comma-separated string, got {type(tags).__name__}"
    )


def _cancel_token(context: Any, config: AppConfig) -> CancelToken:
    timeout = config.discovery.timeout_seconds
    remaining = getattr(context, "get_remaining_time_in_millis", None)
    if callable(remaining):
        budget = max(remaining() - _SAFETY_MARGIN_MS, 0) / 1000.0
        timeout = budget if timeout is None else min(timeout, budget)
    return CancelToken.with_timeout(timeout)


def handler(event: dict[str, Any] | None, context: Any) -> dict[str, Any]:
    """Run one spot-asg command. Errors propagate so Lambda records the invocation as failed."""
    event = event or {}
    config = _load_config()
    configure_logging(config.logging)

    command = event.get("command") or os.environ.get("SPOT_ASG_COMMAND", "list")
    request_id = getattr(context, "aws_request_id", "local")
    logger.info("Lambda invoked (request %s)", request_id, extra={"command": command})

    result = run_command(command, config, tags=_event_tags(event), cancel=_cancel_token(context, config))
    result["request_id"] = request_id
    return result
