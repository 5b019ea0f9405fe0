"""Command implementations shared by the CLI and the Lambda handler."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from .autoscaling.cancellation import CancelToken
from .autoscaling.client import Boto3AutoScalingPages
from .autoscaling.lister import AsgLister
from .autoscaling.updater import AsgUpdater
from .config import AppConfig
from .eventbridge.publisher import EventPublisher
from .exceptions import ConfigError, UpdateError
from .session import create_session, get_caller_identity

logger = logging.getLogger(__name__)

COMMANDS = ("list", "update", "recommend", "get-caller-identity")


def _print_json(obj: Any, out: TextIO | None) -> None:
    out = out or sys.stdout
    out.write(json.dumps(obj, indent=2, default=str))
    out.write("\n")


def list_groups(
    lister: AsgLister,
    tags: dict[str, str],
    publisher: EventPublisher | None = None,
    cancel: CancelToken | None = None,
    out: TextIO | None = None,
) -> list[dict[str, Any]]:
    """Discover groups and publish them (one event per group) or print them."""
    groups = [g.raw for g in lister.list_groups(tags, cancel)]
    if publisher is not None:
        publisher.publish_events(groups)
    else:
        _print_json(groups, out)
    return groups


def update_groups(
    lister: AsgLister,
    updater: AsgUpdater,
    tags: dict[str, str],
    cancel: CancelToken | None = None,
) -> int:
    """Update every matched group; a failing group does not stop the others.

    Re-raises the last UpdateError once all groups were attempted.
    """
    last_error: UpdateError | None = None
    updated = 0
    for group in lister.list_groups(tags, cancel):
        logger.info("Update autoscaling group %s", group.arn, extra={"group": group.name})
        try:
            updater.update_group(group)
            updated += 1
        except UpdateError as exc:
            logger.error("Failed to update autoscaling group %s: %s", group.arn, exc, extra={"group": group.name})
            last_error = exc
    if last_error is not None:
        raise last_error
    return updated


def recommend_groups(
    lister: AsgLister,
    updater: AsgUpdater,
    tags: dict[str, str],
    publisher: EventPublisher | None = None,
    cancel: CancelToken | None = None,
    out: TextIO | None = None,
) -> list[dict[str, Any]]:
    """Compute (without applying) the update for every matched group, publishing or printing each."""
    last_error: UpdateError | None = None
    recommendations: list[dict[str, Any]] = []
    for group in lister.list_groups(tags, cancel):
        logger.info("Get recommendation for autoscaling group %s", group.arn, extra={"group": group.name})
        try:
            recommendation = updater.create_update_input(group)
        except UpdateError as exc:
            logger.error(
                "Failed to recommend optimization for autoscaling group %s: %s", group.arn, exc,
                extra={"group": group.name},
            )
            last_error = exc
            continue
        recommendations.append(recommendation)
        if publisher is not None:
            publisher.publish_events([recommendation])
        else:
            _print_json(recommendation, out)
    if last_error is not None:
        raise last_error
    return recommendations


def caller_identity(config: AppConfig, out: TextIO | None = None) -> dict[str, str]:
    identity = get_caller_identity(create_session(config.aws))
    _print_json(identity, out)
    return identity


def run_command(
    command: str,
    config: AppConfig,
    tags: dict[str, str] | None = None,
    cancel: CancelToken | None = None,
    out: TextIO | None = None,
) -> dict[str, Any]:
    """Wire AWS clients from config and run one command. Returns a summary dict."""
    if command not in COMMANDS:
        raise ConfigError(f"Unknown command '{command}'. Valid commands: {', '.join(COMMANDS)}")

    if command == "get-caller-identity":
        return {"command": command, "identity": caller_identity(config, out)}

    tags = config.discovery.tags if tags is None else tags
    if cancel is None:
        cancel = CancelToken.with_timeout(config.discovery.timeout_seconds)

    pages = Boto3AutoScalingPages(create_session(config.aws))
    lister = AsgLister(pages, describe_workers=config.discovery.describe_workers)

    publisher = None
    if command != "update" and config.eventbridge.event_bus_arn:
        publisher = EventPublisher.from_config(config.eventbridge)

    if command == "list":
        groups = list_groups(lister, tags, publisher, cancel, out)
        return {"command": command, "groups": len(groups)}

    updater = AsgUpdater(pages.client, config.spot)
    if command == "update":
        return {"command": command, "updated": update_groups(lister, updater, tags, cancel)}
    recommendations = recommend_groups(lister, updater, tags, publisher, cancel, out)
    return {"command": command, "recommendations": len(recommendations)}
