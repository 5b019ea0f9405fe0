"""Argument parsing, configuration loading, and command dispatch."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from types import FrameType

from . import __version__
from .autoscaling.cancellation import CancelToken
from .commands import run_command
from .config import AppConfig, apply_overrides, load_config, parse_tags
from .exceptions import ConfigError, SpotAsgError
from .logging_config import configure_logging, error_context

logger = logging.getLogger(__name__)


def _add_tags_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tags",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="tags to filter by (repeatable or comma-separated)",
    )


def _add_eventbridge_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--eb-eventbus-arn", help="send output to the specified Amazon EventBridge event bus")
    parser.add_argument("--eb-role-arn", help="role ARN to assume for sending events to the event bus")
    parser.add_argument("--eb-external-id", help="external ID to assume the event bus role with")
    parser.add_argument("--eb-region", help="the AWS region of the EventBridge event bus")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spot-asg",
        description="Update/create MixedInstancesPolicy for Amazon EC2 Auto Scaling groups",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", help="Path to an optional YAML configuration file")
    parser.add_argument("--role-arn", help="role ARN to assume")
    parser.add_argument("--external-id", help="external ID to assume role with")
    parser.add_argument("--region", help="the AWS region to send requests to")
    parser.add_argument("--log-level", help="log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--log-format", choices=("json", "text"), help="log output format")

    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="list EC2 Auto Scaling groups, filtered by tags")
    _add_tags_flag(list_cmd)
    _add_eventbridge_flags(list_cmd)

    update_cmd = sub.add_parser("update", help="update EC2 Auto Scaling groups to maximize Spot usage")
    _add_tags_flag(update_cmd)

    recommend_cmd = sub.add_parser(
        "recommend", help="recommend optimization for EC2 Auto Scaling groups to maximize Spot usage",
    )
    _add_tags_flag(recommend_cmd)
    _add_eventbridge_flags(recommend_cmd)

    sub.add_parser("get-caller-identity", help="get AWS caller identity")
    sub.add_parser("validate", help="validate the configuration and exit")
    return parser


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config) if args.config else AppConfig()
    items = [part for value in args.tags for part in value.split(",")] if hasattr(args, "tags") else []
    return apply_overrides(
        config,
        aws__role_arn=args.role_arn,
        aws__external_id=args.external_id,
        aws__region=args.region,
        eventbridge__event_bus_arn=getattr(args, "eb_eventbus_arn", None),
        eventbridge__role_arn=getattr(args, "eb_role_arn", None),
        eventbridge__external_id=getattr(args, "eb_external_id", None),
        eventbridge__region=getattr(args, "eb_region", None),
        discovery__tags=parse_tags(items),
        logging__level=args.log_level,
        logging__format=args.log_format,
    )


def _install_signal_handlers(cancel: CancelToken) -> dict[int, object]:
    """Cancel the running command on SIGINT/SIGTERM; returns the previous handlers."""

    def _handle(signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, canceling main command", sig_name)
        cancel.cancel(f"received {sig_name}")

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handle)
    return previous


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _resolve_config(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    if args.command == "validate":
        logger.info("Configuration is valid")
        return 0

    cancel = CancelToken.with_timeout(config.discovery.timeout_seconds)
    previous = _install_signal_handlers(cancel)
    try:
        logger.info("Running %s", args.command, extra={"command": args.command})
        run_command(args.command, config, cancel=cancel)
    except SpotAsgError as exc:
        logger.error("Fatal error: %s", exc, extra={**error_context(exc), "command": args.command})
        return 1
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    return 0
