"""Publishes discovery and recommendation results to an EventBridge event bus."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import EventBridgeConfig
from ..exceptions import PublishError
from ..session import create_session

logger = logging.getLogger(__name__)

MAX_ENTRIES_PER_PUT = 10


class EventPublisher:
    """Sends one EventBridge event per item, in PutEvents calls of at most 10 entries."""

    def __init__(self, events_client: Any, config: EventBridgeConfig):
        self._events = events_client
        self._config = config

    @classmethod
    def from_config(cls, config: EventBridgeConfig) -> EventPublisher:
        session: boto3.Session = create_session(config)
        try:
            client = session.client("events")
        except BotoCoreError as exc:
            raise PublishError(f"Failed to create EventBridge client: {exc}") from exc
        return cls(client, config)

    def publish_events(self, events: Iterable[Any]) -> int:
        """Publish events (JSON-serialisable; datetimes are stringified). Returns the count sent."""
        entries = [self._entry(e) for e in events]
        for i in range(0, len(entries), MAX_ENTRIES_PER_PUT):
            chunk = entries[i : i + MAX_ENTRIES_PER_PUT]
            try:
                response = self._events.put_events(Entries=chunk)
            except (BotoCoreError, ClientError) as exc:
                raise PublishError(f"PutEvents failed: {exc}") from exc

            if response.get("FailedEntryCount", 0):
                failed = [r for r in response.get("Entries", []) if r.get("ErrorCode")]
                raise PublishError(
                    f"EventBridge rejected {response['FailedEntryCount']} of {len(chunk)} events",
                    failed_entries=failed,
                )

        logger.info("Published %d events to %s", len(entries), self._config.event_bus_arn, extra={"events": len(entries)})
        return len(entries)

    def _entry(self, event: Any) -> dict[str, str]:
        return {
            "Source": self._config.source,
            "DetailType": self._config.detail_type,
            "Detail": json.dumps(event, default=str),
            "EventBusName": self._config.event_bus_arn,
        }
