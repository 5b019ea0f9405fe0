"""Tests for the EventBridge publisher."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoRegionError

from spot_asg.config import EventBridgeConfig
from spot_asg.eventbridge.publisher import EventPublisher
from spot_asg.exceptions import PublishError

BUS = "arn:aws:events:us-east-1:123456789012:event-bus/spot"


def _publisher(client=None) -> tuple[EventPublisher, MagicMock]:
    client = client or MagicMock()
    client.put_events.return_value = {"FailedEntryCount": 0, "Entries": []}
    return EventPublisher(client, EventBridgeConfig(event_bus_arn=BUS)), client


class TestPublishEvents:
    def test_entry_shape(self):
        publisher, client = _publisher()
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert publisher.publish_events([{"AutoScalingGroupName": "web", "CreatedTime": created}]) == 1

        entry = client.put_events.call_args.kwargs["Entries"][0]
        assert entry["Source"] == "spot-asg"
        assert entry["DetailType"] == "autoscaling-group"
        assert entry["EventBusName"] == BUS
        assert json.loads(entry["Detail"]) == {"AutoScalingGroupName": "web", "CreatedTime": str(created)}

    def test_chunks_of_ten(self):
        publisher, client = _publisher()
        publisher.publish_events([{"n": i} for i in range(23)])
        sizes = [len(c.kwargs["Entries"]) for c in client.put_events.call_args_list]
        assert sizes == [10, 10, 3]

    def test_nothing_to_publish(self):
        publisher, client = _publisher()
        assert publisher.publish_events([]) == 0
        client.put_events.assert_not_called()

    def test_failed_entries_raise(self):
        publisher, client = _publisher()
        client.put_events.return_value = {
            "FailedEntryCount": 1,
            "Entries": [{"EventId": "1"}, {"ErrorCode": "InternalFailure", "ErrorMessage": "oops"}],
        }
        with pytest.raises(PublishError, match="rejected 1 of 2") as excinfo:
            publisher.publish_events([{"a": 1}, {"b": 2}])
        assert excinfo.value.failed_entries == [{"ErrorCode": "InternalFailure", "ErrorMessage": "oops"}]

    def test_api_error_raises(self):
        publisher, client = _publisher()
        client.put_events.side_effect = ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutEvents")
        with pytest.raises(PublishError, match="PutEvents failed"):
            publisher.publish_events([{"a": 1}])


class TestFromConfig:
    def test_uses_eventbridge_role(self):
        config = EventBridgeConfig(event_bus_arn=BUS, role_arn="arn:aws:iam::1:role/eb", region="us-west-2")
        with patch("spot_asg.eventbridge.publisher.create_session") as create_session:
            session = MagicMock()
            create_session.return_value = session
            EventPublisher.from_config(config)
        create_session.assert_called_once_with(config)
        session.client.assert_called_once_with("events")

    def test_missing_region_becomes_publish_error(self):
        with patch("spot_asg.eventbridge.publisher.create_session") as create_session:
            create_session.return_value.client.side_effect = NoRegionError()
            with pytest.raises(PublishError, match="EventBridge client"):
                EventPublisher.from_config(EventBridgeConfig(event_bus_arn=BUS))
