"""Tests for the boto3-backed AutoScalingPages implementation."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoRegionError

from spot_asg.autoscaling import AutoScalingPages
from spot_asg.autoscaling.client import Boto3AutoScalingPages
from spot_asg.autoscaling.lister import AsgLister
from spot_asg.autoscaling.models import ResourceRecord, TagEntry
from spot_asg.exceptions import BatchDescribeError, TagIndexQueryError, TransportError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tag_row(name: str, key: str = "env", value: str = "prod", resource_type: str = "auto-scaling-group") -> dict:
    return {"ResourceId": name, "ResourceType": resource_type, "Key": key, "Value": value, "PropagateAtLaunch": True}


def _raw_group(name: str, tags: dict[str, str] | None = None, status: str | None = None) -> dict:
    """Build a minimal group dict as returned by describe_auto_scaling_groups."""
    result = {
        "AutoScalingGroupName": name,
        "AutoScalingGroupARN": f"arn:aws:autoscaling:us-east-1:123456789012:autoScalingGroup:u:autoScalingGroupName/{name}",
        "LaunchTemplate": {"LaunchTemplateId": "lt-0abc", "LaunchTemplateName": "web", "Version": "$Latest"},
        "MinSize": 1,
        "MaxSize": 3,
        "DesiredCapacity": 2,
        "Tags": [_tag_row(name, k, v) for k, v in (tags or {}).items()],
    }
    if status:
        result["Status"] = status
    return result


def _make_paginator_response(page_data: list[dict]):
    """Create a mock paginator that yields the given pages."""
    mock_paginator = MagicMock()
    mock_paginator.paginate.return_value = iter(page_data)
    return mock_paginator


def _failing_paginator(pages_before: list[dict], exc: Exception):
    def _pages():
        yield from pages_before
        raise exc

    mock_paginator = MagicMock()
    mock_paginator.paginate.return_value = _pages()
    return mock_paginator


def _client_error(code: str = "Throttling", operation: str = "DescribeTags") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "Rate exceeded"}}, operation)


def _make_pages(asg_mock) -> Boto3AutoScalingPages:
    session = MagicMock()
    session.client.return_value = asg_mock
    return Boto3AutoScalingPages(session)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestBoto3AutoScalingPages:
    def test_satisfies_protocol(self):
        assert isinstance(_make_pages(MagicMock()), AutoScalingPages)

    def test_creates_autoscaling_client(self):
        session = MagicMock()
        Boto3AutoScalingPages(session)
        session.client.assert_called_once_with("autoscaling")

    def test_missing_region_becomes_transport_error(self):
        session = MagicMock()
        session.client.side_effect = NoRegionError()
        with pytest.raises(TransportError, match="autoscaling client"):
            Boto3AutoScalingPages(session)

    def test_describe_tags_pages(self):
        asg = MagicMock()
        asg.get_paginator.return_value = _make_paginator_response([
            {"Tags": [_tag_row("asg-1"), _tag_row("asg-2")]},
            {"Tags": [_tag_row("asg-3")]},
        ])
        filters = [{"Name": "key", "Values": ["env"]}, {"Name": "value", "Values": ["prod"]}]

        pages = list(_make_pages(asg).describe_tags_pages(filters, 100))

        asg.get_paginator.assert_called_once_with("describe_tags")
        asg.get_paginator.return_value.paginate.assert_called_once_with(
            Filters=filters, PaginationConfig={"PageSize": 100},
        )
        assert [[e.resource_id for e in p] for p in pages] == [["asg-1", "asg-2"], ["asg-3"]]
        assert isinstance(pages[0][0], TagEntry)

    def test_describe_groups_pages(self):
        asg = MagicMock()
        asg.get_paginator.return_value = _make_paginator_response([
            {"AutoScalingGroups": [_raw_group("asg-1", {"env": "prod"})]},
            {"AutoScalingGroups": [_raw_group("asg-2", status="Delete in progress")]},
        ])

        pages = list(_make_pages(asg).describe_groups_pages(["asg-1", "asg-2"], 50))

        asg.get_paginator.assert_called_once_with("describe_auto_scaling_groups")
        asg.get_paginator.return_value.paginate.assert_called_once_with(
            AutoScalingGroupNames=["asg-1", "asg-2"], PaginationConfig={"PageSize": 50},
        )
        first, second = pages[0][0], pages[1][0]
        assert isinstance(first, ResourceRecord)
        assert first.tag_map == {"env": "prod"}
        assert first.raw["DesiredCapacity"] == 2
        assert second.status == "Delete in progress"

    def test_client_error_becomes_transport_error(self):
        asg = MagicMock()
        asg.get_paginator.return_value = _failing_paginator([{"Tags": [_tag_row("asg-1")]}], _client_error())

        iterator = _make_pages(asg).describe_tags_pages([], 100)
        assert len(next(iterator)) == 1
        with pytest.raises(TransportError) as excinfo:
            next(iterator)
        assert excinfo.value.error_code == "Throttling"
        assert excinfo.value.operation == "DescribeTags"

    def test_botocore_error_becomes_transport_error(self):
        asg = MagicMock()
        asg.get_paginator.return_value = _failing_paginator(
            [], EndpointConnectionError(endpoint_url="https://autoscaling.us-east-1.amazonaws.com"),
        )
        with pytest.raises(TransportError, match="DescribeAutoScalingGroups"):
            list(_make_pages(asg).describe_groups_pages(["asg-1"], 50))


class TestListerWithBoto3Pages:
    """The facade driven through mocked boto3 paginators."""

    def _asg_mock(self, tag_paginator, group_paginators: list) -> MagicMock:
        asg = MagicMock()
        group_iter = iter(group_paginators)
        asg.get_paginator.side_effect = lambda name: (
            tag_paginator if name == "describe_tags" else next(group_iter)
        )
        return asg

    def test_exact_match_after_inexact_index(self):
        tag_paginator = _make_paginator_response([
            {"Tags": [_tag_row("asg-1"), _tag_row("asg-2", "team", "prod")]},
        ])
        group_paginator = _make_paginator_response([{"AutoScalingGroups": [
            _raw_group("asg-1", {"env": "prod"}),
            _raw_group("asg-2", {"env": "staging", "team": "prod"}),
        ]}])
        asg = self._asg_mock(tag_paginator, [group_paginator])

        groups = AsgLister(_make_pages(asg)).list_groups({"env": "prod"})

        assert [g.name for g in groups] == ["asg-1"]
        tag_paginator.paginate.assert_called_once_with(
            Filters=[{"Name": "key", "Values": ["env"]}, {"Name": "value", "Values": ["prod"]}],
            PaginationConfig={"PageSize": 100},
        )

    def test_tag_index_failure_on_second_page(self):
        tag_paginator = _failing_paginator([{"Tags": [_tag_row("asg-1")]}], _client_error())
        asg = self._asg_mock(tag_paginator, [])

        with pytest.raises(TagIndexQueryError):
            AsgLister(_make_pages(asg)).list_groups({"env": "prod"})
        assert [c.args[0] for c in asg.get_paginator.call_args_list] == ["describe_tags"]

    def test_describe_failure(self):
        tag_paginator = _make_paginator_response([{"Tags": [_tag_row("asg-1")]}])
        group_paginator = _failing_paginator([], _client_error("AccessDenied", "DescribeAutoScalingGroups"))
        asg = self._asg_mock(tag_paginator, [group_paginator])

        with pytest.raises(BatchDescribeError) as excinfo:
            AsgLister(_make_pages(asg)).list_groups({"env": "prod"})
        assert excinfo.value.batch_index == 0
        assert excinfo.value.__cause__.error_code == "AccessDenied"
