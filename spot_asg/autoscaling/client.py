"""boto3-backed implementation of the AutoScalingPages Protocol."""

from __future__ import annotations

import logging
from typing import Any, Iterator

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import TransportError
from .models import ResourceRecord, TagEntry

logger = logging.getLogger(__name__)


class Boto3AutoScalingPages:
    """Pages through describe_tags / describe_auto_scaling_groups with boto3 paginators."""

    def __init__(self, session: boto3.Session):
        try:
            self._autoscaling = session.client("autoscaling")
        except BotoCoreError as exc:
            raise TransportError(f"Failed to create autoscaling client: {exc}") from exc

    @property
    def client(self) -> Any:
        """The underlying boto3 autoscaling client (shared with the updater)."""
        return self._autoscaling

    def describe_tags_pages(self, filters: list[dict], page_size: int) -> Iterator[list[TagEntry]]:
        paginator = self._autoscaling.get_paginator("describe_tags")
        pages = paginator.paginate(Filters=filters, PaginationConfig={"PageSize": page_size})
        for page in self._iterate("DescribeTags", pages):
            yield [TagEntry.from_api(t) for t in page.get("Tags", [])]

    def describe_groups_pages(self, names: list[str], page_size: int) -> Iterator[list[ResourceRecord]]:
        paginator = self._autoscaling.get_paginator("describe_auto_scaling_groups")
        pages = paginator.paginate(AutoScalingGroupNames=names, PaginationConfig={"PageSize": page_size})
        for page in self._iterate("DescribeAutoScalingGroups", pages):
            yield [ResourceRecord.from_api(g) for g in page.get("AutoScalingGroups", [])]

    @staticmethod
    def _iterate(operation: str, pages: Any) -> Iterator[dict[str, Any]]:
        """Iterate paginator pages, translating botocore failures into TransportError."""
        iterator = iter(pages)
        while True:
            try:
                page = next(iterator)
            except StopIteration:
                return
            except ClientError as exc:
                code = exc.response.get("Error", {}).get("Code")
                raise TransportError(f"{operation} failed: {exc}", operation=operation, error_code=code) from exc
            except BotoCoreError as exc:
                raise TransportError(f"{operation} failed: {exc}", operation=operation) from exc
            yield page
