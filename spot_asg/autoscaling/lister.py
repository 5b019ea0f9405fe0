"""Discovery facade: tag-index query -> batched describe -> exact match and lifecycle filter."""

from __future__ import annotations

import logging

from ..config import AWSConfig, DiscoveryConfig
from ..session import create_session
from . import AutoScalingPages
from .cancellation import CancelToken
from .client import Boto3AutoScalingPages
from .describe import describe_concurrently, iter_descriptions
from .matcher import GroupMatcher
from .models import ResourceRecord
from .tag_index import query_candidate_names

logger = logging.getLogger(__name__)


class AsgLister:
    """Lists Auto Scaling groups whose tags match a tag map exactly."""

    def __init__(self, pages: AutoScalingPages, describe_workers: int = 1):
        self._pages = pages
        self._workers = describe_workers

    @classmethod
    def from_config(cls, aws_config: AWSConfig, discovery: DiscoveryConfig | None = None) -> AsgLister:
        workers = discovery.describe_workers if discovery is not None else 1
        return cls(Boto3AutoScalingPages(create_session(aws_config)), describe_workers=workers)

    def list_groups(self, tags: dict[str, str], cancel: CancelToken | None = None) -> list[ResourceRecord]:
        """Return every stable group carrying all of tags, in batch/API order.

        Raises TagIndexQueryError, BatchDescribeError or DiscoveryCancelled;
        never returns a partial result.
        """
        logger.info("Listing autoscaling groups matching tags: %s", tags)

        names = query_candidate_names(self._pages, tags, cancel)
        if not names:
            logger.info("No candidate autoscaling groups found", extra={"candidates": 0, "matched": 0})
            return []

        matcher = GroupMatcher(tags)
        if self._workers > 1:
            groups = matcher.apply(describe_concurrently(self._pages, names, self._workers, cancel))
        else:
            groups = matcher.apply(iter_descriptions(self._pages, names, cancel))

        logger.info(
            "Found %d matching autoscaling groups out of %d candidates", len(groups), len(names),
            extra={"candidates": len(names), "matched": len(groups)},
        )
        return groups


def discover(pages: AutoScalingPages, tags: dict[str, str], cancel: CancelToken | None = None) -> list[ResourceRecord]:
    """Shorthand for AsgLister(pages).list_groups(tags, cancel)."""
    return AsgLister(pages).list_groups(tags, cancel)
