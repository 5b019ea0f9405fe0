"""Exact tag matching and lifecycle-state exclusion for described groups."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import ResourceRecord, Tag

logger = logging.getLogger(__name__)


def matches_tags(tags: dict[str, str], actual: Iterable[Tag]) -> bool:
    """True if every (key, value) in tags is present exactly in actual (AND logic)."""
    actual = tuple(actual)
    for key, value in tags.items():
        if not any(a.key == key and a.value == value for a in actual):
            return False
    return True


def is_stable(record: ResourceRecord) -> bool:
    """False if the group carries a lifecycle status such as "Delete in progress"."""
    if record.status:
        logger.info(
            "Skipping ASG %s (which matches tags): %s",
            record.arn or record.name, record.status,
            extra={"group": record.name, "status": record.status},
        )
        return False
    return True


class GroupMatcher:
    """Keeps described groups that carry every filter tag exactly and are not mid-transition."""

    def __init__(self, tags: dict[str, str]):
        self._tags = dict(tags)

    def accepts(self, record: ResourceRecord) -> bool:
        if not matches_tags(self._tags, record.tags):
            # the tag-index query was inexact
            logger.debug("Group %s does not match tags %s", record.name, self._tags)
            return False
        return is_stable(record)

    def apply(self, records: Iterable[ResourceRecord]) -> list[ResourceRecord]:
        return [r for r in records if self.accepts(r)]
