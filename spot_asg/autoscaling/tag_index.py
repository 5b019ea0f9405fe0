"""Tag-index stage: resolve candidate Auto Scaling group names from inexact tag filters."""

from __future__ import annotations

import logging

from ..exceptions import TagIndexQueryError, TransportError
from . import TAG_PAGE_SIZE, AutoScalingPages
from .cancellation import CancelToken, check
from .models import ASG_RESOURCE_TYPE

logger = logging.getLogger(__name__)


def build_tag_filters(tags: dict[str, str]) -> list[dict]:
    """Build describe_tags filters: one "key" and one "value" filter per pair.

    The tag index cannot join key=value across several pairs, so the result is
    a superset (any filtered key OR any filtered value); exact matching happens
    after the groups are described. An empty map yields no filters at all.
    """
    filters: list[dict] = []
    for key, value in tags.items():
        filters.append({"Name": "key", "Values": [key]})
        filters.append({"Name": "value", "Values": [value]})
    return filters


def query_candidate_names(
    pages: AutoScalingPages,
    tags: dict[str, str],
    cancel: CancelToken | None = None,
) -> list[str]:
    """Walk every tag-index page and collect Auto Scaling group names, in index order.

    A group tagged with several filtered keys/values shows up once per tag row;
    it is kept once, at its first position.
    """
    names: dict[str, None] = {}
    filters = build_tag_filters(tags)
    page_count = 0

    try:
        check(cancel, "tag-index query")
        for page in pages.describe_tags_pages(filters, TAG_PAGE_SIZE):
            page_count += 1
            for entry in page:
                if entry.resource_type != ASG_RESOURCE_TYPE:
                    logger.warning(
                        "Unexpected resource type in tag index: %s (%s)",
                        entry.resource_type, entry.resource_id,
                        extra={"stage": "tag-index query"},
                    )
                    continue
                names.setdefault(entry.resource_id)
            check(cancel, "tag-index query")
    except TransportError as exc:
        raise TagIndexQueryError(f"error listing autoscaling group tags: {exc}") from exc

    logger.debug("Tag index returned %d candidate groups over %d pages", len(names), page_count)
    return list(names)
