"""Auto Scaling discovery package: the paged-API Protocol the discovery engine consumes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import ResourceRecord, TagEntry

TAG_PAGE_SIZE = 100
DESCRIBE_BATCH_SIZE = 50
DESCRIBE_PAGE_SIZE = 50


@runtime_checkable
class AutoScalingPages(Protocol):
    """The two paged Auto Scaling operations discovery needs.

    Implementations raise ``TransportError`` for any API or transport failure,
    either when called or while the returned pages are being iterated.
    """

    def describe_tags_pages(self, filters: list[dict], page_size: int) -> Iterable[list[TagEntry]]:
        """Yield pages of tag-index entries matching any of the filters."""
        ...

    def describe_groups_pages(self, names: list[str], page_size: int) -> Iterable[list[ResourceRecord]]:
        """Yield pages of group descriptions for the given group names."""
        ...
