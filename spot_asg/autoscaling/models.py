"""Data models for Auto Scaling tag-index entries and group descriptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ASG_RESOURCE_TYPE = "auto-scaling-group"


@dataclass(frozen=True)
class Tag:
    key: str
    value: str


@dataclass(frozen=True)
class TagEntry:
    """One row of the Auto Scaling tag index (describe_tags)."""

    resource_type: str
    resource_id: str
    key: str = ""
    value: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> TagEntry:
        return cls(
            resource_type=raw.get("ResourceType", ""),
            resource_id=raw.get("ResourceId", ""),
            key=raw.get("Key", ""),
            value=raw.get("Value", ""),
        )


@dataclass(frozen=True)
class ResourceRecord:
    """A single Auto Scaling group as returned by describe_auto_scaling_groups.

    ``raw`` keeps the full API item so downstream consumers (updater, publisher)
    see every provider-specific field untouched.
    """

    name: str
    arn: str
    tags: tuple[Tag, ...] = ()
    status: str | None = None  # e.g. "Delete in progress"
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> ResourceRecord:
        return cls(
            name=raw["AutoScalingGroupName"],
            arn=raw.get("AutoScalingGroupARN", ""),
            tags=tuple(Tag(t.get("Key", ""), t.get("Value", "")) for t in raw.get("Tags", [])),
            status=raw.get("Status"),
            raw=raw,
        )

    @property
    def tag_map(self) -> dict[str, str]:
        """Tags as a dict (last value wins for a repeated key)."""
        return {t.key: t.value for t in self.tags}
