"""Custom exception hierarchy for spot-asg."""

from __future__ import annotations


class SpotAsgError(Exception):
    """Base exception for all spot-asg errors."""


class ConfigError(SpotAsgError):
    """Invalid or missing configuration."""


class TransportError(SpotAsgError):
    """Error surfaced by an AWS API call (network, auth, throttling)."""

    def __init__(self, message: str, operation: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.error_code = error_code


class DiscoveryError(SpotAsgError):
    """A discovery stage failed; the whole discovery call is aborted."""

    stage = "discovery"

    def __init__(self, message: str, batch_index: int | None = None):
        super().__init__(message)
        self.batch_index = batch_index


class TagIndexQueryError(DiscoveryError):
    """Paging through the Auto Scaling tag index failed."""

    stage = "tag-index query"


class BatchDescribeError(DiscoveryError):
    """Describing a batch of Auto Scaling groups failed."""

    stage = "batch describe"


class DiscoveryCancelled(SpotAsgError):
    """The caller's cancellation signal fired (or its deadline passed) mid-call."""


class UpdateError(SpotAsgError):
    """Building or applying an Auto Scaling group update failed."""

    def __init__(self, message: str, group_name: str | None = None):
        super().__init__(message)
        self.group_name = group_name


class PublishError(SpotAsgError):
    """Publishing events to EventBridge failed."""

    def __init__(self, message: str, failed_entries: list[dict] | None = None):
        super().__init__(message)
        self.failed_entries = failed_entries or []
