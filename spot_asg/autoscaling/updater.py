"""Builds and applies MixedInstancesPolicy updates that move groups onto Spot capacity."""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..config import SpotPolicyConfig
from ..exceptions import UpdateError
from .models import ResourceRecord

logger = logging.getLogger(__name__)


def _template_reference(spec: dict[str, Any]) -> dict[str, Any]:
    """Id or Name (UpdateAutoScalingGroup rejects both), plus Version."""
    if spec.get("LaunchTemplateId"):
        reference = {"LaunchTemplateId": spec["LaunchTemplateId"]}
    else:
        reference = {"LaunchTemplateName": spec.get("LaunchTemplateName")}
    if spec.get("Version"):
        reference["Version"] = spec["Version"]
    return reference


class AsgUpdater:
    """Converts a discovered group into an UpdateAutoScalingGroup request and applies it."""

    def __init__(self, autoscaling_client: Any, policy: SpotPolicyConfig):
        self._autoscaling = autoscaling_client
        self._policy = policy

    def create_update_input(self, record: ResourceRecord) -> dict[str, Any]:
        """Return update_auto_scaling_group kwargs for record (the recommendation).

        Raises UpdateError for groups backed by a launch configuration, which
        cannot carry a MixedInstancesPolicy.
        """
        raw = record.raw
        existing = raw.get("MixedInstancesPolicy")
        if existing:
            template = existing.get("LaunchTemplate", {})
            spec = template.get("LaunchTemplateSpecification", {})
            overrides = template.get("Overrides", [])
            distribution = dict(existing.get("InstancesDistribution", {}))
        elif raw.get("LaunchTemplate"):
            spec = raw["LaunchTemplate"]
            overrides = []
            distribution = {}
        else:
            raise UpdateError(
                f"autoscaling group {record.name} uses a launch configuration; "
                "only launch-template groups can be converted",
                group_name=record.name,
            )

        if self._policy.instance_types:
            overrides = [{"InstanceType": t} for t in self._policy.instance_types]

        distribution.update(
            OnDemandBaseCapacity=self._policy.on_demand_base_capacity,
            OnDemandPercentageAboveBaseCapacity=self._policy.on_demand_percentage_above_base,
            SpotAllocationStrategy=self._policy.spot_allocation_strategy,
        )

        launch_template: dict[str, Any] = {
            "LaunchTemplateSpecification": _template_reference(spec),
        }
        if overrides:
            launch_template["Overrides"] = overrides

        return {
            "AutoScalingGroupName": record.name,
            "MixedInstancesPolicy": {
                "LaunchTemplate": launch_template,
                "InstancesDistribution": distribution,
            },
        }

    def update_group(self, record: ResourceRecord) -> dict[str, Any]:
        """Apply the recommended update to record; returns the request that was sent."""
        request = self.create_update_input(record)
        try:
            self._autoscaling.update_auto_scaling_group(**request)
        except (BotoCoreError, ClientError) as exc:
            raise UpdateError(f"failed to update autoscaling group {record.name}: {exc}", group_name=record.name) from exc
        logger.info("Updated autoscaling group %s", record.name, extra={"group": record.name})
        return request
