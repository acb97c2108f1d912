"""Resize context for pinning and unpinning a source server group.

A resize context describes which server group a pin/unpin stage acts on and
how. It is built fresh for every hook invocation and never shared between
hooks. A context is either fully populated or absent: when the cluster has no
source server group, ``ResizeContextBuilder.build`` returns None.
"""

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from deploy_preprocessor.core.config import Location, Moniker, StageConfig
from deploy_preprocessor.core.resolver import ResolutionError, SourceServerGroup, SourceServerGroupResolver

logger = logging.getLogger(__name__)


class ResizeAction(str, Enum):
    """Capacity actions understood by the resize stage."""

    SCALE_TO_SERVER_GROUP = "scale_to_server_group"


@dataclass(frozen=True)
class ResizeContext:
    """Context handed to a pin or unpin stage.

    Attributes:
        location: Location of the cluster, emitted under its singular key.
        cluster: Cluster name.
        moniker: Structured cluster name.
        credentials: Account owning the cluster.
        cloud_provider: Cloud provider of the cluster.
        server_group_name: Name of the source server group.
        source: Resolved source server group.
        action: Capacity action to apply.
        use_name_as_label: Tells consumers not to relabel the stage.
        pin_minimum_capacity: Set on the pin stage before deploying.
        unpin_minimum_capacity: Set on unpin stages after or on failure of the deploy.
        stage_timeout_ms: Stage timeout override, set on the failure-path unpin only.
    """

    location: Location
    cluster: Optional[str]
    moniker: Optional[Moniker]
    credentials: Optional[str]
    cloud_provider: Optional[str]
    server_group_name: str
    source: SourceServerGroup
    action: ResizeAction = ResizeAction.SCALE_TO_SERVER_GROUP
    use_name_as_label: bool = True
    pin_minimum_capacity: bool = False
    unpin_minimum_capacity: bool = False
    stage_timeout_ms: Optional[int] = None

    def __post_init__(self):
        """Validate hook-specific flags."""
        if self.pin_minimum_capacity and self.unpin_minimum_capacity:
            raise ValueError("A resize context cannot both pin and unpin minimum capacity")
        if self.stage_timeout_ms is not None and self.stage_timeout_ms <= 0:
            raise ValueError(f"stage_timeout_ms must be positive, got {self.stage_timeout_ms}")

    def pinned(self) -> "ResizeContext":
        """Return a copy flagged to pin the source server group's minimum capacity."""
        return dataclasses.replace(self, pin_minimum_capacity=True, unpin_minimum_capacity=False)

    def unpinned(self, stage_timeout_ms: Optional[int] = None) -> "ResizeContext":
        """Return a copy flagged to release the pinned minimum capacity.

        Args:
            stage_timeout_ms: Optional stage timeout override.
        """
        return dataclasses.replace(
            self,
            pin_minimum_capacity=False,
            unpin_minimum_capacity=True,
            stage_timeout_ms=stage_timeout_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert resize context to the stage context payload."""
        result = {
            self.location.singular_type: self.location.value,
            "cluster": self.cluster,
            "moniker": self.moniker.to_dict() if self.moniker is not None else None,
            "credentials": self.credentials,
            "cloudProvider": self.cloud_provider,
            "serverGroupName": self.server_group_name,
            "action": self.action.value,
            "source": self.source.to_dict(),
            "useNameAsLabel": self.use_name_as_label,
        }
        if self.pin_minimum_capacity:
            result["pinMinimumCapacity"] = True
        if self.unpin_minimum_capacity:
            result["unpinMinimumCapacity"] = True
        if self.stage_timeout_ms is not None:
            result["stageTimeoutMs"] = self.stage_timeout_ms
        return result


class ResizeContextBuilder:
    """Builds resize contexts from a stage config and its source server group.

    Attributes:
        resolver: Resolver used when the stage does not name its source explicitly.
    """

    def __init__(self, resolver: SourceServerGroupResolver):
        self.resolver = resolver

    def build(self, stage: StageConfig) -> Optional[ResizeContext]:
        """Build a resize context for the stage's source server group.

        Args:
            stage: Deploy stage configuration.

        Returns:
            Populated resize context, or None when the cluster has no source
            server group.

        Raises:
            ResolutionError: If the resolver failed for a reason other than absence.
            ConfigurationError: If the stage's account or location is invalid.
        """
        location = stage.location
        account = stage.resolved_account
        cluster = stage.resolved_cluster

        source = self._get_source(stage, cluster, account, location)
        if source is None:
            logger.debug(f"No source server group for cluster {cluster} in {account}/{location.value}")
            return None

        return ResizeContext(
            location=location,
            cluster=cluster,
            moniker=stage.moniker,
            credentials=account,
            cloud_provider=stage.cloud_provider,
            server_group_name=source.server_group_name,
            source=source,
        )

    def _get_source(
        self,
        stage: StageConfig,
        cluster: Optional[str],
        account: Optional[str],
        location: Location,
    ) -> Optional[SourceServerGroup]:
        if stage.source is not None:
            found = stage.source
        else:
            resolution = self.resolver.resolve(cluster, account, location.value)
            try:
                found = resolution.unwrap()
            except ResolutionError as e:
                logger.error(f"Failed to resolve source server group for {cluster}: {e}")
                raise
            if found is None:
                return None

        return SourceServerGroup(
            server_group_name=found.server_group_name,
            region=found.region or location.value,
            credentials=found.credentials or account,
            cloud_provider=found.cloud_provider or stage.cloud_provider,
        )
