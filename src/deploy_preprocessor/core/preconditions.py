"""Cluster size precondition gate for deploy stages."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from deploy_preprocessor.core.config import Moniker, StageConfig
from deploy_preprocessor.core.definitions import StageBuilder, StageDefinition

logger = logging.getLogger(__name__)

CHECK_DEPLOY_PRECONDITIONS = "Check Deploy Preconditions"


class PreconditionType(str, Enum):
    CLUSTER_SIZE = "clusterSize"


class Comparison(str, Enum):
    """Comparison operators accepted by the cluster size precondition."""

    LT = "<"
    LE = "<="
    EQ = "=="
    GE = ">="
    GT = ">"


@dataclass(frozen=True)
class ClusterSizePrecondition:
    """Cluster size check evaluated before the deploy is allowed to proceed.

    Attributes:
        expected: Expected number of server groups.
        regions: Regions to count server groups in.
        cluster: Cluster name.
        application: Application name.
        credentials: Account owning the cluster.
        moniker: Structured cluster name.
        comparison: How the actual count compares to ``expected``.
        only_enabled_server_groups: Count enabled server groups only.
    """

    expected: int
    regions: List[str] = field(default_factory=list)
    cluster: Optional[str] = None
    application: Optional[str] = None
    credentials: Optional[str] = None
    moniker: Optional[Moniker] = None
    comparison: Comparison = Comparison.LE
    only_enabled_server_groups: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "onlyEnabledServerGroups": self.only_enabled_server_groups,
            "comparison": self.comparison.value,
            "expected": self.expected,
            "regions": list(self.regions),
            "cluster": self.cluster,
            "application": self.application,
            "credentials": self.credentials,
            "moniker": self.moniker.to_dict() if self.moniker is not None else None,
        }


class PreconditionGateBuilder:
    """Builds the go/no-go stage run ahead of a gated deploy."""

    def build(self, stage: StageConfig) -> StageDefinition:
        """Build the cluster size precondition stage.

        The deploy may proceed only if the cluster has at most
        ``max_initial_asgs`` enabled server groups in the stage's region.

        Args:
            stage: Deploy stage configuration.

        Returns:
            Stage definition for the precondition check.
        """
        region = stage.resolved_region
        precondition = ClusterSizePrecondition(
            expected=stage.max_initial_asgs,
            regions=[region] if region else [],
            cluster=stage.resolved_cluster,
            application=stage.application,
            credentials=stage.resolved_account,
            moniker=stage.moniker,
        )

        logger.info(
            f"Gating deploy of {precondition.cluster} on cluster size "
            f"{precondition.comparison.value} {precondition.expected}"
        )

        return StageDefinition(
            name=CHECK_DEPLOY_PRECONDITIONS,
            builder=StageBuilder.CHECK_PRECONDITIONS,
            context={
                "preconditionType": PreconditionType.CLUSTER_SIZE.value,
                "context": precondition.to_dict(),
            },
        )
