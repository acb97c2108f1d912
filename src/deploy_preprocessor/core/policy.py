"""Strategy policy for deploy stage pre/post-processing.

Decides, per deployment strategy, whether the source server group is pinned
during the deploy and whether the deploy is gated by a cluster size
precondition. Both are restricted to rolling red/black for now; other
strategies are deliberately unsupported until they have been verified.
"""

from typing import Dict

from deploy_preprocessor.core.config import NO_MAX_INITIAL_ASGS, DeployStrategy, parse_strategy

# Every strategy must appear in these tables; tests check they are exhaustive.
PIN_SOURCE_SERVER_GROUP: Dict[DeployStrategy, bool] = {
    DeployStrategy.RED_BLACK: False,
    DeployStrategy.ROLLING_RED_BLACK: True,
    DeployStrategy.HIGHLANDER: False,
    DeployStrategy.ROLLING_PUSH: False,
    DeployStrategy.CF_ROLLING_RED_BLACK: False,
    DeployStrategy.MONITORED: False,
    DeployStrategy.CUSTOM: False,
    DeployStrategy.NONE: False,
}

CHECK_PRECONDITIONS: Dict[DeployStrategy, bool] = {
    DeployStrategy.RED_BLACK: False,
    DeployStrategy.ROLLING_RED_BLACK: True,
    DeployStrategy.HIGHLANDER: False,
    DeployStrategy.ROLLING_PUSH: False,
    DeployStrategy.CF_ROLLING_RED_BLACK: False,
    DeployStrategy.MONITORED: False,
    DeployStrategy.CUSTOM: False,
    DeployStrategy.NONE: False,
}


class StrategyPolicy:
    """Pure strategy predicates for pinning, gating and capacity snapshots."""

    @staticmethod
    def requires_pinning(strategy: DeployStrategy) -> bool:
        """Whether the source server group's minimum capacity is pinned during the deploy."""
        return PIN_SOURCE_SERVER_GROUP[parse_strategy(strategy)]

    @staticmethod
    def requires_precondition_gate(strategy: DeployStrategy, max_initial_asgs: int) -> bool:
        """Whether the deploy is gated by a cluster size precondition.

        A ``max_initial_asgs`` of -1 means no limit is configured.
        """
        return CHECK_PRECONDITIONS[parse_strategy(strategy)] and max_initial_asgs != NO_MAX_INITIAL_ASGS

    @staticmethod
    def snapshots_capacity(strategy: DeployStrategy) -> bool:
        """Whether source capacity is snapshotted before and restored after the deploy.

        Snapshot/restore and pin/unpin are alternative ways of preserving
        capacity and are never combined.
        """
        return not PIN_SOURCE_SERVER_GROUP[parse_strategy(strategy)]
