"""Deploy stage preprocessors.

A preprocessor decides which auxiliary steps and synthetic stages surround a
deploy stage: a cluster size precondition and a pin of the source server
group before the deploy, a capacity restore and an unpin after it, and an
unpin if the deploy fails. It only produces definitions; the pipeline
execution engine runs them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from deploy_preprocessor.core.config import PreProcessorConfig, StageConfig
from deploy_preprocessor.core.context import ResizeContextBuilder
from deploy_preprocessor.core.definitions import (
    StageBuilder,
    StageDefinition,
    StepDefinition,
    TaskType,
)
from deploy_preprocessor.core.policy import StrategyPolicy
from deploy_preprocessor.core.preconditions import PreconditionGateBuilder
from deploy_preprocessor.core.resolver import SourceServerGroupResolver

logger = logging.getLogger(__name__)

StageInput = Union[StageConfig, Dict[str, Any]]

SNAPSHOT_SOURCE_SERVER_GROUP = "snapshotSourceServerGroup"
RESTORE_MIN_CAPACITY_FROM_SNAPSHOT = "restoreMinCapacityFromSnapshot"


def as_stage_config(stage: StageInput) -> StageConfig:
    """Map a raw stage context onto a StageConfig."""
    if isinstance(stage, StageConfig):
        return stage
    return StageConfig.from_dict(stage)


def cloud_provider_of(stage: StageInput) -> Optional[str]:
    """Read the cloud provider without parsing the rest of the stage."""
    if isinstance(stage, StageConfig):
        return stage.cloud_provider
    return stage.get("cloudProvider")


class DeployStagePreProcessor(ABC):
    """Contributes steps and stages around a deploy stage.

    The engine calls ``supports`` first and invokes the hooks only for stages
    it accepts. Hooks do not re-check ``supports``.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def supports(self, stage: StageInput) -> bool:
        """Whether this preprocessor handles the stage."""
        pass

    def additional_steps(self, stage: StageInput) -> List[StepDefinition]:
        return []

    def before_stage_definitions(self, stage: StageInput) -> List[StageDefinition]:
        return []

    def after_stage_definitions(self, stage: StageInput) -> List[StageDefinition]:
        return []

    def on_failure_stage_definitions(self, stage: StageInput) -> List[StageDefinition]:
        return []


class ServerGroupDeployPreProcessor(DeployStagePreProcessor):
    """Preserves source server group capacity around a deploy.

    Rolling red/black deploys pin the source server group's minimum capacity
    before the deploy and unpin it afterwards (or on failure). Every other
    strategy snapshots the source capacity during the deploy and restores it
    afterwards. The two mechanisms are never combined.

    Attributes:
        config: Preprocessor settings.
        context_builder: Builds resize contexts for pin/unpin stages.
        precondition_builder: Builds the cluster size precondition stage.
    """

    def __init__(
        self,
        resolver: SourceServerGroupResolver,
        config: Optional[PreProcessorConfig] = None,
    ):
        """Initialize preprocessor.

        Args:
            resolver: Resolves the source server group of a cluster.
            config: Preprocessor settings; defaults to the aws provider.
        """
        self.config = config or PreProcessorConfig()
        self.context_builder = ResizeContextBuilder(resolver)
        self.precondition_builder = PreconditionGateBuilder()

    def supports(self, stage: StageInput) -> bool:
        return cloud_provider_of(stage) == self.config.cloud_provider

    def additional_steps(self, stage: StageInput) -> List[StepDefinition]:
        stage = as_stage_config(stage)
        if not StrategyPolicy.snapshots_capacity(stage.strategy):
            # pinning already preserves capacity, nothing to snapshot
            return []

        return [
            StepDefinition(
                name=SNAPSHOT_SOURCE_SERVER_GROUP,
                task=TaskType.CAPTURE_SOURCE_SERVER_GROUP_CAPACITY,
            )
        ]

    def before_stage_definitions(self, stage: StageInput) -> List[StageDefinition]:
        stage = as_stage_config(stage)
        stage_definitions = []

        # The precondition gates the whole deploy, so it always precedes the pin.
        if StrategyPolicy.requires_precondition_gate(stage.strategy, stage.max_initial_asgs):
            stage_definitions.append(self.precondition_builder.build(stage))

        if StrategyPolicy.requires_pinning(stage.strategy):
            resize_context = self.context_builder.build(stage)
            if resize_context is None:
                # no pre-existing source server group, nothing to pin
                return stage_definitions

            resize_context = resize_context.pinned()
            logger.info(f"Pinning {resize_context.server_group_name} before deploy")
            stage_definitions.append(
                StageDefinition(
                    name=f"Pin {resize_context.server_group_name}",
                    builder=StageBuilder.PIN_SERVER_GROUP,
                    context=resize_context.to_dict(),
                )
            )

        return stage_definitions

    def after_stage_definitions(self, stage: StageInput) -> List[StageDefinition]:
        stage = as_stage_config(stage)
        stage_definitions = []

        if StrategyPolicy.snapshots_capacity(stage.strategy):
            # restore reads the snapshot taken by the additional step
            stage_definitions.append(
                StageDefinition(
                    name=RESTORE_MIN_CAPACITY_FROM_SNAPSHOT,
                    builder=StageBuilder.APPLY_SOURCE_SERVER_GROUP_CAPACITY,
                    context={},
                )
            )

        unpin_stage = self._build_unpin_stage(stage, deploy_failed=False)
        if unpin_stage is not None:
            stage_definitions.append(unpin_stage)

        return stage_definitions

    def on_failure_stage_definitions(self, stage: StageInput) -> List[StageDefinition]:
        stage = as_stage_config(stage)
        unpin_stage = self._build_unpin_stage(stage, deploy_failed=True)
        if unpin_stage is None:
            return []
        return [unpin_stage]

    def _build_unpin_stage(self, stage: StageConfig, deploy_failed: bool) -> Optional[StageDefinition]:
        if not StrategyPolicy.requires_pinning(stage.strategy):
            return None

        if stage.scale_down and not deploy_failed:
            logger.debug("Source server group already scaled down, skipping unpin")
            return None

        resize_context = self.context_builder.build(stage)
        if resize_context is None:
            return None

        # A failed deploy may have exhausted its own timeout, so the unpin gets its own.
        timeout_ms = self.config.unpin_timeout_ms if deploy_failed else None
        resize_context = resize_context.unpinned(stage_timeout_ms=timeout_ms)

        logger.info(f"Unpinning {resize_context.server_group_name} (deployFailed={deploy_failed})")
        return StageDefinition(
            name=f"Unpin {resize_context.server_group_name} (deployFailed={str(deploy_failed).lower()})",
            builder=StageBuilder.PIN_SERVER_GROUP,
            context=resize_context.to_dict(),
        )
