"""Tests for the server group deploy preprocessor.

Tests cover:
- Additional steps per strategy
- Before stages (precondition gate and pin) and their ordering
- After stages (restore and unpin)
- On-failure unpin with its timeout override
- Absent source server groups and resolution failures
- Provider support
"""

import dataclasses

import pytest

from deploy_preprocessor.core.composer import (
    RESTORE_MIN_CAPACITY_FROM_SNAPSHOT,
    SNAPSHOT_SOURCE_SERVER_GROUP,
    ServerGroupDeployPreProcessor,
)
from deploy_preprocessor.core.config import DeployStrategy, PreProcessorConfig
from deploy_preprocessor.core.definitions import StageBuilder, TaskType
from deploy_preprocessor.core.preconditions import CHECK_DEPLOY_PRECONDITIONS
from deploy_preprocessor.core.resolver import ResolutionError, SourceServerGroup

NON_PINNING_STRATEGIES = [s for s in DeployStrategy if s != DeployStrategy.ROLLING_RED_BLACK]


def _names(definitions):
    return [d.name for d in definitions]


class TestAdditionalSteps:
    """Tests for additional_steps."""

    def test_rolling_red_black_has_no_snapshot(self, preprocessor, rrb_stage):
        """Test that rolling red/black needs no capacity snapshot."""
        assert preprocessor.additional_steps(rrb_stage) == []

    @pytest.mark.parametrize("strategy", NON_PINNING_STRATEGIES)
    def test_other_strategies_snapshot_source(self, preprocessor, redblack_stage, strategy):
        """Test that every other strategy gets exactly one snapshot step."""
        stage = dataclasses.replace(redblack_stage, strategy=strategy)

        steps = preprocessor.additional_steps(stage)

        assert len(steps) == 1
        assert steps[0].name == SNAPSHOT_SOURCE_SERVER_GROUP
        assert steps[0].task == TaskType.CAPTURE_SOURCE_SERVER_GROUP_CAPACITY


class TestBeforeStages:
    """Tests for before_stage_definitions."""

    def test_precondition_precedes_pin(self, preprocessor, rrb_stage):
        """Test that the precondition gate comes before the pin stage."""
        stages = preprocessor.before_stage_definitions(rrb_stage)

        assert _names(stages) == [CHECK_DEPLOY_PRECONDITIONS, "Pin app-v002"]
        assert stages[0].builder == StageBuilder.CHECK_PRECONDITIONS
        assert stages[1].builder == StageBuilder.PIN_SERVER_GROUP

    def test_pin_context(self, preprocessor, rrb_stage):
        """Test the context attached to the pin stage."""
        pin = preprocessor.before_stage_definitions(rrb_stage)[-1]

        assert pin.context["pinMinimumCapacity"] is True
        assert "unpinMinimumCapacity" not in pin.context
        assert "stageTimeoutMs" not in pin.context
        assert pin.context["serverGroupName"] == "app-v002"
        assert pin.context["region"] == "us-east-1"
        assert pin.context["credentials"] == "prod"
        assert pin.context["cluster"] == "app-prod"
        assert pin.context["action"] == "scale_to_server_group"
        assert pin.context["useNameAsLabel"] is True
        assert pin.context["source"]["serverGroupName"] == "app-v002"

    def test_no_precondition_without_limit(self, preprocessor, rrb_stage):
        """Test that max_initial_asgs of -1 disables the precondition gate."""
        stage = dataclasses.replace(rrb_stage, max_initial_asgs=-1)

        assert _names(preprocessor.before_stage_definitions(stage)) == ["Pin app-v002"]

    def test_no_precondition_with_null_limit(self, preprocessor, stage_context):
        """Test that a null maxInitialAsgs disables the precondition gate."""
        stages = preprocessor.before_stage_definitions({**stage_context, "maxInitialAsgs": None})

        assert _names(stages) == ["Pin app-v002"]

    def test_precondition_kept_without_source(self, empty_resolver, rrb_stage):
        """Test that a missing source drops the pin but keeps the gate."""
        preprocessor = ServerGroupDeployPreProcessor(empty_resolver)

        stages = preprocessor.before_stage_definitions(rrb_stage)

        assert _names(stages) == [CHECK_DEPLOY_PRECONDITIONS]

    @pytest.mark.parametrize("strategy", NON_PINNING_STRATEGIES)
    def test_other_strategies_have_no_before_stages(self, preprocessor, redblack_stage, strategy):
        """Test that other strategies neither pin nor gate, even with a limit."""
        stage = dataclasses.replace(redblack_stage, strategy=strategy, max_initial_asgs=3)

        assert preprocessor.before_stage_definitions(stage) == []

    def test_other_strategies_skip_resolution(self, preprocessor, resolver, redblack_stage):
        """Test that strategies without pinning never call the resolver."""
        preprocessor.before_stage_definitions(redblack_stage)
        preprocessor.after_stage_definitions(redblack_stage)
        preprocessor.on_failure_stage_definitions(redblack_stage)

        assert resolver.calls == 0


class TestAfterStages:
    """Tests for after_stage_definitions."""

    def test_rolling_red_black_unpins(self, preprocessor, rrb_stage):
        """Test that a successful rolling red/black deploy unpins the source."""
        stages = preprocessor.after_stage_definitions(rrb_stage)

        assert _names(stages) == ["Unpin app-v002 (deployFailed=false)"]
        assert stages[0].builder == StageBuilder.PIN_SERVER_GROUP
        assert stages[0].context["unpinMinimumCapacity"] is True
        assert "pinMinimumCapacity" not in stages[0].context
        assert "stageTimeoutMs" not in stages[0].context

    def test_no_unpin_after_scale_down(self, preprocessor, rrb_stage):
        """Test that an already scaled down source is not unpinned."""
        stage = dataclasses.replace(rrb_stage, scale_down=True)

        assert preprocessor.after_stage_definitions(stage) == []

    def test_no_unpin_without_source(self, empty_resolver, rrb_stage):
        """Test that nothing is unpinned when there is no source server group."""
        preprocessor = ServerGroupDeployPreProcessor(empty_resolver)

        assert preprocessor.after_stage_definitions(rrb_stage) == []

    @pytest.mark.parametrize("strategy", NON_PINNING_STRATEGIES)
    def test_other_strategies_restore(self, preprocessor, redblack_stage, strategy):
        """Test that other strategies restore the snapshotted capacity only."""
        stage = dataclasses.replace(redblack_stage, strategy=strategy)

        stages = preprocessor.after_stage_definitions(stage)

        assert _names(stages) == [RESTORE_MIN_CAPACITY_FROM_SNAPSHOT]
        assert stages[0].builder == StageBuilder.APPLY_SOURCE_SERVER_GROUP_CAPACITY
        assert stages[0].context == {}


class TestOnFailureStages:
    """Tests for on_failure_stage_definitions."""

    def test_unpin_with_timeout(self, preprocessor, rrb_stage):
        """Test that a failed deploy unpins with a 20 minute timeout."""
        stages = preprocessor.on_failure_stage_definitions(rrb_stage)

        assert _names(stages) == ["Unpin app-v002 (deployFailed=true)"]
        assert stages[0].context["unpinMinimumCapacity"] is True
        assert stages[0].context["stageTimeoutMs"] == 1200000

    def test_unpin_despite_scale_down(self, preprocessor, rrb_stage):
        """Test that scale_down does not suppress the failure-path unpin."""
        stage = dataclasses.replace(rrb_stage, scale_down=True)

        stages = preprocessor.on_failure_stage_definitions(stage)

        assert _names(stages) == ["Unpin app-v002 (deployFailed=true)"]
        assert stages[0].context["stageTimeoutMs"] == 1200000

    def test_configured_timeout(self, resolver, rrb_stage):
        """Test that the unpin timeout comes from the preprocessor config."""
        preprocessor = ServerGroupDeployPreProcessor(resolver, PreProcessorConfig(unpin_timeout_ms=60000))

        stages = preprocessor.on_failure_stage_definitions(rrb_stage)

        assert stages[0].context["stageTimeoutMs"] == 60000

    def test_no_unpin_without_source(self, empty_resolver, rrb_stage):
        """Test that nothing is unpinned on failure without a source."""
        preprocessor = ServerGroupDeployPreProcessor(empty_resolver)

        assert preprocessor.on_failure_stage_definitions(rrb_stage) == []

    def test_other_strategies_have_no_failure_stages(self, preprocessor, redblack_stage):
        """Test that red/black has nothing to undo on failure."""
        assert preprocessor.on_failure_stage_definitions(redblack_stage) == []


class TestScenarios:
    """End-to-end hook outputs for representative stages."""

    def test_rolling_red_black_scenario(self, preprocessor, rrb_stage):
        """Test all hooks for a gated rolling red/black deploy with a source."""
        assert preprocessor.additional_steps(rrb_stage) == []
        assert _names(preprocessor.before_stage_definitions(rrb_stage)) == [
            CHECK_DEPLOY_PRECONDITIONS,
            "Pin app-v002",
        ]
        assert _names(preprocessor.after_stage_definitions(rrb_stage)) == [
            "Unpin app-v002 (deployFailed=false)",
        ]
        on_failure = preprocessor.on_failure_stage_definitions(rrb_stage)
        assert _names(on_failure) == ["Unpin app-v002 (deployFailed=true)"]
        assert on_failure[0].context["stageTimeoutMs"] == 1200000

    def test_red_black_scenario(self, preprocessor, redblack_stage):
        """Test all hooks for a red/black deploy with a source."""
        assert _names(preprocessor.additional_steps(redblack_stage)) == [SNAPSHOT_SOURCE_SERVER_GROUP]
        assert preprocessor.before_stage_definitions(redblack_stage) == []
        assert _names(preprocessor.after_stage_definitions(redblack_stage)) == [
            RESTORE_MIN_CAPACITY_FROM_SNAPSHOT,
        ]
        assert preprocessor.on_failure_stage_definitions(redblack_stage) == []

    def test_raw_stage_context(self, preprocessor, stage_context):
        """Test that hooks accept the engine's raw stage context."""
        assert _names(preprocessor.before_stage_definitions(stage_context)) == [
            CHECK_DEPLOY_PRECONDITIONS,
            "Pin app-v002",
        ]

    def test_hooks_build_independent_contexts(self, preprocessor, rrb_stage):
        """Test that pin and unpin contexts are never shared between hooks."""
        pin = preprocessor.before_stage_definitions(rrb_stage)[-1]
        unpin = preprocessor.on_failure_stage_definitions(rrb_stage)[0]

        assert pin.context is not unpin.context
        assert "unpinMinimumCapacity" not in pin.context
        assert "pinMinimumCapacity" not in unpin.context

    def test_explicit_source_skips_resolver(self, empty_resolver, rrb_stage):
        """Test that an explicit source server group is pinned without resolving."""
        stage = dataclasses.replace(rrb_stage, source=SourceServerGroup(server_group_name="app-v007"))
        preprocessor = ServerGroupDeployPreProcessor(empty_resolver)

        stages = preprocessor.before_stage_definitions(stage)

        assert _names(stages)[-1] == "Pin app-v007"
        assert stages[-1].context["source"]["credentials"] == "prod"
        assert stages[-1].context["source"]["region"] == "us-east-1"
        assert empty_resolver.calls == 0


class TestResolutionFailure:
    """Tests for resolver failures."""

    def test_failure_propagates_from_before(self, empty_resolver, rrb_stage):
        """Test that a failed lookup aborts the before hook."""
        empty_resolver.fail("app-prod", "prod", "us-east-1", ConnectionError("upstream unavailable"))
        preprocessor = ServerGroupDeployPreProcessor(empty_resolver)

        with pytest.raises(ResolutionError, match="upstream unavailable") as exc_info:
            preprocessor.before_stage_definitions(rrb_stage)

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_failure_propagates_from_on_failure(self, empty_resolver, rrb_stage):
        """Test that a failed lookup is not swallowed on the failure path."""
        empty_resolver.fail("app-prod", "prod", "us-east-1", TimeoutError("timed out"))
        preprocessor = ServerGroupDeployPreProcessor(empty_resolver)

        with pytest.raises(ResolutionError):
            preprocessor.on_failure_stage_definitions(rrb_stage)

    def test_failure_not_retried(self, empty_resolver, rrb_stage):
        """Test that the resolver is called once per hook, without retries."""
        empty_resolver.fail("app-prod", "prod", "us-east-1", ConnectionError("down"))
        preprocessor = ServerGroupDeployPreProcessor(empty_resolver)

        with pytest.raises(ResolutionError):
            preprocessor.after_stage_definitions(rrb_stage)

        assert empty_resolver.calls == 1


class TestSupports:
    """Tests for provider support."""

    def test_supports_matching_provider(self, preprocessor, rrb_stage):
        """Test that aws stages are supported."""
        assert preprocessor.supports(rrb_stage) is True

    def test_rejects_other_provider(self, preprocessor, rrb_stage):
        """Test that other providers are not supported."""
        stage = dataclasses.replace(rrb_stage, cloud_provider="gce")

        assert preprocessor.supports(stage) is False

    def test_supports_ignores_other_fields(self, preprocessor, stage_context):
        """Test that support depends on the provider only."""
        assert preprocessor.supports({"cloudProvider": "aws"}) is True
        assert preprocessor.supports({**stage_context, "cloudProvider": "titus"}) is False

    def test_supports_foreign_strategy(self, preprocessor):
        """Test that another provider's strategy name is rejected without parsing."""
        assert preprocessor.supports({"cloudProvider": "kubernetes", "strategy": "canary"}) is False

    def test_supports_incomplete_source(self, preprocessor):
        """Test that an unparseable source does not affect support."""
        assert preprocessor.supports({"cloudProvider": "gce", "source": {"region": "x"}}) is False
        assert preprocessor.supports({"cloudProvider": "aws", "source": {"region": "x"}}) is True

    def test_none_strategy(self, preprocessor, stage_context):
        """Test that the explicit none strategy snapshots and restores."""
        stage = {**stage_context, "strategy": "none"}

        assert preprocessor.supports(stage) is True
        assert _names(preprocessor.additional_steps(stage)) == [SNAPSHOT_SOURCE_SERVER_GROUP]
        assert _names(preprocessor.after_stage_definitions(stage)) == [RESTORE_MIN_CAPACITY_FROM_SNAPSHOT]

    def test_configured_provider(self, resolver):
        """Test support for a configured provider."""
        preprocessor = ServerGroupDeployPreProcessor(resolver, PreProcessorConfig(cloud_provider="alicloud"))

        assert preprocessor.supports({"cloudProvider": "alicloud"}) is True
        assert preprocessor.supports({"cloudProvider": "aws"}) is False
