"""Pytest fixtures for deploy-preprocessor tests.

This module provides reusable stage configurations, resolvers and
preprocessors shared across the test suite.
"""

import pytest
from typing import Any, Dict

from deploy_preprocessor.core.composer import ServerGroupDeployPreProcessor
from deploy_preprocessor.core.config import DeployStrategy, Moniker, StageConfig
from deploy_preprocessor.core.resolver import StaticServerGroupResolver

CLUSTER = "app-prod"
ACCOUNT = "prod"
REGION = "us-east-1"


@pytest.fixture
def resolver() -> StaticServerGroupResolver:
    """Create a resolver that knows the source server group of app-prod."""
    resolver = StaticServerGroupResolver()
    resolver.add(CLUSTER, ACCOUNT, REGION, "app-v002", cloud_provider="aws")
    return resolver


@pytest.fixture
def empty_resolver() -> StaticServerGroupResolver:
    """Create a resolver with no server groups (first deploy of every cluster)."""
    return StaticServerGroupResolver()


@pytest.fixture
def preprocessor(resolver) -> ServerGroupDeployPreProcessor:
    """Create an aws preprocessor backed by the populated resolver."""
    return ServerGroupDeployPreProcessor(resolver)


@pytest.fixture
def rrb_stage() -> StageConfig:
    """Create a rolling red/black stage with a max initial server group limit of 5."""
    return StageConfig(
        strategy=DeployStrategy.ROLLING_RED_BLACK,
        cloud_provider="aws",
        cluster=CLUSTER,
        application="app",
        account=ACCOUNT,
        region=REGION,
        moniker=Moniker(app="app", cluster=CLUSTER, stack="prod"),
        max_initial_asgs=5,
        scale_down=False,
    )


@pytest.fixture
def redblack_stage() -> StageConfig:
    """Create a red/black stage for the same cluster."""
    return StageConfig(
        strategy=DeployStrategy.RED_BLACK,
        cloud_provider="aws",
        cluster=CLUSTER,
        application="app",
        account=ACCOUNT,
        region=REGION,
        moniker=Moniker(app="app", cluster=CLUSTER, stack="prod"),
    )


@pytest.fixture
def stage_context() -> Dict[str, Any]:
    """Create a raw camelCase deploy stage context as the engine supplies it."""
    return {
        "strategy": "rollingredblack",
        "cloudProvider": "aws",
        "cluster": CLUSTER,
        "application": "app",
        "account": ACCOUNT,
        "region": REGION,
        "moniker": {"app": "app", "cluster": CLUSTER, "stack": "prod"},
        "maxInitialAsgs": 5,
        "scaleDown": False,
    }
