"""Core module for deploy-preprocessor.

This module provides the stage configuration, strategy policy, resize context
and precondition builders, and the preprocessor that composes them.
"""

from deploy_preprocessor.core.composer import DeployStagePreProcessor, ServerGroupDeployPreProcessor
from deploy_preprocessor.core.config import DeployStrategy, PreProcessorConfig, StageConfig
from deploy_preprocessor.core.context import ResizeContext, ResizeContextBuilder
from deploy_preprocessor.core.definitions import StageDefinition, StagePlan, StepDefinition
from deploy_preprocessor.core.policy import StrategyPolicy
from deploy_preprocessor.core.preconditions import PreconditionGateBuilder
from deploy_preprocessor.core.resolver import Resolution, SourceServerGroupResolver

__all__ = [
    "DeployStagePreProcessor",
    "ServerGroupDeployPreProcessor",
    "DeployStrategy",
    "PreProcessorConfig",
    "StageConfig",
    "ResizeContext",
    "ResizeContextBuilder",
    "StageDefinition",
    "StagePlan",
    "StepDefinition",
    "StrategyPolicy",
    "PreconditionGateBuilder",
    "Resolution",
    "SourceServerGroupResolver",
]
