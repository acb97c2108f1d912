"""
deploy-preprocessor - Pre/post-processing composer for server group deploy stages.

Computes the steps and synthetic stages that run before, after and on failure
of a deploy stage: cluster size preconditions, source server group pinning,
and capacity snapshot/restore. Execution is left to the pipeline engine.
"""

__version__ = "0.1.0"

from deploy_preprocessor.core.composer import DeployStagePreProcessor, ServerGroupDeployPreProcessor
from deploy_preprocessor.core.config import (
    ConfigurationError,
    DeployStrategy,
    Location,
    LocationType,
    Moniker,
    PreProcessorConfig,
    StageConfig,
)
from deploy_preprocessor.core.context import ResizeAction, ResizeContext, ResizeContextBuilder
from deploy_preprocessor.core.definitions import (
    StageBuilder,
    StageDefinition,
    StagePlan,
    StepDefinition,
    TaskType,
)
from deploy_preprocessor.core.policy import StrategyPolicy
from deploy_preprocessor.core.preconditions import (
    ClusterSizePrecondition,
    Comparison,
    PreconditionGateBuilder,
)
from deploy_preprocessor.core.resolver import (
    Resolution,
    ResolutionError,
    ResolutionStatus,
    SourceServerGroup,
    SourceServerGroupResolver,
    StaticServerGroupResolver,
)
from deploy_preprocessor.images.finder import ImageCatalog, ImageDetails, TaggedImageFinder
from deploy_preprocessor.plugins.registry import PreProcessorRegistry

__all__ = [
    # Version
    "__version__",
    # Preprocessors
    "DeployStagePreProcessor",
    "ServerGroupDeployPreProcessor",
    "PreProcessorRegistry",
    # Config
    "PreProcessorConfig",
    "StageConfig",
    "DeployStrategy",
    "Moniker",
    "Location",
    "LocationType",
    "ConfigurationError",
    # Policy and builders
    "StrategyPolicy",
    "ResizeContext",
    "ResizeContextBuilder",
    "ResizeAction",
    "PreconditionGateBuilder",
    "ClusterSizePrecondition",
    "Comparison",
    # Resolution
    "SourceServerGroup",
    "SourceServerGroupResolver",
    "StaticServerGroupResolver",
    "Resolution",
    "ResolutionStatus",
    "ResolutionError",
    # Definitions
    "StepDefinition",
    "StageDefinition",
    "StagePlan",
    "StageBuilder",
    "TaskType",
    # Images
    "ImageCatalog",
    "ImageDetails",
    "TaggedImageFinder",
]
