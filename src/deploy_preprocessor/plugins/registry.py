"""Registry of deploy stage preprocessors.

The registry holds one preprocessor per cloud provider (or any other
``supports`` predicate) and composes the full stage plan for a deploy stage
from every preprocessor that accepts it.
"""

import importlib
import logging
from typing import Dict, List, Optional

from deploy_preprocessor.core.composer import (
    DeployStagePreProcessor,
    StageInput,
    as_stage_config,
    cloud_provider_of,
)
from deploy_preprocessor.core.definitions import StagePlan

logger = logging.getLogger(__name__)


class PreProcessorRegistry:
    """Registry for managing deploy stage preprocessors.

    Attributes:
        _preprocessors: Registered preprocessors keyed by name, in registration order.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._preprocessors: Dict[str, DeployStagePreProcessor] = {}
        logger.debug("Initialized PreProcessorRegistry")

    def register(self, preprocessor: DeployStagePreProcessor, name: Optional[str] = None) -> None:
        """Register a preprocessor instance.

        Args:
            preprocessor: Preprocessor to register.
            name: Registration name; defaults to the preprocessor's name.
        """
        name = name or preprocessor.name
        if name in self._preprocessors:
            logger.warning(f"Preprocessor '{name}' already registered, overwriting")

        self._preprocessors[name] = preprocessor
        logger.info(f"Registered preprocessor: {name}")

    def load_preprocessor_module(self, module_path: str, class_name: str, *args, **kwargs) -> DeployStagePreProcessor:
        """Dynamically load and register a preprocessor from a module.

        Args:
            module_path: Python module path (e.g., "my_package.preprocessors").
            class_name: Name of the preprocessor class to instantiate.
            *args: Positional arguments for the class constructor.
            **kwargs: Keyword arguments for the class constructor.

        Returns:
            Instantiated preprocessor.

        Raises:
            ImportError: If module cannot be imported.
            AttributeError: If class not found in module.
            TypeError: If class is not a DeployStagePreProcessor subclass.
        """
        logger.debug(f"Loading preprocessor: {class_name} from {module_path}")

        try:
            module = importlib.import_module(module_path)
            preprocessor_class = getattr(module, class_name)
        except ImportError as e:
            logger.error(f"Failed to import module {module_path}: {e}")
            raise
        except AttributeError as e:
            logger.error(f"Class {class_name} not found in {module_path}: {e}")
            raise

        if not isinstance(preprocessor_class, type) or not issubclass(preprocessor_class, DeployStagePreProcessor):
            raise TypeError(f"{class_name} is not a DeployStagePreProcessor subclass")

        preprocessor = preprocessor_class(*args, **kwargs)
        self.register(preprocessor)
        return preprocessor

    def get(self, name: str) -> Optional[DeployStagePreProcessor]:
        """Get a registered preprocessor by name, or None if not found."""
        return self._preprocessors.get(name)

    def list_preprocessors(self) -> List[str]:
        """List registered preprocessor names in registration order."""
        return list(self._preprocessors)

    def for_stage(self, stage: StageInput) -> List[DeployStagePreProcessor]:
        """Get every registered preprocessor that supports the stage."""
        return [p for p in self._preprocessors.values() if p.supports(stage)]

    def compose(self, stage: StageInput) -> StagePlan:
        """Compose the stage plan for a deploy stage.

        Hook outputs of all supporting preprocessors are concatenated in
        registration order. Resolution failures propagate to the caller.

        Args:
            stage: Deploy stage configuration or raw stage context.

        Returns:
            Stage plan; empty if no preprocessor supports the stage.
        """
        plan = StagePlan()

        # Unsupported stages are rejected before their context is parsed.
        preprocessors = self.for_stage(stage)
        if not preprocessors:
            logger.debug(f"No preprocessor supports cloud provider {cloud_provider_of(stage)!r}")
            return plan

        stage = as_stage_config(stage)

        for preprocessor in preprocessors:
            plan.additional_steps.extend(preprocessor.additional_steps(stage))
            plan.before.extend(preprocessor.before_stage_definitions(stage))
            plan.after.extend(preprocessor.after_stage_definitions(stage))
            plan.on_failure.extend(preprocessor.on_failure_stage_definitions(stage))

        logger.info(
            f"Composed plan for {stage.resolved_cluster}: {len(plan.additional_steps)} steps, "
            f"{len(plan.before)} before, {len(plan.after)} after, {len(plan.on_failure)} on failure"
        )
        return plan
