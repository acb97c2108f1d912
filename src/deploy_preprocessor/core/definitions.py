"""Step and stage definitions produced for the pipeline execution engine.

Definitions are plain output values. The builder and task references are
opaque identifiers resolved by the engine; nothing here executes them.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

import yaml


class StageBuilder(str, Enum):
    """Stage builders the engine can attach as synthetic stages."""

    CHECK_PRECONDITIONS = "checkPreconditions"
    PIN_SERVER_GROUP = "pinServerGroup"
    APPLY_SOURCE_SERVER_GROUP_CAPACITY = "applySourceServerGroupCapacity"


class TaskType(str, Enum):
    """Tasks the engine can add to a deploy stage."""

    CAPTURE_SOURCE_SERVER_GROUP_CAPACITY = "captureSourceServerGroupCapacity"


@dataclass(frozen=True)
class StepDefinition:
    """A named task to run as part of the deploy stage itself.

    Attributes:
        name: Step name.
        task: Task the engine runs for this step.
    """

    name: str
    task: TaskType

    def to_dict(self) -> Dict[str, Any]:
        """Convert step definition to dictionary."""
        return {"name": self.name, "task": self.task.value}


@dataclass(frozen=True)
class StageDefinition:
    """A named synthetic stage to run before, after or on failure of a deploy.

    Attributes:
        name: Stage name, possibly embedding the server group name.
        builder: Stage builder the engine uses to plan the stage.
        context: Untyped stage context handed to the builder.
    """

    name: str
    builder: StageBuilder
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stage definition to dictionary."""
        return {"name": self.name, "builder": self.builder.value, "context": self.context}


@dataclass
class StagePlan:
    """All hook outputs for one deploy stage.

    Attributes:
        additional_steps: Steps added to the deploy stage.
        before: Stages to run before the deploy.
        after: Stages to run after a successful deploy.
        on_failure: Stages to run if the deploy fails.
    """

    additional_steps: List[StepDefinition] = field(default_factory=list)
    before: List[StageDefinition] = field(default_factory=list)
    after: List[StageDefinition] = field(default_factory=list)
    on_failure: List[StageDefinition] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.additional_steps or self.before or self.after or self.on_failure)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stage plan to dictionary."""
        return {
            "additional_steps": [s.to_dict() for s in self.additional_steps],
            "before": [s.to_dict() for s in self.before],
            "after": [s.to_dict() for s in self.after],
            "on_failure": [s.to_dict() for s in self.on_failure],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert stage plan to JSON string.

        Args:
            indent: JSON indentation level.

        Returns:
            JSON representation of the plan.
        """
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        """Convert stage plan to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
