"""Configuration classes for deploy stage pre/post-processing.

This module defines the stage configuration read from a deploy stage's context,
the deployment strategy enumeration, and the preprocessor settings.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from deploy_preprocessor.core.resolver import SourceServerGroup

NO_MAX_INITIAL_ASGS = -1
DEFAULT_UNPIN_TIMEOUT_MS = 20 * 60 * 1000


class ConfigurationError(ValueError):
    """Raised when a stage configuration is internally inconsistent."""


class DeployStrategy(str, Enum):
    """Deployment strategies a deploy stage may request."""

    RED_BLACK = "redblack"
    ROLLING_RED_BLACK = "rollingredblack"
    HIGHLANDER = "highlander"
    ROLLING_PUSH = "rollingpush"
    CF_ROLLING_RED_BLACK = "cfrollingredblack"
    MONITORED = "monitored"
    CUSTOM = "custom"
    NONE = "none"


def parse_strategy(value: Optional[Union[str, DeployStrategy]]) -> DeployStrategy:
    """Parse a strategy name; a missing or empty strategy means no strategy.

    Raises:
        ValueError: If the name is not a known strategy.
    """
    if not value:
        return DeployStrategy.NONE
    try:
        return DeployStrategy(value)
    except ValueError:
        valid = [s.value for s in DeployStrategy]
        raise ValueError(f"Unknown deploy strategy: {value!r}. Must be one of {valid}") from None


class LocationType(str, Enum):
    """Provider-specific location kinds, valued by their singular context key."""

    NAMESPACE = "namespace"
    REGION = "region"


@dataclass(frozen=True)
class Location:
    """Where a server group lives.

    Attributes:
        type: Kind of location (region or namespace).
        value: Location identifier, e.g. "us-east-1".
    """

    type: LocationType
    value: str

    @property
    def singular_type(self) -> str:
        return self.type.value


@dataclass
class Moniker:
    """Structured server group name.

    Attributes:
        app: Application name.
        cluster: Cluster name.
        stack: Stack qualifier.
        detail: Free-form detail qualifier.
        sequence: Server group sequence number.
    """

    app: Optional[str] = None
    cluster: Optional[str] = None
    stack: Optional[str] = None
    detail: Optional[str] = None
    sequence: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert moniker to dictionary, omitting unset fields."""
        result = {}
        for key in ("app", "cluster", "stack", "detail", "sequence"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Moniker":
        """Create moniker from dictionary."""
        return cls(
            app=data.get("app"),
            cluster=data.get("cluster"),
            stack=data.get("stack"),
            detail=data.get("detail"),
            sequence=data.get("sequence"),
        )


def build_cluster_name(application: str, stack: Optional[str] = None, detail: Optional[str] = None) -> str:
    """Build a cluster name from its naming components.

    Examples:
        >>> build_cluster_name("app", "prod", "canary")
        'app-prod-canary'
        >>> build_cluster_name("app", detail="canary")
        'app--canary'
    """
    name = application
    if stack or detail:
        name += f"-{stack or ''}"
    if detail:
        name += f"-{detail}"
    return name


@dataclass(frozen=True)
class StageConfig:
    """Configuration of a single deploy stage.

    Read-only for the duration of a hook invocation.

    Attributes:
        strategy: Requested deployment strategy.
        cloud_provider: Cloud provider the stage targets.
        cluster: Cluster name, if given explicitly.
        application: Application name.
        stack: Stack qualifier used to derive the cluster name.
        free_form_details: Detail qualifier used to derive the cluster name.
        account: Target account.
        credentials: Alias for account used by some callers.
        region: Target region.
        availability_zones: Zones keyed by region.
        namespace: Target namespace for namespaced providers.
        moniker: Structured name of the cluster.
        max_initial_asgs: Maximum enabled server groups allowed before deploying (-1 or None disables).
        scale_down: Whether the source server group has already been scaled down.
        source: Explicit source server group, bypassing resolution.
    """

    strategy: Optional[Union[str, DeployStrategy]] = DeployStrategy.NONE
    cloud_provider: Optional[str] = None
    cluster: Optional[str] = None
    application: Optional[str] = None
    stack: Optional[str] = None
    free_form_details: Optional[str] = None
    account: Optional[str] = None
    credentials: Optional[str] = None
    region: Optional[str] = None
    availability_zones: Dict[str, List[str]] = field(default_factory=dict)
    namespace: Optional[str] = None
    moniker: Optional[Moniker] = None
    max_initial_asgs: Optional[int] = NO_MAX_INITIAL_ASGS
    scale_down: bool = False
    source: Optional[SourceServerGroup] = None

    def __post_init__(self):
        """Normalize strategy and nested structures."""
        object.__setattr__(self, "strategy", parse_strategy(self.strategy))

        if self.max_initial_asgs is None:
            object.__setattr__(self, "max_initial_asgs", NO_MAX_INITIAL_ASGS)
        if isinstance(self.moniker, dict):
            object.__setattr__(self, "moniker", Moniker.from_dict(self.moniker))
        if isinstance(self.source, dict):
            object.__setattr__(self, "source", SourceServerGroup.from_dict(self.source))

    @property
    def resolved_account(self) -> Optional[str]:
        """Account the stage deploys into.

        Raises:
            ConfigurationError: If account and credentials are both set and differ.
        """
        if self.account and self.credentials and self.account != self.credentials:
            raise ConfigurationError("Cannot specify different values for 'account' and 'credentials'")
        return self.account or self.credentials

    @property
    def resolved_cluster(self) -> Optional[str]:
        """Cluster name, preferring the moniker over explicit and derived names."""
        if self.moniker is not None and self.moniker.cluster:
            return self.moniker.cluster
        if self.cluster:
            return self.cluster
        if self.application:
            return build_cluster_name(self.application, self.stack, self.free_form_details)
        return None

    @property
    def resolved_region(self) -> Optional[str]:
        """Region, falling back to the first availability zone region."""
        if self.region:
            return self.region
        if self.availability_zones:
            return next(iter(self.availability_zones))
        return None

    @property
    def location(self) -> Location:
        """Provider-specific location of the stage's cluster.

        Raises:
            ConfigurationError: If neither a namespace nor a region is available.
        """
        if self.namespace:
            return Location(LocationType.NAMESPACE, self.namespace)

        region = self.resolved_region
        if region:
            return Location(LocationType.REGION, region)

        raise ConfigurationError("No known location type provided. Must be `namespace` or `region`.")

    def to_dict(self) -> Dict[str, Any]:
        """Convert stage config to a camelCase stage context dictionary."""
        result = {
            "strategy": self.strategy.value,
            "cloudProvider": self.cloud_provider,
            "cluster": self.cluster,
            "application": self.application,
            "stack": self.stack,
            "freeFormDetails": self.free_form_details,
            "account": self.account,
            "credentials": self.credentials,
            "region": self.region,
            "availabilityZones": self.availability_zones,
            "namespace": self.namespace,
            "maxInitialAsgs": self.max_initial_asgs,
            "scaleDown": self.scale_down,
        }
        if self.moniker is not None:
            result["moniker"] = self.moniker.to_dict()
        if self.source is not None:
            result["source"] = self.source.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageConfig":
        """Create stage config from a camelCase stage context dictionary."""
        moniker = None
        if data.get("moniker"):
            moniker = Moniker.from_dict(data["moniker"])

        source = None
        if data.get("source"):
            source = SourceServerGroup.from_dict(data["source"])

        return cls(
            strategy=data.get("strategy"),
            cloud_provider=data.get("cloudProvider"),
            cluster=data.get("cluster"),
            application=data.get("application"),
            stack=data.get("stack"),
            free_form_details=data.get("freeFormDetails"),
            account=data.get("account"),
            credentials=data.get("credentials"),
            region=data.get("region"),
            availability_zones=data.get("availabilityZones") or {},
            namespace=data.get("namespace"),
            moniker=moniker,
            max_initial_asgs=data.get("maxInitialAsgs"),
            scale_down=data.get("scaleDown", False),
            source=source,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StageConfig":
        """Load stage config from a JSON or YAML stage context file."""
        return cls.from_dict(_load_file(path))


@dataclass
class PreProcessorConfig:
    """Settings for a deploy stage preprocessor.

    Attributes:
        cloud_provider: Provider whose deploy stages the preprocessor handles.
        unpin_timeout_ms: Stage timeout applied to the unpin stage after a failed deploy.
    """

    cloud_provider: str = "aws"
    unpin_timeout_ms: int = DEFAULT_UNPIN_TIMEOUT_MS

    def __post_init__(self):
        """Validate preprocessor configuration."""
        if not self.cloud_provider:
            raise ValueError("cloud_provider is required")
        if self.unpin_timeout_ms <= 0:
            raise ValueError(f"unpin_timeout_ms must be positive, got {self.unpin_timeout_ms}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert preprocessor config to dictionary."""
        return {
            "cloud_provider": self.cloud_provider,
            "unpin_timeout_ms": self.unpin_timeout_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PreProcessorConfig":
        """Create preprocessor config from dictionary."""
        defaults = cls()
        return cls(
            cloud_provider=data.get("cloud_provider", defaults.cloud_provider),
            unpin_timeout_ms=data.get("unpin_timeout_ms", defaults.unpin_timeout_ms),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "PreProcessorConfig":
        """Load preprocessor config from JSON or YAML file.

        Args:
            path: Path to configuration file (.json or .yaml/.yml).

        Returns:
            Loaded preprocessor configuration.

        Raises:
            ValueError: If file format is unsupported.
        """
        return cls.from_dict(_load_file(path))

    def to_json(self, indent: int = 2) -> str:
        """Convert preprocessor config to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        """Convert preprocessor config to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)


def _load_file(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    suffix = path.suffix.lower()

    with open(path, "r", encoding="utf-8") as f:
        if suffix == ".json":
            data = json.load(f)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported file format: {suffix}. Use .json, .yaml, or .yml")

    return data or {}
