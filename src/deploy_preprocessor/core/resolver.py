"""Source server group resolution.

A deploy is compared against the cluster's current ("source") server group.
Finding that server group is delegated to a resolver, which reports one of
three outcomes:

- FOUND: the source server group exists.
- NOT_FOUND: the cluster has no server group yet. This is expected for a
  first deploy and is not an error.
- FAILED: resolution could not be completed (e.g. upstream unavailable).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class ResolutionError(RuntimeError):
    """Raised when a source server group lookup fails for a reason other than absence."""


@dataclass(frozen=True)
class SourceServerGroup:
    """Reference to a resolved source server group.

    Attributes:
        server_group_name: Server group name, e.g. "app-v002".
        region: Region (or other location value) of the server group.
        credentials: Account owning the server group.
        cloud_provider: Cloud provider of the server group.
    """

    server_group_name: str
    region: Optional[str] = None
    credentials: Optional[str] = None
    cloud_provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert source reference to a camelCase dictionary."""
        return {
            "serverGroupName": self.server_group_name,
            "region": self.region,
            "credentials": self.credentials,
            "cloudProvider": self.cloud_provider,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceServerGroup":
        """Create source reference from dictionary.

        Accepts the legacy ``asgName`` key in place of ``serverGroupName``.
        """
        name = data.get("serverGroupName") or data.get("asgName")
        if not name:
            raise ValueError("Source server group requires serverGroupName")
        return cls(
            server_group_name=name,
            region=data.get("region"),
            credentials=data.get("credentials") or data.get("account"),
            cloud_provider=data.get("cloudProvider"),
        )


class ResolutionStatus(str, Enum):
    """Outcome of a source server group lookup."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Resolution:
    """Result of a source server group lookup.

    Attributes:
        status: Lookup outcome.
        server_group: Resolved server group, set only when FOUND.
        error: Underlying failure, set only when FAILED.
    """

    status: ResolutionStatus
    server_group: Optional[SourceServerGroup] = None
    error: Optional[BaseException] = None

    def __post_init__(self):
        """Validate that the payload matches the status."""
        if self.status == ResolutionStatus.FOUND and self.server_group is None:
            raise ValueError("FOUND resolution requires a server_group")
        if self.status != ResolutionStatus.FOUND and self.server_group is not None:
            raise ValueError(f"{self.status.value} resolution cannot carry a server_group")
        if self.status == ResolutionStatus.FAILED and self.error is None:
            raise ValueError("FAILED resolution requires an error")

    @classmethod
    def found(cls, server_group: SourceServerGroup) -> "Resolution":
        return cls(ResolutionStatus.FOUND, server_group=server_group)

    @classmethod
    def not_found(cls) -> "Resolution":
        return cls(ResolutionStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: BaseException) -> "Resolution":
        return cls(ResolutionStatus.FAILED, error=error)

    @property
    def is_found(self) -> bool:
        return self.status == ResolutionStatus.FOUND

    def unwrap(self) -> Optional[SourceServerGroup]:
        """Return the server group, or None when legitimately absent.

        Raises:
            ResolutionError: If the lookup failed.
        """
        if self.status == ResolutionStatus.FAILED:
            raise ResolutionError(f"Source server group resolution failed: {self.error}") from self.error
        return self.server_group


class SourceServerGroupResolver(ABC):
    """Looks up the current server group of a cluster.

    Implementations typically call a cloud inventory service and may block
    on network I/O. They must not retry internally.
    """

    @abstractmethod
    def resolve(self, cluster: str, account: str, region: str) -> Resolution:
        """Resolve the source server group of a cluster.

        Args:
            cluster: Cluster name.
            account: Account owning the cluster.
            region: Location value of the cluster.

        Returns:
            Resolution describing the lookup outcome.
        """
        pass


class StaticServerGroupResolver(SourceServerGroupResolver):
    """In-memory resolver keyed by (cluster, account, region).

    Useful for local composition and tests. Unknown keys resolve to
    NOT_FOUND; keys registered with an error resolve to FAILED.
    """

    def __init__(self):
        self._server_groups: Dict[Tuple[str, str, str], SourceServerGroup] = {}
        self._failures: Dict[Tuple[str, str, str], BaseException] = {}
        self.calls: int = 0

    def add(self, cluster: str, account: str, region: str, server_group_name: str, cloud_provider: Optional[str] = None) -> SourceServerGroup:
        """Register the current server group of a cluster."""
        server_group = SourceServerGroup(
            server_group_name=server_group_name,
            region=region,
            credentials=account,
            cloud_provider=cloud_provider,
        )
        self._server_groups[(cluster, account, region)] = server_group
        self._failures.pop((cluster, account, region), None)
        return server_group

    def fail(self, cluster: str, account: str, region: str, error: BaseException) -> None:
        """Make lookups of a cluster fail with the given error."""
        self._failures[(cluster, account, region)] = error
        self._server_groups.pop((cluster, account, region), None)

    def resolve(self, cluster: str, account: str, region: str) -> Resolution:
        self.calls += 1
        key = (cluster, account, region)

        if key in self._failures:
            return Resolution.failed(self._failures[key])

        server_group = self._server_groups.get(key)
        if server_group is None:
            logger.debug(f"No server group registered for {key}")
            return Resolution.not_found()
        return Resolution.found(server_group)
