"""
Type definitions for etcd_node_resolver
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Literal, Optional

from .errors import NodeResolverError


class NodeValidity(str, Enum):
    """Result of the most recent probe against a node"""
    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class NodeRecord:
    """A cluster member as listed by the discovery store"""

    url: str
    """Candidate endpoint URL"""

    validity: NodeValidity = NodeValidity.UNKNOWN
    """Probe outcome for the current epoch"""

    def with_validity(self, validity: NodeValidity) -> "NodeRecord":
        """Record a probe outcome. Only UNKNOWN records may transition."""
        if self.validity is not NodeValidity.UNKNOWN:
            raise ValueError(
                f"Node {self.url} already probed this epoch ({self.validity.value})"
            )
        if validity is NodeValidity.UNKNOWN:
            raise ValueError("Probe outcome must be VALID or INVALID")
        return replace(self, validity=validity)


@dataclass
class ResolverState:
    """Membership cache owned by a single NodeResolver"""

    cluster_token: str
    """Identifier used to query the discovery store"""

    last_refreshed_at: Optional[float] = None
    """Monotonic time of the last successful refresh"""

    nodes: list[NodeRecord] = field(default_factory=list)
    """Known membership, in discovery order"""

    def copy(self) -> "ResolverState":
        return ResolverState(
            cluster_token=self.cluster_token,
            last_refreshed_at=self.last_refreshed_at,
            nodes=list(self.nodes),
        )


@dataclass
class ResolverConfig:
    """Configuration for the node resolver"""

    cache_ttl_seconds: float = 600.0
    """How long a refreshed membership list stays fresh. Default: 600.0"""

    max_retries: int = 5
    """Refresh retries beyond the first attempt. Default: 5"""

    retry_delay_seconds: float = 0.0
    """Base delay between refresh attempts (seconds). Default: 0.0 (immediate)"""

    max_retry_delay_seconds: float = 10.0
    """Upper bound on a single refresh backoff delay (seconds). Default: 10.0"""

    call_timeout_seconds: float = 60.0
    """Overall timeout applied by get_node_url (seconds). Default: 60.0"""

    api_port: Optional[int] = None
    """Port forced onto node URLs before probing and returning. Default: None"""


@dataclass
class ResolutionResult:
    """Outcome of a single resolve_node_url call"""

    url: Optional[str] = None
    """The reachable node URL, if one was found"""

    error: Optional[NodeResolverError] = None
    """RefreshFailedError or NoValidNodesError when resolution failed"""

    refreshed: bool = False
    """Whether this call refreshed membership from the discovery store"""

    probes: int = 0
    """Number of probes issued during this call"""

    @property
    def ok(self) -> bool:
        return self.error is None and self.url is not None

    def unwrap(self) -> str:
        """Return the URL or raise the resolution error"""
        if self.error is not None:
            raise self.error
        if self.url is None:
            raise RuntimeError("Resolution produced neither a URL nor an error")
        return self.url


@dataclass
class ResolverStats:
    """Statistics from the node resolver"""

    resolutions: int
    """Total resolve_node_url calls served"""

    refreshes: int
    """Successful membership refreshes"""

    refresh_failures: int
    """Refreshes that exhausted every attempt"""

    refresh_attempts: int
    """Individual discovery store calls"""

    probes: int
    """Total probes issued"""

    valid_nodes: int
    invalid_nodes: int
    unknown_nodes: int

    cache_fresh: bool
    """Whether the membership cache is currently fresh"""


# Event types
EventType = Literal[
    "cache:hit",
    "cache:miss",
    "refresh:attempt",
    "refresh:success",
    "refresh:error",
    "refresh:failed",
    "probe:result",
    "node:selected",
    "nodes:exhausted",
]


@dataclass
class ResolverEvent:
    """Event emitted by the node resolver"""

    type: EventType
    """Event type"""

    data: dict[str, Any] = field(default_factory=dict)
    """Event-specific data"""


# Event listener type
ResolverEventListener = Callable[[ResolverEvent], None]


class DiscoveryFetcher(ABC):
    """Lists cluster member URLs for a discovery token"""

    @abstractmethod
    async def list_nodes(self, token: str) -> list[str]:
        """Return the current member URLs; raise on transport or decoding errors"""
        pass

    async def close(self) -> None:
        """Release any held resources"""
        pass


class NodeProber(ABC):
    """Checks whether a node URL currently answers"""

    @abstractmethod
    async def is_reachable(self, url: str) -> bool:
        """Return False for ordinary network failures instead of raising"""
        pass

    async def close(self) -> None:
        """Release any held resources"""
        pass
