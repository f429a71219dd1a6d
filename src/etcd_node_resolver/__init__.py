"""
Reachable-node resolution for clusters published in an etcd discovery store,
with TTL membership caching, bounded-retry refresh, and randomized failover.
"""
from .errors import (
    NodeResolverError,
    RefreshFailedError,
    NoValidNodesError,
    ResolutionTimeoutError,
    DiscoveryRequestError,
)
from .types import (
    NodeValidity,
    NodeRecord,
    ResolverState,
    ResolverConfig,
    ResolutionResult,
    ResolverStats,
    ResolverEvent,
    ResolverEventListener,
    DiscoveryFetcher,
    NodeProber,
)
from .config import (
    DEFAULT_RESOLVER_CONFIG,
    merge_config,
    is_blank_token,
    is_state_fresh,
    build_node_records,
    get_candidates,
    select_candidate,
    replace_node,
    fix_node_url,
    calculate_retry_delay,
)
from .request import request
from .fetcher import EtcdDiscoveryFetcher, parse_discovery_nodes, DEFAULT_DISCOVERY_URL
from .prober import HttpNodeProber, DEFAULT_PROBE_PATH
from .settings import ResolverSettings, get_settings
from .resolver import NodeResolver, create_node_resolver


__all__ = [
    # Errors
    "NodeResolverError",
    "RefreshFailedError",
    "NoValidNodesError",
    "ResolutionTimeoutError",
    "DiscoveryRequestError",
    # Types
    "NodeValidity",
    "NodeRecord",
    "ResolverState",
    "ResolverConfig",
    "ResolutionResult",
    "ResolverStats",
    "ResolverEvent",
    "ResolverEventListener",
    "DiscoveryFetcher",
    "NodeProber",
    # Config
    "DEFAULT_RESOLVER_CONFIG",
    "merge_config",
    "is_blank_token",
    "is_state_fresh",
    "build_node_records",
    "get_candidates",
    "select_candidate",
    "replace_node",
    "fix_node_url",
    "calculate_retry_delay",
    # Transport
    "request",
    "EtcdDiscoveryFetcher",
    "parse_discovery_nodes",
    "DEFAULT_DISCOVERY_URL",
    "HttpNodeProber",
    "DEFAULT_PROBE_PATH",
    # Settings
    "ResolverSettings",
    "get_settings",
    # Resolver
    "NodeResolver",
    "create_node_resolver",
]


__version__ = "1.0.0"
