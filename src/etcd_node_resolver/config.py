"""
Configuration utilities for etcd_node_resolver
"""
import asyncio
import random
import re
import time
from typing import Optional

from .types import NodeRecord, NodeValidity, ResolverConfig, ResolverState


# Default configuration
DEFAULT_RESOLVER_CONFIG = ResolverConfig(
    cache_ttl_seconds=600.0,
    max_retries=5,
    retry_delay_seconds=0.0,
    max_retry_delay_seconds=10.0,
    call_timeout_seconds=60.0,
    api_port=None,
)

_PORT_PATTERN = re.compile(r":\d+")


def merge_config(config: Optional[ResolverConfig] = None) -> ResolverConfig:
    """Merge user config with defaults"""
    if config is None:
        return ResolverConfig(
            cache_ttl_seconds=DEFAULT_RESOLVER_CONFIG.cache_ttl_seconds,
            max_retries=DEFAULT_RESOLVER_CONFIG.max_retries,
            retry_delay_seconds=DEFAULT_RESOLVER_CONFIG.retry_delay_seconds,
            max_retry_delay_seconds=DEFAULT_RESOLVER_CONFIG.max_retry_delay_seconds,
            call_timeout_seconds=DEFAULT_RESOLVER_CONFIG.call_timeout_seconds,
            api_port=DEFAULT_RESOLVER_CONFIG.api_port,
        )
    if config.max_retries < 0:
        raise ValueError("max_retries must be >= 0")
    if config.cache_ttl_seconds < 0:
        raise ValueError("cache_ttl_seconds must be >= 0")
    return config


def is_blank_token(token: Optional[str]) -> bool:
    """Check if a cluster token is missing or whitespace only"""
    return token is None or not token.strip()


def is_state_fresh(
    state: ResolverState,
    ttl_seconds: float,
    now: Optional[float] = None,
) -> bool:
    """
    Check if the cached membership can be used without a refresh.

    Fresh means: a non-blank token, at least one node, and a successful
    refresh less than ttl_seconds ago.

    Args:
        state: Resolver state to check
        ttl_seconds: Membership TTL in seconds
        now: Current monotonic time (defaults to time.monotonic())

    Returns:
        Whether the cache is fresh
    """
    if is_blank_token(state.cluster_token):
        return False
    if state.last_refreshed_at is None or not state.nodes:
        return False
    if now is None:
        now = time.monotonic()
    return now - state.last_refreshed_at < ttl_seconds


def build_node_records(urls: list[str]) -> list[NodeRecord]:
    """Start a new epoch: one UNKNOWN record per listed URL"""
    return [NodeRecord(url=url, validity=NodeValidity.UNKNOWN) for url in urls]


def get_candidates(nodes: list[NodeRecord]) -> list[int]:
    """Indexes of nodes not yet known to be unreachable"""
    return [i for i, node in enumerate(nodes) if node.validity is not NodeValidity.INVALID]


def select_candidate(candidates: list[int], rng: random.Random) -> Optional[int]:
    """Uniform random pick over the candidate indexes"""
    if not candidates:
        return None
    return rng.choice(candidates)


def replace_node(nodes: list[NodeRecord], index: int, node: NodeRecord) -> list[NodeRecord]:
    """Return a copy of nodes with one record swapped in place"""
    updated = list(nodes)
    updated[index] = node
    return updated


def count_validity(nodes: list[NodeRecord]) -> dict[NodeValidity, int]:
    """Count nodes per validity state"""
    counts = {validity: 0 for validity in NodeValidity}
    for node in nodes:
        counts[node.validity] += 1
    return counts


def fix_node_url(url: str, api_port: Optional[int] = None) -> str:
    """
    Force the first port in a node URL to api_port.

    Discovery stores commonly publish the peer port (e.g. 2380/4001) rather
    than the API port.

    Example:
        fix_node_url("http://10.0.0.1:4001", 49153)  # "http://10.0.0.1:49153"
    """
    if api_port is None:
        return url
    return _PORT_PATTERN.sub(f":{api_port}", url, count=1)


def calculate_retry_delay(attempt: int, config: ResolverConfig) -> float:
    """
    Exponential backoff for refresh attempts.

    Returns 0 when no base delay is configured.

    Args:
        attempt: The attempt that just failed (0-indexed)
        config: Resolver configuration

    Returns:
        Delay in seconds
    """
    base = config.retry_delay_seconds
    if base <= 0:
        return 0.0
    return min(config.max_retry_delay_seconds, base * (2 ** attempt))


async def async_sleep(seconds: float) -> None:
    """Async sleep for a specified duration"""
    await asyncio.sleep(seconds)
