"""
Node Resolver - Main implementation
"""
import asyncio
import logging
import random
import time
from typing import Callable, Optional

from .errors import NoValidNodesError, RefreshFailedError, ResolutionTimeoutError
from .types import (
    DiscoveryFetcher,
    NodeProber,
    NodeValidity,
    ResolutionResult,
    ResolverConfig,
    ResolverEvent,
    ResolverEventListener,
    ResolverState,
    ResolverStats,
)
from .config import (
    merge_config,
    is_state_fresh,
    build_node_records,
    get_candidates,
    select_candidate,
    replace_node,
    count_validity,
    fix_node_url,
    calculate_retry_delay,
    async_sleep,
)

logger = logging.getLogger("etcd_node_resolver.resolver")


class NodeResolver:
    """
    Node Resolver

    Answers "which node URL is currently reachable" for a cluster whose
    membership is published in a discovery store:
    - TTL-based membership cache
    - Bounded-retry refresh against the discovery store
    - Random candidate selection with per-epoch probe results
    - All state transitions serialized behind one lock
    - Event emission for observability

    Example:
        resolver = NodeResolver(
            "6a28e078895c5ec737174db2419bb2f3",
            EtcdDiscoveryFetcher(),
            HttpNodeProber(),
        )

        result = await resolver.resolve_node_url()
        if result.ok:
            print(result.url)
    """

    def __init__(
        self,
        cluster_token: str,
        fetcher: DiscoveryFetcher,
        prober: NodeProber,
        config: Optional[ResolverConfig] = None,
        *,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._config = merge_config(config)
        self._fetcher = fetcher
        self._prober = prober
        self._state = ResolverState(cluster_token=cluster_token)
        self._lock = asyncio.Lock()
        self._rng = rng or random.Random()
        self._clock = clock or time.monotonic
        self._listeners: set[ResolverEventListener] = set()

        # Statistics
        self._resolutions = 0
        self._refreshes = 0
        self._refresh_failures = 0
        self._refresh_attempts = 0
        self._probes = 0

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "NodeResolver":
        """Build a resolver with the default httpx-backed fetcher and prober"""
        from .fetcher import EtcdDiscoveryFetcher
        from .prober import HttpNodeProber
        from .settings import get_settings

        settings = settings or get_settings()
        config = settings.to_resolver_config()
        api_port = config.api_port

        fetcher = EtcdDiscoveryFetcher(
            settings.ETCD_DISCOVERY_URL,
            proxy=settings.FLEET_API_PROXY,
            diagnostic_url=settings.DISCOVERY_DIAGNOSTIC_URL,
        )
        prober = HttpNodeProber(
            settings.NODE_PROBE_PATH,
            timeout_seconds=settings.NODE_PROBE_TIMEOUT_SECONDS,
            proxy=settings.FLEET_API_PROXY,
            url_transform=lambda url: fix_node_url(url, api_port),
        )
        return cls(settings.ETCD_TOKEN, fetcher, prober, config, **kwargs)

    @property
    def config(self) -> ResolverConfig:
        return self._config

    @property
    def state(self) -> ResolverState:
        """A copy of the current membership state"""
        return self._state.copy()

    def is_fresh(self) -> bool:
        return is_state_fresh(self._state, self._config.cache_ttl_seconds, self._clock())

    async def resolve_node_url(self) -> ResolutionResult:
        """
        Find a node URL known to be reachable.

        Refreshes membership when the cache is stale, then probes random
        candidates until one answers or none remain. Failures are returned
        in the result rather than raised.

        Returns:
            Resolution result carrying the URL or a NodeResolverError
        """
        async with self._lock:
            self._resolutions += 1
            result = ResolutionResult()

            if self.is_fresh():
                self._emit(ResolverEvent(
                    type="cache:hit",
                    data={"node_count": len(self._state.nodes)},
                ))
            else:
                self._emit(ResolverEvent(type="cache:miss", data={}))
                try:
                    await self._refresh()
                except RefreshFailedError as e:
                    result.error = e
                    return result
                result.refreshed = True

            await self._find_valid_node(result)
            return result

    async def get_node_url(self, timeout_seconds: Optional[float] = None) -> str:
        """
        Resolve a node URL, apply the configured port fix, and raise on failure.

        Args:
            timeout_seconds: Overall timeout. Default: config.call_timeout_seconds

        Returns:
            The node URL

        Raises:
            RefreshFailedError, NoValidNodesError, ResolutionTimeoutError
        """
        if timeout_seconds is None:
            timeout_seconds = self._config.call_timeout_seconds

        try:
            result = await asyncio.wait_for(self.resolve_node_url(), timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Node resolution timed out after {timeout_seconds}s")
            raise ResolutionTimeoutError(timeout_seconds) from None

        return fix_node_url(result.unwrap(), self._config.api_port)

    async def _refresh(self) -> None:
        """Replace membership from the discovery store, retrying up to max_retries times"""
        token = self._state.cluster_token
        max_retries = self._config.max_retries
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt <= max_retries:
            logger.debug(f"Refreshing list of etcd nodes, attempt: {attempt}.")
            self._refresh_attempts += 1
            self._emit(ResolverEvent(type="refresh:attempt", data={"attempt": attempt}))

            try:
                urls = await self._fetcher.list_nodes(token)
            except Exception as error:
                last_error = error
                will_retry = attempt < max_retries

                self._emit(ResolverEvent(
                    type="refresh:error",
                    data={"attempt": attempt, "error": repr(error), "will_retry": will_retry},
                ))

                if will_retry:
                    delay = calculate_retry_delay(attempt, self._config)
                    if delay > 0:
                        await async_sleep(delay)
                attempt += 1
                continue

            self._state = ResolverState(
                cluster_token=token,
                last_refreshed_at=self._clock(),
                nodes=build_node_records(urls),
            )
            self._refreshes += 1

            logger.debug(f"Successfully retrieved list of {len(urls)} etcd nodes.")
            self._emit(ResolverEvent(
                type="refresh:success",
                data={"attempt": attempt, "node_count": len(urls)},
            ))
            return

        self._refresh_failures += 1
        logger.error(
            f"Couldn't refresh list of etcd nodes after {max_retries} retries. Failing."
        )
        self._emit(ResolverEvent(
            type="refresh:failed",
            data={"attempts": attempt, "error": repr(last_error)},
        ))
        raise RefreshFailedError(last_error, attempts=attempt)

    async def _find_valid_node(self, result: ResolutionResult) -> None:
        """Probe random candidates until one is valid or the set is drained"""
        logger.debug("Finding a valid node...")

        while True:
            nodes = self._state.nodes
            index = select_candidate(get_candidates(nodes), self._rng)

            if index is None:
                logger.warning(
                    "All nodes have been checked, and no valid nodes were found."
                )
                logger.error("Node list contained no valid nodes!")
                self._emit(ResolverEvent(
                    type="nodes:exhausted",
                    data={"node_count": len(nodes)},
                ))
                result.error = NoValidNodesError(len(nodes))
                return

            node = nodes[index]
            if node.validity is NodeValidity.VALID:
                self._select(result, node.url, probed=False)
                return

            reachable = await self._probe(node.url)
            result.probes += 1

            validity = NodeValidity.VALID if reachable else NodeValidity.INVALID
            self._state.nodes = replace_node(nodes, index, node.with_validity(validity))

            self._emit(ResolverEvent(
                type="probe:result",
                data={"url": node.url, "reachable": reachable},
            ))

            if reachable:
                self._select(result, node.url, probed=True)
                return

            logger.warning(f"Node {node.url} failed validation, trying another node.")

    async def _probe(self, url: str) -> bool:
        self._probes += 1
        try:
            return bool(await self._prober.is_reachable(url))
        except Exception as e:
            logger.warning(f"Probe of {url} raised an exception: {e!r}")
            return False

    def _select(self, result: ResolutionResult, url: str, probed: bool) -> None:
        logger.debug(f"Confirmed node {url!r} was valid.")
        result.url = url
        self._emit(ResolverEvent(
            type="node:selected",
            data={"url": url, "probed": probed},
        ))

    def get_stats(self) -> ResolverStats:
        """Get resolver statistics"""
        counts = count_validity(self._state.nodes)
        return ResolverStats(
            resolutions=self._resolutions,
            refreshes=self._refreshes,
            refresh_failures=self._refresh_failures,
            refresh_attempts=self._refresh_attempts,
            probes=self._probes,
            valid_nodes=counts[NodeValidity.VALID],
            invalid_nodes=counts[NodeValidity.INVALID],
            unknown_nodes=counts[NodeValidity.UNKNOWN],
            cache_fresh=self.is_fresh(),
        )

    def on(self, listener: ResolverEventListener) -> Callable[[], None]:
        """Subscribe to events"""
        self._listeners.add(listener)
        return lambda: self._listeners.discard(listener)

    def off(self, listener: ResolverEventListener) -> None:
        """Unsubscribe from events"""
        self._listeners.discard(listener)

    def _emit(self, event: ResolverEvent) -> None:
        """Emit an event"""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.debug(f"Listener failed handling {event.type}", exc_info=True)

    async def destroy(self) -> None:
        """Destroy the resolver, releasing resources"""
        self._listeners.clear()
        await self._fetcher.close()
        await self._prober.close()


def create_node_resolver(
    cluster_token: str,
    fetcher: DiscoveryFetcher,
    prober: NodeProber,
    config: Optional[ResolverConfig] = None,
) -> NodeResolver:
    """Factory function to create a node resolver"""
    return NodeResolver(cluster_token, fetcher, prober, config)
