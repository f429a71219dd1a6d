"""Pytest configuration and fixtures for etcd_node_resolver tests."""
import asyncio
import random
from typing import Optional

import pytest

from etcd_node_resolver import (
    DiscoveryFetcher,
    NodeProber,
    NodeResolver,
    ResolverConfig,
)


NODE_1 = "http://10.0.0.1:4001"
NODE_2 = "http://10.0.0.2:4001"
NODE_3 = "http://10.0.0.3:4001"


class FakeFetcher(DiscoveryFetcher):
    """Discovery fetcher returning canned membership or raising a canned error."""

    def __init__(
        self,
        nodes: Optional[list[str]] = None,
        *,
        error: Optional[Exception] = None,
        fail_times: Optional[int] = None,
    ) -> None:
        self.nodes = list(nodes or [])
        self.error = error
        self.fail_times = fail_times
        self.calls: list[str] = []
        self.closed = False

    async def list_nodes(self, token: str) -> list[str]:
        self.calls.append(token)
        if self.error is not None:
            if self.fail_times is None or len(self.calls) <= self.fail_times:
                raise self.error
        return list(self.nodes)

    async def close(self) -> None:
        self.closed = True


class FakeProber(NodeProber):
    """Prober answering from a url -> reachable map; unknown URLs are unreachable."""

    def __init__(
        self,
        reachable: Optional[dict[str, bool]] = None,
        *,
        delay_seconds: float = 0.0,
        raise_for: Optional[set[str]] = None,
    ) -> None:
        self.reachable = dict(reachable or {})
        self.delay_seconds = delay_seconds
        self.raise_for = set(raise_for or ())
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def is_reachable(self, url: str) -> bool:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            if url in self.raise_for:
                raise RuntimeError(f"prober blew up on {url}")
            return self.reachable.get(url, False)
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_resolver(
    fetcher: FakeFetcher,
    prober: FakeProber,
    *,
    token: str = "abc",
    clock: Optional[FakeClock] = None,
    seed: int = 0,
    **config_overrides,
) -> NodeResolver:
    """Create a resolver wired to fakes"""
    return NodeResolver(
        token,
        fetcher,
        prober,
        ResolverConfig(**config_overrides),
        rng=random.Random(seed),
        clock=clock or FakeClock(),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def two_node_fetcher() -> FakeFetcher:
    return FakeFetcher([NODE_1, NODE_2])
