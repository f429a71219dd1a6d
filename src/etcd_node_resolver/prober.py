"""
HTTP node prober.
"""
import logging
from typing import Callable, Optional

import httpx

from .types import NodeProber

logger = logging.getLogger("etcd_node_resolver.prober")

DEFAULT_PROBE_PATH = "/fleet/v1/discovery"


class HttpNodeProber(NodeProber):
    """
    Considers a node reachable when its Fleet discovery document answers 2xx.

    Example:
        prober = HttpNodeProber(url_transform=lambda url: fix_node_url(url, 49153))
        await prober.is_reachable("http://10.0.0.1:4001")
    """

    def __init__(
        self,
        probe_path: str = DEFAULT_PROBE_PATH,
        *,
        httpx_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 5.0,
        proxy: Optional[str] = None,
        url_transform: Optional[Callable[[str], str]] = None,
    ) -> None:
        self._probe_path = "/" + probe_path.lstrip("/") if probe_path else ""
        self._url_transform = url_transform
        self._owns_client = httpx_client is None
        self._client = httpx_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            proxy=proxy,
        )

    def probe_url(self, url: str) -> str:
        if self._url_transform is not None:
            url = self._url_transform(url)
        return url.rstrip("/") + self._probe_path

    async def is_reachable(self, url: str) -> bool:
        target = self.probe_url(url)
        try:
            response = await self._client.get(target, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.debug(f"Probe of {target} failed: {e!r}")
            return False

        reachable = 200 <= response.status_code < 300
        logger.debug(f"Probe of {target} returned {response.status_code}")
        return reachable

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
