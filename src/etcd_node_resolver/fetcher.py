"""
etcd discovery store fetcher.
"""
import logging
from typing import Any, Optional

import httpx

from .errors import DiscoveryRequestError
from .request import request
from .types import DiscoveryFetcher

logger = logging.getLogger("etcd_node_resolver.fetcher")

DEFAULT_DISCOVERY_URL = "https://discovery.etcd.io"


def parse_discovery_nodes(document: Any) -> list[str]:
    """
    Extract member URLs from an etcd discovery document.

    The document looks like:
        {"action": "get", "node": {"key": "/_etcd/registry/<token>",
         "dir": true, "nodes": [{"key": ".../<id>", "value": "http://10.0.0.1:2380"}]}}

    A missing "nodes" list means the cluster has no registered members yet.
    """
    if not isinstance(document, dict):
        raise ValueError(f"Unexpected discovery response: {document!r}")
    node = document.get("node")
    if not isinstance(node, dict):
        raise ValueError(f"Discovery response has no 'node' entry: {document!r}")
    return [n["value"] for n in node.get("nodes") or [] if n.get("value")]


class EtcdDiscoveryFetcher(DiscoveryFetcher):
    """
    Lists cluster members registered under an etcd discovery token.

    Example:
        fetcher = EtcdDiscoveryFetcher()
        urls = await fetcher.list_nodes("6a28e078895c5ec737174db2419bb2f3")
        await fetcher.close()
    """

    def __init__(
        self,
        discovery_url: str = DEFAULT_DISCOVERY_URL,
        *,
        httpx_client: Optional[httpx.AsyncClient] = None,
        proxy: Optional[str] = None,
        timeout_seconds: float = 10.0,
        diagnostic_url: Optional[str] = None,
    ) -> None:
        self._discovery_url = discovery_url.rstrip("/")
        self._diagnostic_url = diagnostic_url
        self._owns_client = httpx_client is None
        self._client = httpx_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            proxy=proxy,
        )

    @property
    def discovery_url(self) -> str:
        return self._discovery_url

    def token_url(self, token: str) -> str:
        return f"{self._discovery_url}/{token.strip()}"

    async def list_nodes(self, token: str) -> list[str]:
        """List member URLs for the token"""
        url = self.token_url(token)
        logger.debug(f"Refreshing nodes for etcd token: {token}")

        try:
            document = await request(
                self._client,
                "GET",
                url,
                headers={"Accept": "application/json"},
            )
        except (DiscoveryRequestError, httpx.HTTPError) as e:
            logger.error(f"An error occurred refreshing the list of etcd nodes: {e!r}")
            raise
        except Exception as e:
            logger.error(f"An exception was raised during the request to etcd: {e!r}")
            await self.check_connectivity()
            raise

        return parse_discovery_nodes(document)

    async def check_connectivity(self) -> Optional[bool]:
        """
        Issue a request to the diagnostic URL to tell apart a broken
        discovery store from a broken local HTTP stack.

        Returns:
            None if no diagnostic URL is configured, else whether it answered
        """
        if not self._diagnostic_url:
            return None

        logger.debug(f"Issuing a request to {self._diagnostic_url} to check connectivity...")
        try:
            await request(
                self._client,
                "GET",
                self._diagnostic_url,
                expected_status=range(200, 400),
            )
        except (DiscoveryRequestError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"{self._diagnostic_url} request failed: {e!r}")
            return False

        logger.debug(f"{self._diagnostic_url} request succeeded")
        return True

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
