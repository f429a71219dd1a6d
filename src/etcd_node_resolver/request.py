"""
JSON request helper for discovery store calls.
"""
import json
import logging
from typing import Any, Dict, Iterable, Optional, Union

import httpx

from .errors import DiscoveryRequestError

logger = logging.getLogger("etcd_node_resolver.request")


def _decode(text: str) -> Any:
    """Decode a JSON body; empty bodies decode to None."""
    if not text:
        return None
    return json.loads(text)


async def request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    body: Union[str, bytes] = "",
    expected_status: Iterable[int] = (200,),
) -> Any:
    """
    Issue a request and decode its JSON response.

    Args:
        client: httpx client to send through
        method: HTTP method, e.g. "GET"
        url: Absolute URL
        headers: Optional request headers
        body: Optional request body
        expected_status: Statuses treated as success

    Returns:
        The decoded JSON document, or None for an empty body

    Raises:
        DiscoveryRequestError: On 4xx/5xx or an unexpected status
        httpx.HTTPError: On transport failures
    """
    expected = list(expected_status)

    logger.debug(f"request: method={method}, url={url}")

    response = await client.request(
        method=method.upper(),
        url=url,
        headers=headers or {},
        content=body or None,
    )
    status = response.status_code
    text = response.text

    if 400 <= status <= 599:
        if text:
            try:
                error_body = _decode(text)
            except ValueError:
                error_body = text
            raise DiscoveryRequestError.from_body(status, error_body)
        raise DiscoveryRequestError(
            f"HTTP {status} {response.reason_phrase or ''}".strip(),
            status=status,
        )

    if status not in expected:
        raise DiscoveryRequestError(
            f"Expected response status in {expected} but got {status}",
            status=status,
        )

    return _decode(text)
