"""
Error types for etcd_node_resolver
"""
from typing import Any, Optional


class NodeResolverError(Exception):
    """Base error for failed node resolution."""

    code = "NODE_RESOLVER_ERROR"


class RefreshFailedError(NodeResolverError):
    """The discovery store could not be read after exhausting every attempt."""

    code = "REFRESH_FAILED"

    def __init__(self, cause: BaseException, attempts: int = 0) -> None:
        super().__init__(
            f"Couldn't refresh the list of etcd nodes after {attempts} attempts: {cause!r}"
        )
        self.cause = cause
        self.attempts = attempts
        self.__cause__ = cause


class NoValidNodesError(NodeResolverError):
    """Every cached node failed probing in the current epoch."""

    code = "NO_VALID_NODES"

    def __init__(self, node_count: int = 0) -> None:
        super().__init__(f"Node list contained no valid nodes ({node_count} checked)")
        self.node_count = node_count


class ResolutionTimeoutError(NodeResolverError):
    """get_node_url did not finish within its timeout."""

    code = "RESOLUTION_TIMEOUT"

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Node resolution timed out after {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds


class DiscoveryRequestError(Exception):
    """An HTTP request to the discovery store returned an error response."""

    code = "DISCOVERY_REQUEST_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        error_code: Optional[Any] = None,
        cause: Optional[str] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.error_code = error_code
        self.cause = cause
        self.body = body

    @classmethod
    def from_body(cls, status: int, body: Any) -> "DiscoveryRequestError":
        """Build from a decoded error document ({"errorCode", "message", "cause"})"""
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                # Fleet wraps errors as {"error": {"code": ..., "message": ...}}
                return cls(
                    error.get("message") or f"HTTP {status}",
                    status=status,
                    error_code=error.get("code", status),
                    body=body,
                )
            return cls(
                body.get("message") or f"HTTP {status}",
                status=status,
                error_code=body.get("errorCode"),
                cause=body.get("cause"),
                body=body,
            )
        return cls(str(body) if body else f"HTTP {status}", status=status, body=body)

    def __repr__(self) -> str:
        return (
            f"DiscoveryRequestError(status={self.status!r}, "
            f"error_code={self.error_code!r}, message={self.message!r})"
        )
