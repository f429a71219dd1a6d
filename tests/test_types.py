"""
Tests for etcd_node_resolver types and errors.
"""

import dataclasses

import pytest

from etcd_node_resolver.errors import (
    DiscoveryRequestError,
    NoValidNodesError,
    NodeResolverError,
    RefreshFailedError,
    ResolutionTimeoutError,
)
from etcd_node_resolver.types import NodeRecord, NodeValidity, ResolutionResult, ResolverState


class TestNodeRecord:
    """Tests for NodeRecord validity transitions."""

    def test_defaults_to_unknown(self):
        assert NodeRecord("http://10.0.0.1:4001").validity is NodeValidity.UNKNOWN

    @pytest.mark.parametrize("outcome", [NodeValidity.VALID, NodeValidity.INVALID])
    def test_unknown_transitions_once(self, outcome):
        """Should record the first probe outcome."""
        record = NodeRecord("http://10.0.0.1:4001").with_validity(outcome)
        assert record.validity is outcome

    @pytest.mark.parametrize("current", [NodeValidity.VALID, NodeValidity.INVALID])
    def test_probed_record_cannot_transition(self, current):
        """Should refuse a second transition within the epoch."""
        record = NodeRecord("http://10.0.0.1:4001", current)
        with pytest.raises(ValueError, match="already probed"):
            record.with_validity(NodeValidity.VALID)

    def test_cannot_transition_to_unknown(self):
        with pytest.raises(ValueError):
            NodeRecord("http://10.0.0.1:4001").with_validity(NodeValidity.UNKNOWN)

    def test_frozen(self):
        record = NodeRecord("http://10.0.0.1:4001")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.validity = NodeValidity.VALID


class TestResolverState:
    """Tests for ResolverState."""

    def test_copy_is_independent(self):
        state = ResolverState("abc", 1.0, [NodeRecord("a")])
        copy = state.copy()
        copy.nodes.append(NodeRecord("b"))

        assert len(state.nodes) == 1
        assert copy.cluster_token == "abc"
        assert copy.last_refreshed_at == 1.0


class TestResolutionResult:
    """Tests for ResolutionResult."""

    def test_ok(self):
        assert ResolutionResult(url="http://10.0.0.1:4001").ok is True

    def test_error_is_not_ok(self):
        result = ResolutionResult(error=NoValidNodesError(2))
        assert result.ok is False
        with pytest.raises(NoValidNodesError):
            result.unwrap()

    def test_empty_result_unwrap(self):
        with pytest.raises(RuntimeError):
            ResolutionResult().unwrap()


class TestErrors:
    """Tests for the error hierarchy."""

    def test_hierarchy(self):
        assert issubclass(RefreshFailedError, NodeResolverError)
        assert issubclass(NoValidNodesError, NodeResolverError)
        assert issubclass(ResolutionTimeoutError, NodeResolverError)
        assert not issubclass(DiscoveryRequestError, NodeResolverError)

    def test_codes(self):
        assert RefreshFailedError(OSError("x")).code == "REFRESH_FAILED"
        assert NoValidNodesError().code == "NO_VALID_NODES"
        assert ResolutionTimeoutError(1.0).code == "RESOLUTION_TIMEOUT"

    def test_refresh_failed_chains_cause(self):
        cause = ConnectionRefusedError("refused")
        error = RefreshFailedError(cause, attempts=6)

        assert error.cause is cause
        assert error.__cause__ is cause
        assert "6 attempts" in str(error)

    def test_request_error_from_etcd_body(self):
        """Should read etcd's errorCode/message/cause fields."""
        error = DiscoveryRequestError.from_body(
            404, {"errorCode": 100, "message": "Key not found", "cause": "/_etcd/registry/abc"},
        )
        assert error.status == 404
        assert error.error_code == 100
        assert error.message == "Key not found"
        assert error.cause == "/_etcd/registry/abc"

    def test_request_error_from_fleet_body(self):
        """Should read Fleet's nested error document."""
        error = DiscoveryRequestError.from_body(
            400, {"error": {"code": 400, "message": "bad request"}},
        )
        assert error.error_code == 400
        assert error.message == "bad request"

    def test_request_error_from_text_body(self):
        error = DiscoveryRequestError.from_body(502, "upstream down")
        assert error.message == "upstream down"
        assert error.status == 502
