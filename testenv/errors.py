"""
Error types raised by the test environment.
"""

from typing import Any


class EnvironmentSetupError(RuntimeError):
    """Raised when the node/indexer pair cannot be brought up or is unusable."""


class RpcError(Exception):
    """
    Raised when an RPC call fails, either at the transport or as a returned error.

    `transport` is set when the request never got an answer from the server:
    connection refused, connection dropped or read timeout.
    """

    def __init__(self, method: str, error: dict | str, transport: bool = False):
        if not isinstance(error, dict):
            error = {"message": str(error)}
        self.method = method
        self.transport = transport
        self.code = error.get("code")
        self.message = error.get("message")
        self.data = error.get("data")
        super().__init__(f"{method}: RPC Error {self.code}: {self.message}")


class NodeRpcError(RpcError):
    """Raised for failed bitcoind RPC calls."""


class IndexerRpcError(RpcError):
    """Raised for failed electrs (Electrum or Esplora) calls."""

    NOT_FOUND_MARKERS = ("not found", "no such mempool or blockchain transaction", "missing")

    @property
    def is_not_found(self) -> bool:
        """
        Whether the indexer reported that the requested item does not exist (yet).

        Servers report this with or without an error code (electrs-esplora sends a bare
        string such as "missing transaction"). Transport failures are never "not found".
        """
        if self.transport:
            return False
        message = (self.message or "").lower()
        return any(marker in message for marker in self.NOT_FOUND_MARKERS)


class ConsensusDecodeError(ValueError):
    """Raised when a node-supplied consensus field cannot be decoded."""


class ConsensusConstructionError(RuntimeError):
    """Raised when a valid block cannot be constructed, e.g. the nonce space is exhausted."""


class BlockSubmissionRejected(RuntimeError):
    """Raised when `submitblock` does not accept a hand-built block."""

    def __init__(self, block_hash: str, payload: Any):
        self.block_hash = block_hash
        self.payload = payload
        super().__init__(f"block {block_hash} rejected by node: {payload!r}")


class TimedOut(AssertionError):
    """Raised when a poll does not observe its condition before the timeout."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} (timeout {timeout}s)")


class InvariantViolation(AssertionError):
    """Raised when a chain mutation breaks one of its postconditions."""
