"""
Minimal Electrum protocol client.

Electrum servers speak JSON-RPC 2.0 over a plain TCP stream, one JSON document per
line. Besides responses, the server pushes notifications for subscriptions; header
notifications are queued and handed out by `block_headers_pop()`.
"""

import contextlib
import json
import logging
import socket
from collections import deque
from collections.abc import Callable
from typing import Any

from testenv.errors import IndexerRpcError

HEADERS_SUBSCRIBE = "blockchain.headers.subscribe"


class ElectrumClient:
    """
    Electrum JSON-RPC client.

    Usage:
        client = ElectrumClient("127.0.0.1", 60401)
        tip = client.block_headers_subscribe()
        client.ping()
        header = client.block_headers_pop()
    """

    def __init__(self, host: str, port: int, name: str | None = None, timeout: float = 30):
        self.host = host
        self.port = port
        self.name = name or f"{host}:{port}"
        self.timeout = timeout
        self.id_counter = 0
        self.logger = logging.getLogger(f"rpc.{self.name}")
        self.pre_call_hook: Callable[[str], None] = lambda _: None
        self._sock: socket.socket | None = None
        self._reader = None
        self._headers: deque[dict] = deque()

    def set_pre_call_hook(self, hook: Callable[[str], None]):
        self.pre_call_hook = hook

    def _connect(self):
        if self._sock is not None:
            return
        try:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            self.logger.warning(f"connect failed: {e}")
            raise IndexerRpcError("connect", str(e), transport=True) from e
        self._reader = self._sock.makefile("rb")

    @contextlib.contextmanager
    def read_timeout(self, timeout: float):
        """Bound how long each call may block inside the `with` block."""
        saved = self.timeout
        self.timeout = min(saved, timeout)
        if self._sock is not None:
            self._sock.settimeout(self.timeout)
        try:
            yield self
        finally:
            self.timeout = saved
            if self._sock is not None:
                self._sock.settimeout(saved)

    def close(self):
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def _call(self, method: str, params: tuple) -> Any:
        """
        Make an Electrum call and wait for its response.

        Notifications that arrive before the response are dispatched on the way.

        Raises:
            IndexerRpcError: If the server is unreachable, hangs up, answers garbage
                or returns an error
        """
        self.pre_call_hook(method)
        self._connect()
        self.id_counter += 1
        req_id = self.id_counter

        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(params),
            "id": req_id,
        }

        self.logger.debug(f"RPC call: {method}({params})")

        try:
            self._sock.sendall(json.dumps(payload).encode() + b"\n")
            while True:
                line = self._reader.readline()
                if not line:
                    self.close()
                    raise IndexerRpcError(method, "connection closed by server", transport=True)

                try:
                    msg = json.loads(line)
                except json.JSONDecodeError as e:
                    self.logger.warning(f"Invalid JSON response: {line!r}")
                    raise IndexerRpcError(method, {"code": -1, "message": f"Invalid JSON: {e}"}) from e

                if msg.get("id") is None and "method" in msg:
                    self._on_notification(msg)
                    continue
                if msg.get("id") != req_id:
                    self.logger.debug(f"dropping stray response: {msg}")
                    continue
                break
        except OSError as e:
            self.logger.warning(f"RPC request failed: {e}")
            self.close()
            raise IndexerRpcError(method, str(e), transport=True) from e

        error = msg.get("error")
        if error:
            self.logger.warning(f"RPC error: {error}")
            raise IndexerRpcError(method, error)

        return msg.get("result")

    def call(self, method: str, *params) -> Any:
        return self._call(method, params)

    def _on_notification(self, msg: dict):
        if msg["method"] == HEADERS_SUBSCRIBE:
            self._headers.extend(msg.get("params") or [])
        else:
            self.logger.debug(f"ignoring notification {msg['method']}")

    def block_headers_subscribe(self) -> dict:
        """Subscribe to new tips; returns the current tip header (`height`, `hex`)."""
        return self.call(HEADERS_SUBSCRIBE)

    def block_headers_pop(self) -> dict | None:
        """Pop the oldest queued header notification, if any. Does no I/O."""
        if not self._headers:
            return None
        return self._headers.popleft()

    def ping(self) -> None:
        self.call("server.ping")

    def server_version(self, client_name: str = "testenv", protocol: str = "1.4") -> list:
        return self.call("server.version", client_name, protocol)

    def transaction_get(self, txid: str) -> bytes:
        """Fetch a raw transaction by id."""
        method = "blockchain.transaction.get"
        result = self.call(method, txid)
        try:
            return bytes.fromhex(result)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Invalid transaction hex: {result!r}")
            raise IndexerRpcError(method, {"code": -1, "message": f"Invalid transaction hex: {e}"}) from e
