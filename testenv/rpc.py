"""
bitcoind RPC client.
"""

import logging
from collections.abc import Callable
from http.client import HTTPException
from typing import Any

from bitcoinlib.services.authproxy import JSONRPCException
from bitcoinlib.services.bitcoind import BitcoindClient

from testenv.errors import NodeRpcError


class BitcoindRpc:
    """
    bitcoind JSON-RPC client on top of bitcoinlib's `BitcoindClient`.

    Supports attribute-style method calls, like the underlying proxy:
        rpc.getblockcount()
        rpc.getblockhash(0)

    Unlike the bare proxy, every failure (transport, HTTP, node-reported error) is
    raised as `NodeRpcError` carrying the method name.

    Usage:
        rpc = BitcoindRpc(BitcoindClient(base_url=url, network="regtest"))
        height = rpc.getblockcount()
    """

    def __init__(self, client: BitcoindClient, name: str = "bitcoind"):
        self.client = client
        self.proxy = client.proxy
        self.name = name
        self.logger = logging.getLogger(f"rpc.{self.name}")
        self.pre_call_hook: Callable[[str], None] = lambda _: None

    def set_pre_call_hook(self, hook: Callable[[str], None]):
        self.pre_call_hook = hook

    def __getattr__(self, method: str):
        """
        Allow method calls as attributes.
        rpc.getbestblockhash() -> calls "getbestblockhash" method
        """
        if method.startswith("_"):
            raise AttributeError(method)

        def rpc_call(*params):
            return self._call(method, params)

        return rpc_call

    def _call(self, method: str, params: tuple) -> Any:
        """
        Make a bitcoind RPC call.

        Raises:
            NodeRpcError: If the node is unreachable, answers garbage or returns an error
        """
        self.pre_call_hook(method)
        self.logger.debug(f"RPC call: {method}({params})")

        try:
            return getattr(self.proxy, method)(*params)
        except JSONRPCException as e:
            self.logger.warning(f"RPC error: {e.error}")
            raise NodeRpcError(method, e.error) from e
        except (OSError, HTTPException, ValueError) as e:
            self.logger.warning(f"RPC request failed: {e}")
            raise NodeRpcError(method, {"code": -1, "message": str(e)}) from e

    def call(self, method: str, *params) -> Any:
        """
        Explicit call method (alternative to attribute style).

        Usage:
            rpc.call("getblocktemplate", {"rules": ["segwit"]})
        """
        return self._call(method, params)
