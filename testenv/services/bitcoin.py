"""
bitcoind process handle.
"""

from typing import TypedDict

from bitcoinlib.services.bitcoind import BitcoindClient

from testenv.rpc import BitcoindRpc
from testenv.services.base import RpcService


class BitcoinProps(TypedDict):
    p2p_port: int
    rpc_port: int
    rpc_user: str
    rpc_password: str
    # credentials embedded, as bitcoinlib expects
    rpc_url: str
    datadir: str
    walletname: str | None


class BitcoinService(RpcService):
    """
    Regtest bitcoind. Ready once `getblockchaininfo` answers.
    """

    props: BitcoinProps

    def _rpc_health_check(self, rpc: BitcoindRpc):
        rpc.getblockchaininfo()

    def create_rpc(self) -> BitcoindRpc:
        if not self.check_status():
            raise RuntimeError(f"process '{self._name}' is not running")

        client = BitcoindClient(base_url=self.props["rpc_url"], network="regtest")
        rpc = BitcoindRpc(client, name=self._name)
        rpc.set_pre_call_hook(self._status_check_hook)
        return rpc
