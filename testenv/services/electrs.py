"""
electrs service wrapper: Electrum RPC, optional Esplora HTTP API and sync triggering.
"""

import signal
from typing import TypedDict

from testenv.electrum import ElectrumClient
from testenv.esplora import EsploraClient
from testenv.services.base import RpcService


class ElectrsProps(TypedDict):
    """Properties for electrs service."""

    electrum_host: str
    electrum_port: int
    http_port: int | None
    http_url: str | None
    monitoring_port: int | None
    service_dir: str
    db_dir: str
    daemon_rpc_addr: str


class ElectrsService(RpcService):
    """
    RpcService for electrs with health check via `server.ping`.

    The Electrum client is created once and kept: header subscriptions and their
    queued notifications live in that connection.
    """

    props: ElectrsProps

    def __init__(
        self,
        props: ElectrsProps,
        cmd: list[str],
        stdout: str | None = None,
        name: str | None = None,
    ):
        super().__init__(dict(props), cmd, stdout, name)
        self._client: ElectrumClient | None = None

    def _rpc_health_check(self, rpc):
        """Check electrs health by calling server.ping."""
        try:
            rpc.ping()
        finally:
            rpc.close()

    def create_rpc(self) -> ElectrumClient:
        if not self.check_status():
            raise RuntimeError(f"process '{self._name}' is not running")

        rpc = ElectrumClient(self.props["electrum_host"], self.props["electrum_port"], name=self._name)
        rpc.set_pre_call_hook(self._status_check_hook)
        return rpc

    @property
    def client(self) -> ElectrumClient:
        if self._client is None:
            self._client = self.create_rpc()
        return self._client

    def esplora_client(self) -> EsploraClient:
        http_url = self.props.get("http_url")
        if http_url is None:
            raise RuntimeError(f"service '{self._name}' runs without the HTTP interface")
        return EsploraClient(http_url)

    def trigger(self) -> None:
        """Ask electrs to look for new blocks right away instead of at its next poll."""
        if not self.check_status():
            raise RuntimeError(f"process '{self._name}' is not running")
        self.proc.send_signal(signal.SIGUSR1)

    def stop(self):
        if self._client is not None:
            self._client.close()
            self._client = None
        super().stop()
