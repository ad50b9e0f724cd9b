"""
Base class for the processes the environment launches: bitcoind and electrs.
"""

import logging
from typing import Any

import flexitest

from testenv.wait import wait_until


class RpcService(flexitest.service.ProcService):
    """
    A launched process plus the client used to talk to it.

    Subclasses say how to build that client (`create_rpc`) and which cheap call
    proves the process is serving (`_rpc_health_check`). Clients get a pre-call hook
    that turns a call into a dead process into an immediate error instead of a
    connection timeout.

    Usage:
        bitcoind = BitcoinService(props, ["bitcoind", "-regtest", ...], stdout=logfile)
        bitcoind.start()
        bitcoind.wait_for_ready(timeout=30)
        rpc = bitcoind.create_rpc()
    """

    def __init__(
        self,
        props: dict[str, Any],
        cmd: list[str],
        stdout: str | None = None,
        name: str | None = None,
    ):
        super().__init__(props, cmd, stdout)
        self._name = str(name or cmd[0])
        self._logger = logging.getLogger(f"service.{self._name}")

    def create_rpc(self):
        raise NotImplementedError("Subclass must implement create_rpc()")

    def _rpc_health_check(self, rpc: Any) -> None:
        """Cheap call proving the service answers; raises if it does not."""
        raise NotImplementedError("Subclass must implement _rpc_health_check()")

    def _status_check_hook(self, method: str):
        if not self.check_status():
            self._logger.warning(f"service '{self._name}' crashed before call to {method}")
            raise RuntimeError(f"process '{self._name}' crashed")

    def check_health(self) -> bool:
        """Process alive and answering. Probe failures mean "not ready yet"."""
        if not self.check_status():
            return False

        try:
            self._rpc_health_check(self.create_rpc())
        except Exception as e:
            self._logger.debug(f"health check failed: {e}")
            return False
        return True

    def wait_for_ready(self, timeout: int = 30, interval: float = 0.5) -> None:
        """
        Block until the service passes its health check.

        Raises:
            TimedOut: If the service is not ready within `timeout`
        """
        wait_until(
            self.check_health,
            error_with=f"Service '{self._name}' not ready",
            timeout=timeout,
            step=interval,
        )
        self._logger.info(f"service '{self._name}' ready")
