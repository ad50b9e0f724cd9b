"""
Regtest environment: one bitcoind with one electrs attached to it.
"""

import contextlib
import logging
import os
import shutil
import socket
import tempfile
from collections.abc import Callable

import flexitest

from testenv.checkpoint import CheckPoint, build_checkpoint_tip
from testenv.config import (
    BITCOIND_EXE_ENV,
    DEFAULT_POLL_INTERVAL,
    ELECTRS_EXE_ENV,
    BitcoindConf,
    Config,
    ServiceType,
    resolve_exe,
)
from testenv.electrum import ElectrumClient
from testenv.esplora import EsploraClient
from testenv.factories import restart_electrs, start_bitcoind, start_electrs
from testenv.mining import (
    BlockTemplate,
    EmptyBlockMiner,
    fetch_block_template,
    generate_blocks,
    random_uniqueness,
)
from testenv.reorg import ChainReorger
from testenv.rpc import BitcoindRpc
from testenv.services import BitcoinService, ElectrsService
from testenv.sync import (
    wait_until_electrum_sees_block,
    wait_until_electrum_sees_txid,
    wait_until_esplora_sees_height,
)

logger = logging.getLogger(__name__)

SATS_PER_BTC = 100_000_000


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def prepare_bitcoind(bitcoind: BitcoinService, conf: BitcoindConf, timeout: int = 30) -> None:
    """Wait for bitcoind's RPC and create the wallet used for funded operations."""
    bitcoind.wait_for_ready(timeout=timeout)
    if conf.wallet:
        bitcoind.create_rpc().createwallet(conf.wallet)


class TestEnv(flexitest.LiveEnv):
    """
    A regtest `bitcoind` with an `electrs` instance connected to it.

    Both service handles are owned by the environment. The indexer can be replaced
    with `reset_electrsd()`; the node stays for the lifetime of the environment.

    Usage:
        with TestEnv.new() as env:
            env.mine_blocks(101)
            env.wait_until_electrum_sees_block(timeout=6)
            env.reorg(6)
    """

    # not a pytest test class
    __test__ = False

    def __init__(
        self,
        bitcoind: BitcoinService,
        electrsd: ElectrsService,
        config: Config | None = None,
        electrs_exe: str | None = None,
        randint: Callable[[], int] = random_uniqueness,
    ):
        self._services = {
            ServiceType.Bitcoin: bitcoind,
            ServiceType.Electrs: electrsd,
        }
        super().__init__(self._services)
        self.config = config or Config()
        self._electrs_exe = electrs_exe
        self._randint = randint
        self._rpc: BitcoindRpc | None = None
        self._workdir: str | None = None

    @classmethod
    def new(cls, config: Config | None = None, datadir: str | None = None) -> "TestEnv":
        """
        Start a standalone environment outside of a flexitest runtime.

        Executables come from `BITCOIND_EXE` / `ELECTRS_EXE`, falling back to `PATH`.
        Without `datadir` a temporary directory is used and removed on shutdown.

        Raises:
            EnvironmentSetupError: If an executable is missing or a service fails to start
        """
        config = config or Config()
        bitcoind_exe = resolve_exe(BITCOIND_EXE_ENV, "bitcoind")
        electrs_exe = resolve_exe(ELECTRS_EXE_ENV, "electrs")

        workdir = datadir or tempfile.mkdtemp(prefix="testenv-")
        bitcoind_dir = os.path.join(workdir, ServiceType.Bitcoin)
        electrs_dir = os.path.join(workdir, ServiceType.Electrs)
        os.makedirs(bitcoind_dir, exist_ok=True)
        os.makedirs(electrs_dir, exist_ok=True)

        bitcoind = start_bitcoind(bitcoind_exe, bitcoind_dir, _free_port(), _free_port(), config.bitcoind)
        try:
            prepare_bitcoind(bitcoind, config.bitcoind)
            electrsd = start_electrs(
                electrs_exe,
                bitcoind,
                electrs_dir,
                _free_port(),
                config.electrsd,
                http_port=_free_port() if config.electrsd.http_enabled else None,
                monitoring_port=_free_port() if config.electrsd.monitoring_enabled else None,
            )
        except Exception:
            with contextlib.suppress(Exception):
                bitcoind.stop()
            raise

        env = cls(bitcoind, electrsd, config, electrs_exe)
        if datadir is None:
            env._workdir = workdir
        try:
            electrsd.wait_for_ready(timeout=30)
        except Exception:
            env.shutdown()
            raise

        with open(os.path.join(workdir, "testenv.toml"), "w") as f:
            f.write(config.as_toml_string())
        return env

    def __enter__(self) -> "TestEnv":
        return self

    def __exit__(self, *exc):
        self.shutdown()

    @property
    def bitcoind(self) -> BitcoinService:
        return self._services[ServiceType.Bitcoin]

    @property
    def electrsd(self) -> ElectrsService:
        return self._services[ServiceType.Electrs]

    def rpc_client(self) -> BitcoindRpc:
        if self._rpc is None:
            self._rpc = self.bitcoind.create_rpc()
        return self._rpc

    def electrum_client(self) -> ElectrumClient:
        return self.electrsd.client

    def esplora_client(self) -> EsploraClient:
        return self.electrsd.esplora_client()

    def reset_electrsd(self) -> "TestEnv":
        """
        Replace electrs with a freshly indexed instance so that it sees new blocks.

        The node is left untouched.
        """
        if self._electrs_exe is None:
            raise RuntimeError("environment was built without an electrs executable")
        self._services[ServiceType.Electrs] = restart_electrs(
            self._electrs_exe, self.electrsd, self.bitcoind, self.config.electrsd
        )
        self.electrsd.wait_for_ready(timeout=30)
        logger.info("electrs reset")
        return self

    def shutdown(self):
        for svc in (self._services[ServiceType.Electrs], self._services[ServiceType.Bitcoin]):
            with contextlib.suppress(Exception):
                svc.stop()
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self._workdir = None

    def miner(self) -> EmptyBlockMiner:
        return EmptyBlockMiner(self.rpc_client(), randint=self._randint)

    def reorger(self) -> ChainReorger:
        return ChainReorger(self.rpc_client(), self.miner())

    def mine_blocks(self, count: int, address: str | None = None) -> list[str]:
        """Mine `count` blocks, paying to `address` or to a fresh wallet address."""
        return generate_blocks(self.rpc_client(), count, address)

    def fetch_template(self) -> BlockTemplate:
        return fetch_block_template(self.rpc_client())

    def mine_empty_block(self) -> tuple[int, str]:
        """Mine a block that is guaranteed to be empty even with transactions in the mempool."""
        return self.miner().mine()

    def invalidate_blocks(self, count: int) -> None:
        self.reorger().invalidate(count)

    def reorg(self, count: int, address: str | None = None) -> list[str]:
        return self.reorger().reorg(count, address)

    def reorg_empty_blocks(self, count: int) -> list[tuple[int, str]]:
        return self.reorger().reorg_empty(count)

    def wait_until_electrum_sees_block(self, timeout: float, step: float = DEFAULT_POLL_INTERVAL) -> None:
        wait_until_electrum_sees_block(self.electrum_client(), self.electrsd.trigger, timeout, step)

    def wait_until_electrum_sees_txid(
        self, txid: str, timeout: float, step: float = DEFAULT_POLL_INTERVAL
    ) -> None:
        wait_until_electrum_sees_txid(self.electrum_client(), txid, timeout, step)

    def wait_until_esplora_sees_height(
        self, height: int, timeout: float, step: float = DEFAULT_POLL_INTERVAL
    ) -> None:
        wait_until_esplora_sees_height(self.esplora_client(), height, timeout, step)

    def send(self, address: str, amount_sats: int) -> str:
        """Send `amount_sats` from the node's wallet to `address`; returns the txid."""
        return self.rpc_client().sendtoaddress(address, round(amount_sats / SATS_PER_BTC, 8))

    def make_checkpoint_tip(self) -> CheckPoint:
        """Checkpoint linked list of all the blocks in the active chain."""
        return build_checkpoint_tip(self.rpc_client())

    def genesis_hash(self) -> str:
        return self.rpc_client().getblockhash(0)
