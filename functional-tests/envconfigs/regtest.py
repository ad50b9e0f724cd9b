"""
Regtest environment: a bitcoind node with an electrs indexer on top.
"""

from typing import cast

import flexitest

from testenv.config import Config, ServiceType
from testenv.env import TestEnv, prepare_bitcoind
from testenv.factories import BitcoinFactory, ElectrsFactory
from testenv.mining import generate_blocks


class RegtestEnvConfig(flexitest.EnvConfig):
    """
    Starts bitcoind, creates its wallet, optionally mines some blocks and then
    attaches electrs once the node is ready.

    Parameters:
        pre_generate_blocks: Blocks to mine before electrs starts (default 0)
        config: Node and indexer options (default `Config()`)
    """

    def __init__(self, pre_generate_blocks: int = 0, config: Config | None = None):
        self.pre_generate_blocks = pre_generate_blocks
        self.config = config or Config()

    def init(self, ectx: flexitest.EnvContext) -> flexitest.LiveEnv:
        btc_factory = cast(BitcoinFactory, ectx.get_factory(ServiceType.Bitcoin))
        electrs_factory = cast(ElectrsFactory, ectx.get_factory(ServiceType.Electrs))

        bitcoind = btc_factory.create_regtest(self.config.bitcoind)
        prepare_bitcoind(bitcoind, self.config.bitcoind)

        if self.pre_generate_blocks > 0:
            generate_blocks(bitcoind.create_rpc(), self.pre_generate_blocks)

        electrsd = electrs_factory.create_electrs(bitcoind, self.config.electrsd)
        electrsd.wait_for_ready(timeout=30)

        return TestEnv(bitcoind, electrsd, self.config, electrs_exe=electrs_factory.exe)
