"""
Regtest harness for bitcoind + electrs.
Provides RPC and indexer clients, block production, reorgs and waiting utilities.

The process-managing parts (`testenv.env`, `testenv.services`, `testenv.factories`)
depend on flexitest and are imported explicitly.
"""

from .checkpoint import BlockId, CheckPoint, build_checkpoint_tip
from .config import BitcoindConf, Config, ElectrsdConf
from .electrum import ElectrumClient
from .errors import (
    BlockSubmissionRejected,
    ConsensusConstructionError,
    ConsensusDecodeError,
    EnvironmentSetupError,
    IndexerRpcError,
    InvariantViolation,
    NodeRpcError,
    RpcError,
    TimedOut,
)
from .esplora import EsploraClient
from .mining import BlockTemplate, EmptyBlockMiner, generate_blocks
from .reorg import ChainReorger
from .rpc import BitcoindRpc
from .sync import (
    wait_until_electrum_sees_block,
    wait_until_electrum_sees_txid,
    wait_until_esplora_sees_height,
)
from .wait import wait_until, wait_until_with_value

__all__ = [
    "BitcoindRpc",
    "ElectrumClient",
    "EsploraClient",
    "BlockTemplate",
    "EmptyBlockMiner",
    "generate_blocks",
    "ChainReorger",
    "CheckPoint",
    "BlockId",
    "build_checkpoint_tip",
    "wait_until",
    "wait_until_with_value",
    "wait_until_electrum_sees_block",
    "wait_until_electrum_sees_txid",
    "wait_until_esplora_sees_height",
    "Config",
    "BitcoindConf",
    "ElectrsdConf",
    "RpcError",
    "NodeRpcError",
    "IndexerRpcError",
    "ConsensusDecodeError",
    "ConsensusConstructionError",
    "BlockSubmissionRejected",
    "EnvironmentSetupError",
    "TimedOut",
    "InvariantViolation",
]
