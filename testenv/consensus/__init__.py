"""
Just enough Bitcoin consensus encoding to hand-build a block.
"""

from testenv.consensus.block import (
    DEFAULT_BLOCK_VERSION,
    MAX_NONCE,
    Block,
    BlockHeader,
    compact_to_target,
    merkle_root,
)
from testenv.consensus.encode import hash_from_hex, hash_to_hex, p2sh_script, push_int, script_num
from testenv.consensus.transaction import OutPoint, Transaction, TxIn, TxOut

__all__ = [
    "Block",
    "BlockHeader",
    "DEFAULT_BLOCK_VERSION",
    "MAX_NONCE",
    "compact_to_target",
    "merkle_root",
    "OutPoint",
    "Transaction",
    "TxIn",
    "TxOut",
    "hash_from_hex",
    "hash_to_hex",
    "p2sh_script",
    "push_int",
    "script_num",
]
