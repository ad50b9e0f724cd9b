"""
Block production: bulk generation through the node and hand-built empty blocks.
"""

import logging
import secrets
import string
import time
from collections.abc import Callable
from dataclasses import dataclass

from testenv.consensus import (
    Block,
    BlockHeader,
    Transaction,
    TxIn,
    TxOut,
    hash_from_hex,
    p2sh_script,
    push_int,
)
from testenv.errors import (
    BlockSubmissionRejected,
    ConsensusConstructionError,
    ConsensusDecodeError,
    NodeRpcError,
)
from testenv.rpc import BitcoindRpc

logger = logging.getLogger(__name__)

TEMPLATE_REQUEST = {"mode": "template", "rules": ["segwit"], "capabilities": []}

# Valid but unspendable: P2SH of the all-zero script hash.
PLACEHOLDER_SCRIPT_PUBKEY = p2sh_script(bytes(20))


@dataclass(frozen=True)
class BlockTemplate:
    """The subset of `getblocktemplate` needed to mine on top of the current tip."""

    bits: int
    previous_block_hash: str
    height: int
    min_time: int

    @classmethod
    def from_rpc(cls, res: dict) -> "BlockTemplate":
        if not isinstance(res, dict):
            raise NodeRpcError("getblocktemplate", f"malformed template: {res!r}")
        try:
            bits_hex = res["bits"]
            prev_hash = res["previousblockhash"]
            height = int(res["height"])
            min_time = int(res["mintime"])
        except (KeyError, TypeError, ValueError) as e:
            raise NodeRpcError("getblocktemplate", f"malformed template: {e!r}") from e

        return cls(
            bits=decode_bits(bits_hex),
            previous_block_hash=_check_hash(prev_hash),
            height=height,
            min_time=min_time,
        )


def _is_hex(s: object, nchars: int) -> bool:
    return isinstance(s, str) and len(s) == nchars and all(c in string.hexdigits for c in s)


def decode_bits(bits_hex: str) -> int:
    """Decode the template's `bits`: 4 bytes, hex encoded, big-endian."""
    if not _is_hex(bits_hex, 8):
        raise ConsensusDecodeError(f"invalid bits {bits_hex!r}: expected 8 hex digits")
    return int.from_bytes(bytes.fromhex(bits_hex), "big")


def _check_hash(h: str) -> str:
    if not _is_hex(h, 64):
        raise ConsensusDecodeError(f"invalid block hash {h!r}: expected 64 hex digits")
    return h


def fetch_block_template(rpc: BitcoindRpc) -> BlockTemplate:
    return BlockTemplate.from_rpc(rpc.getblocktemplate(TEMPLATE_REQUEST))


def random_uniqueness() -> int:
    return secrets.randbits(63)


def coinbase_transaction(height: int, uniqueness: int) -> Transaction:
    """
    Coinbase paying nothing to a placeholder script.

    `uniqueness` ends up in the script-sig, so two otherwise identical coinbases at
    the same height (and thus two blocks mined on the same parent) differ.
    """
    script_sig = push_int(height) + push_int(uniqueness)
    return Transaction(
        inputs=[TxIn(script_sig=script_sig)],
        outputs=[TxOut(value=0, script_pubkey=PLACEHOLDER_SCRIPT_PUBKEY)],
    )


def build_empty_block(template: BlockTemplate, uniqueness: int, now: float) -> Block:
    """Unsolved block on top of `template` carrying only a coinbase."""
    block = Block(
        header=BlockHeader(
            prev_blockhash=hash_from_hex(template.previous_block_hash),
            merkle_root=bytes(32),
            time=max(template.min_time, int(now)) & 0xFFFFFFFF,
            bits=template.bits,
        ),
        transactions=[coinbase_transaction(template.height, uniqueness)],
    )
    block.header.merkle_root = block.compute_merkle_root()
    return block


class EmptyBlockMiner:
    """
    Mines blocks that never include mempool transactions.

    `bitcoind`'s own generation always fills blocks from the mempool, so the block is
    assembled, solved and submitted here instead.

    Usage:
        miner = EmptyBlockMiner(rpc)
        height, block_hash = miner.mine()
    """

    def __init__(
        self,
        rpc: BitcoindRpc,
        randint: Callable[[], int] = random_uniqueness,
        now: Callable[[], float] = time.time,
    ):
        self.rpc = rpc
        self.randint = randint
        self.now = now

    def mine(self) -> tuple[int, str]:
        """
        Mine and submit one empty block on top of the current tip.

        Returns:
            The height and hash of the new block

        Raises:
            NodeRpcError: If the template cannot be fetched
            ConsensusDecodeError: If the template is malformed
            ConsensusConstructionError: If no nonce satisfies the target
            BlockSubmissionRejected: If the node does not accept the block
        """
        template = fetch_block_template(self.rpc)
        block = build_empty_block(template, self.randint(), self.now())

        if not block.header.solve():
            raise ConsensusConstructionError(
                f"nonce space exhausted at height {template.height} (bits {template.bits:08x})"
            )

        block_hash = block.block_hash
        try:
            res = self.rpc.submitblock(block.serialize().hex())
        except NodeRpcError as e:
            raise BlockSubmissionRejected(block_hash, e.message) from e
        if res is not None:
            raise BlockSubmissionRejected(block_hash, res)

        logger.info(f"mined empty block {block_hash} at height {template.height}")
        return template.height, block_hash


def generate_blocks(rpc: BitcoindRpc, count: int, address: str | None = None) -> list[str]:
    """
    Mine `count` blocks with the node's own generator, paying to `address`.

    A fresh wallet address is used if none is given.
    """
    if address is None:
        address = rpc.getnewaddress()
    hashes = rpc.generatetoaddress(count, address)
    logger.info(f"generated {count} blocks to {address}")
    return hashes
