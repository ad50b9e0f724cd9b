"""
Chain reorganizations: invalidate a run of tip blocks, then re-mine as many.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from testenv.errors import InvariantViolation
from testenv.mining import EmptyBlockMiner, generate_blocks
from testenv.rpc import BitcoindRpc

logger = logging.getLogger(__name__)

T = TypeVar("T")

GENESIS_PREV_HASH = "00" * 32


class ChainReorger:
    """
    Replaces the top of the node's active chain with freshly mined blocks.

    Every reorg is height-neutral: as many blocks are re-mined as were invalidated.

    Usage:
        reorger = ChainReorger(rpc, EmptyBlockMiner(rpc))
        new_hashes = reorger.reorg(6)
    """

    def __init__(self, rpc: BitcoindRpc, miner: EmptyBlockMiner):
        self.rpc = rpc
        self.miner = miner

    def invalidate(self, count: int) -> None:
        """
        Invalidate the `count` topmost blocks of the active chain.

        Asking for more blocks than the chain has is not guarded against; the node's
        error for the missing block is propagated.

        Raises:
            NodeRpcError: If a lookup or invalidation fails
        """
        block_hash = self.rpc.getbestblockhash()
        for _ in range(count):
            # genesis has no previous hash; the next lookup then fails on the node
            prev_hash = self.rpc.getblock(block_hash).get("previousblockhash", GENESIS_PREV_HASH)
            self.rpc.invalidateblock(block_hash)
            logger.debug(f"invalidated {block_hash}")
            block_hash = prev_hash

    def reorg(self, count: int, address: str | None = None) -> list[str]:
        """
        Reorg `count` blocks, re-mining with the node's generator to `address`.

        Returns:
            Hashes of the replacement blocks
        """
        return self._invalidate_then_remine(count, lambda: generate_blocks(self.rpc, count, address))

    def reorg_empty(self, count: int) -> list[tuple[int, str]]:
        """
        Reorg `count` blocks, re-mining with empty blocks.

        Returns:
            (height, hash) of every replacement block, lowest first
        """
        return self._invalidate_then_remine(count, lambda: [self.miner.mine() for _ in range(count)])

    def _invalidate_then_remine(self, count: int, remine: Callable[[], T]) -> T:
        start_height = self.rpc.getblockcount()
        self.invalidate(count)
        res = remine()

        end_height = self.rpc.getblockcount()
        if end_height != start_height:
            raise InvariantViolation(
                f"reorg should not result in height change: {start_height} -> {end_height}"
            )
        logger.info(f"reorged {count} blocks at height {start_height}")
        return res
