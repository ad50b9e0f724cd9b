"""
Checkpoints: an immutable, back-linked list of (height, hash) pairs.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import NamedTuple

from testenv.config import RPC_INVALID_PARAMETER
from testenv.errors import EnvironmentSetupError, NodeRpcError
from testenv.rpc import BitcoindRpc


class BlockId(NamedTuple):
    height: int
    hash: str


@dataclass(frozen=True)
class CheckPoint:
    """
    A block id linked to the checkpoint below it.

    Heights strictly decrease along `prev`. A checkpoint is never modified; extending
    a chain returns a new tip sharing the old nodes.
    """

    height: int
    hash: str
    prev: "CheckPoint | None" = field(default=None, repr=False, compare=False)

    @classmethod
    def from_block_ids(cls, block_ids: Iterable[BlockId]) -> "CheckPoint":
        """
        Build a chain from ascending block ids; returns the tip.

        Raises:
            ValueError: If `block_ids` is empty or not strictly ascending
        """
        it = iter(block_ids)
        first = next(it, None)
        if first is None:
            raise ValueError("cannot build a checkpoint from no block ids")

        tip = cls(first.height, first.hash)
        for block_id in it:
            tip = tip.push(block_id)
        return tip

    def push(self, block_id: BlockId) -> "CheckPoint":
        if block_id.height <= self.height:
            raise ValueError(
                f"checkpoint heights must ascend: {block_id.height} after {self.height}"
            )
        return CheckPoint(block_id.height, block_id.hash, self)

    def block_id(self) -> BlockId:
        return BlockId(self.height, self.hash)

    def __iter__(self) -> Iterator["CheckPoint"]:
        """Iterate from this checkpoint down to the bottom one."""
        cp: CheckPoint | None = self
        while cp is not None:
            yield cp
            cp = cp.prev

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def get(self, height: int) -> "CheckPoint | None":
        for cp in self:
            if cp.height == height:
                return cp
            if cp.height < height:
                break
        return None


def iter_block_ids(rpc: BitcoindRpc) -> Iterator[BlockId]:
    """
    Lazily walk the active chain from genesis upwards.

    Ends at the first height the node has no block for; any other error propagates.
    """
    height = 0
    while True:
        try:
            block_hash = rpc.getblockhash(height)
        except NodeRpcError as e:
            if e.code == RPC_INVALID_PARAMETER:
                return
            raise
        yield BlockId(height, block_hash)
        height += 1


def build_checkpoint_tip(rpc: BitcoindRpc) -> CheckPoint:
    """
    Checkpoint chain covering every block of the active chain, returned by its tip.

    Raises:
        EnvironmentSetupError: If the node does not even know a genesis block
    """
    try:
        return CheckPoint.from_block_ids(iter_block_ids(rpc))
    except ValueError as e:
        raise EnvironmentSetupError(f"must craft tip: {e}") from e
