"""
Block header, Merkle root and proof-of-work helpers.
"""

import struct
from dataclasses import dataclass, field

from testenv.consensus.encode import hash256, hash_to_hex, ser_compact_size
from testenv.consensus.transaction import Transaction

# Top version bits set, no soft-fork signalled.
DEFAULT_BLOCK_VERSION = 0x20000000
MAX_NONCE = 0xFFFFFFFF


def compact_to_target(bits: int) -> int:
    """
    Expand a compact ("nBits") difficulty encoding into the full 256-bit target.

    The sign bit is ignored, as a negative target can never be met anyway.
    """
    exponent = bits >> 24
    mantissa = bits & 0x007FFFFF
    if exponent <= 3:
        return mantissa >> (8 * (3 - exponent))
    return mantissa << (8 * (exponent - 3))


def merkle_root(leaves: list[bytes]) -> bytes:
    """
    Merkle root over txids in internal byte order, duplicating the last node of odd levels.
    """
    if not leaves:
        raise ValueError("merkle root of an empty transaction list")

    level = list(leaves)
    while len(level) > 1:
        if len(level) % 2:
            level.append(level[-1])
        level = [hash256(level[i] + level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]


@dataclass
class BlockHeader:
    prev_blockhash: bytes  # internal byte order
    merkle_root: bytes  # internal byte order
    time: int
    bits: int
    nonce: int = 0
    version: int = DEFAULT_BLOCK_VERSION

    def _prefix(self) -> bytes:
        return struct.pack("<i", self.version) + self.prev_blockhash + self.merkle_root + struct.pack(
            "<II", self.time, self.bits
        )

    def serialize(self) -> bytes:
        return self._prefix() + struct.pack("<I", self.nonce)

    def hash_bytes(self) -> bytes:
        return hash256(self.serialize())

    @property
    def block_hash(self) -> str:
        return hash_to_hex(self.hash_bytes())

    def target(self) -> int:
        return compact_to_target(self.bits)

    def meets_target(self) -> bool:
        return int.from_bytes(self.hash_bytes(), "little") <= self.target()

    def solve(self, max_nonce: int = MAX_NONCE) -> bool:
        """
        Search nonces `0..=max_nonce` for the first one whose hash meets the target.

        On success the nonce is left set and True is returned; otherwise the header is
        left untouched and False is returned.
        """
        prefix = self._prefix()
        target = self.target()
        for nonce in range(max_nonce + 1):
            digest = hash256(prefix + struct.pack("<I", nonce))
            if int.from_bytes(digest, "little") <= target:
                self.nonce = nonce
                return True
        return False


@dataclass
class Block:
    header: BlockHeader
    transactions: list[Transaction] = field(default_factory=list)

    def compute_merkle_root(self) -> bytes:
        return merkle_root([tx.txid_bytes() for tx in self.transactions])

    @property
    def block_hash(self) -> str:
        return self.header.block_hash

    def serialize(self) -> bytes:
        return b"".join(
            [
                self.header.serialize(),
                ser_compact_size(len(self.transactions)),
                *(tx.serialize() for tx in self.transactions),
            ]
        )
