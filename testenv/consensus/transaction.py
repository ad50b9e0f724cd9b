"""
Legacy (non-witness) transaction serialization.
"""

import struct
from dataclasses import dataclass, field

from testenv.consensus.encode import hash256, hash_to_hex, ser_bytes, ser_compact_size

NULL_HASH = bytes(32)
NULL_INDEX = 0xFFFFFFFF
SEQUENCE_FINAL = 0xFFFFFFFF


@dataclass(frozen=True)
class OutPoint:
    txid: bytes = NULL_HASH  # internal byte order
    vout: int = NULL_INDEX

    def is_null(self) -> bool:
        return self.txid == NULL_HASH and self.vout == NULL_INDEX

    def serialize(self) -> bytes:
        return self.txid + struct.pack("<I", self.vout)


@dataclass
class TxIn:
    previous_output: OutPoint = field(default_factory=OutPoint)
    script_sig: bytes = b""
    sequence: int = SEQUENCE_FINAL

    def serialize(self) -> bytes:
        return self.previous_output.serialize() + ser_bytes(self.script_sig) + struct.pack("<I", self.sequence)


@dataclass
class TxOut:
    value: int  # satoshis
    script_pubkey: bytes

    def serialize(self) -> bytes:
        return struct.pack("<q", self.value) + ser_bytes(self.script_pubkey)


@dataclass
class Transaction:
    inputs: list[TxIn]
    outputs: list[TxOut]
    version: int = 1
    lock_time: int = 0

    def serialize(self) -> bytes:
        return b"".join(
            [
                struct.pack("<i", self.version),
                ser_compact_size(len(self.inputs)),
                *(txin.serialize() for txin in self.inputs),
                ser_compact_size(len(self.outputs)),
                *(txout.serialize() for txout in self.outputs),
                struct.pack("<I", self.lock_time),
            ]
        )

    def txid_bytes(self) -> bytes:
        return hash256(self.serialize())

    @property
    def txid(self) -> str:
        return hash_to_hex(self.txid_bytes())

    def is_coinbase(self) -> bool:
        return len(self.inputs) == 1 and self.inputs[0].previous_output.is_null()
