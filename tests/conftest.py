"""
In-process stand-ins for bitcoind, so the harness can be tested without binaries.
"""

import hashlib
import itertools
from types import SimpleNamespace

import pytest
from bitcoinlib.services.authproxy import JSONRPCException

from testenv.consensus import compact_to_target
from testenv.consensus.encode import hash256, hash_to_hex
from testenv.mining import EmptyBlockMiner
from testenv.rpc import BitcoindRpc

REGTEST_GENESIS_HASH = "0f9188f13cb7b2c71f2a335e3a4fc328bf5beb436012afca590b1a11466e2206"
REGTEST_GENESIS_TIME = 1296688602
REGTEST_BITS = "207fffff"


class FakeNode:
    """
    Tiny model of a regtest bitcoind: an active chain, invalidated blocks and a mempool.

    Method names mirror the RPCs, so the node can stand in for an `AuthServiceProxy`.
    """

    def __init__(self):
        self.blocks: dict[str, dict] = {}
        self.chain: list[str] = []
        self.invalidated: set[str] = set()
        self.mempool: list[str] = []
        self.sent: list[tuple[str, float]] = []
        self.reject_next: str | None = None
        self.extra_blocks = 0
        self._counter = itertools.count()
        self._add_block(REGTEST_GENESIS_HASH, None, REGTEST_GENESIS_TIME, ["genesis-coinbase"])

    def _add_block(self, block_hash: str, prev: str | None, time: int, txs: list[str]):
        self.blocks[block_hash] = {
            "hash": block_hash,
            "height": len(self.chain),
            "previousblockhash": prev,
            "time": time,
            "tx": txs,
        }
        self.chain.append(block_hash)

    @staticmethod
    def _error(code: int, message: str):
        return JSONRPCException({"code": code, "message": message})

    def _tip_time(self) -> int:
        return self.blocks[self.chain[-1]]["time"]

    def getblockcount(self):
        return len(self.chain) - 1

    def getbestblockhash(self):
        return self.chain[-1]

    def getblockhash(self, height):
        if not 0 <= height < len(self.chain):
            raise self._error(-8, "Block height out of range")
        return self.chain[height]

    def getblock(self, block_hash):
        block = self.blocks.get(block_hash)
        if block is None:
            raise self._error(-5, "Block not found")
        res = dict(block)
        if res["previousblockhash"] is None:
            del res["previousblockhash"]
        return res

    def invalidateblock(self, block_hash):
        if block_hash not in self.blocks:
            raise self._error(-5, "Block not found")
        self.invalidated.add(block_hash)
        if block_hash in self.chain:
            height = self.chain.index(block_hash)
            for h in self.chain[height:]:
                # non-coinbase transactions of disconnected blocks return to the mempool
                self.mempool.extend(self.blocks[h]["tx"][1:])
            del self.chain[height:]

    def getnewaddress(self):
        return f"bcrt1qfake{next(self._counter)}"

    def generatetoaddress(self, count, address):
        hashes = []
        for _ in range(count + self.extra_blocks):
            block_hash = hashlib.sha256(f"{address}/{next(self._counter)}".encode()).hexdigest()
            txs = [f"coinbase-{block_hash[:16]}", *self.mempool]
            self.mempool = []
            self._add_block(block_hash, self.chain[-1], self._tip_time() + 1, txs)
            hashes.append(block_hash)
        return hashes

    def sendtoaddress(self, address, amount):
        txid = hashlib.sha256(f"tx/{address}/{next(self._counter)}".encode()).hexdigest()
        self.sent.append((address, amount))
        self.mempool.append(txid)
        return txid

    def getrawmempool(self):
        return list(self.mempool)

    def getblocktemplate(self, request):
        assert request["mode"] == "template"
        assert "segwit" in request["rules"]
        return {
            "bits": REGTEST_BITS,
            "previousblockhash": self.chain[-1],
            "height": len(self.chain),
            "mintime": self._tip_time() + 1,
            "transactions": [{"txid": txid} for txid in self.mempool],
        }

    def submitblock(self, block_hex):
        if self.reject_next is not None:
            reason, self.reject_next = self.reject_next, None
            return reason

        raw = bytes.fromhex(block_hex)
        header = raw[:80]
        block_hash = hash_to_hex(hash256(header))
        prev = hash_to_hex(header[4:36])
        time = int.from_bytes(header[68:72], "little")
        bits = int.from_bytes(header[72:76], "little")

        if int.from_bytes(hash256(header), "little") > compact_to_target(bits):
            return "high-hash"
        if block_hash in self.blocks:
            return "duplicate"
        if prev != self.chain[-1]:
            return "bad-prevblk"

        tx_count = raw[80]
        self._add_block(block_hash, prev, time, [f"coinbase-{block_hash[:16]}"] * tx_count)
        return None


def make_rpc(node) -> BitcoindRpc:
    return BitcoindRpc(SimpleNamespace(proxy=node), name="fake-bitcoind")


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def rpc(node) -> BitcoindRpc:
    return make_rpc(node)


@pytest.fixture
def miner(rpc) -> EmptyBlockMiner:
    """Miner with a deterministic uniqueness sequence and a clock fixed at genesis time."""
    counter = itertools.count(1)
    return EmptyBlockMiner(rpc, randint=lambda: next(counter), now=lambda: REGTEST_GENESIS_TIME)
