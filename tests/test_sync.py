"""
Tests for waiting on the indexer, with scripted stand-ins for electrs.
"""

import contextlib
from collections import deque

import pytest

from testenv.errors import IndexerRpcError, TimedOut
from testenv.sync import (
    wait_until_electrum_sees_block,
    wait_until_electrum_sees_txid,
    wait_until_esplora_sees_height,
)


class ScriptedElectrum:
    """Delivers a header notification after a number of pings."""

    def __init__(self, header_after_pings: int | None):
        self.header_after_pings = header_after_pings
        self.pings = 0
        self.subscriptions = 0
        self.headers: deque[dict] = deque()
        self.known_txids: set[str] = set()
        self.tx_error: IndexerRpcError | None = None
        self.missing_polls = 0
        self.read_timeouts: list[float] = []

    @contextlib.contextmanager
    def read_timeout(self, timeout):
        self.read_timeouts.append(timeout)
        yield self

    def block_headers_subscribe(self):
        self.subscriptions += 1
        return {"height": 0, "hex": "00" * 80}

    def ping(self):
        self.pings += 1
        if self.pings == self.header_after_pings:
            self.headers.append({"height": 1, "hex": "00" * 80})

    def block_headers_pop(self):
        return self.headers.popleft() if self.headers else None

    def transaction_get(self, txid):
        if self.tx_error is not None:
            raise self.tx_error
        if self.missing_polls > 0:
            self.missing_polls -= 1
            raise IndexerRpcError("blockchain.transaction.get", "missing transaction")
        if txid not in self.known_txids:
            raise IndexerRpcError("blockchain.transaction.get", "missing transaction")
        return b"\x01"


def test_electrum_sees_block():
    client = ScriptedElectrum(header_after_pings=3)
    triggers = []

    wait_until_electrum_sees_block(client, lambda: triggers.append(None), timeout=5, step=0.01)

    assert client.subscriptions == 1
    assert client.pings == 3
    assert len(triggers) == 3


def test_electrum_sees_block_times_out():
    client = ScriptedElectrum(header_after_pings=None)
    with pytest.raises(TimedOut, match="Timed out waiting for Electrsd to get block header"):
        wait_until_electrum_sees_block(client, lambda: None, timeout=0.1, step=0.01)


def test_electrum_sees_txid():
    client = ScriptedElectrum(header_after_pings=None)
    client.known_txids.add("ab" * 32)
    wait_until_electrum_sees_txid(client, "ab" * 32, timeout=1, step=0.01)


def test_electrum_sees_txid_after_missing_polls():
    client = ScriptedElectrum(header_after_pings=None)
    client.known_txids.add("ab" * 32)
    client.missing_polls = 2

    wait_until_electrum_sees_txid(client, "ab" * 32, timeout=1, step=0.01)
    assert client.missing_polls == 0
    assert len(client.read_timeouts) == 3
    assert all(0 < t <= 1 for t in client.read_timeouts)


def test_electrum_sees_txid_times_out_while_not_found():
    client = ScriptedElectrum(header_after_pings=None)
    with pytest.raises(TimedOut):
        wait_until_electrum_sees_txid(client, "cd" * 32, timeout=0.1, step=0.01)


def test_electrum_sees_txid_propagates_other_errors():
    client = ScriptedElectrum(header_after_pings=None)
    client.tx_error = IndexerRpcError(
        "blockchain.transaction.get", "connection closed by server", transport=True
    )

    with pytest.raises(IndexerRpcError) as e:
        wait_until_electrum_sees_txid(client, "cd" * 32, timeout=1, step=0.01)
    assert not e.value.is_not_found


class ScriptedEsplora:
    def __init__(self, heights):
        self.heights = iter(heights)

    def tip_height(self):
        return next(self.heights)


def test_esplora_sees_height():
    wait_until_esplora_sees_height(ScriptedEsplora([1, 2, 5]), 4, timeout=1, step=0.01)


def test_esplora_sees_height_times_out():
    esplora = ScriptedEsplora(iter(lambda: 1, None))
    with pytest.raises(TimedOut):
        wait_until_esplora_sees_height(esplora, 2, timeout=0.05, step=0.01)
