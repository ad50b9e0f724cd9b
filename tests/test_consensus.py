"""
Tests for the block-building encoding helpers.
"""

import pytest

from testenv.consensus import (
    Block,
    BlockHeader,
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
    compact_to_target,
    hash_from_hex,
    merkle_root,
    p2sh_script,
    push_int,
    script_num,
)
from testenv.consensus.encode import hash256, ser_compact_size

GENESIS_MERKLE_ROOT = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"


def test_mainnet_genesis_header_hash():
    header = BlockHeader(
        prev_blockhash=bytes(32),
        merkle_root=hash_from_hex(GENESIS_MERKLE_ROOT),
        time=1231006505,
        bits=0x1D00FFFF,
        nonce=2083236893,
        version=1,
    )
    assert len(header.serialize()) == 80
    assert header.block_hash == "000000000019d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f"
    assert header.meets_target()


def test_regtest_genesis_header_hash():
    header = BlockHeader(
        prev_blockhash=bytes(32),
        merkle_root=hash_from_hex(GENESIS_MERKLE_ROOT),
        time=1296688602,
        bits=0x207FFFFF,
        nonce=2,
        version=1,
    )
    assert header.block_hash == "0f9188f13cb7b2c71f2a335e3a4fc328bf5beb436012afca590b1a11466e2206"


def test_compact_to_target():
    assert compact_to_target(0x1D00FFFF) == 0xFFFF << (8 * 26)
    assert compact_to_target(0x207FFFFF) == 0x7FFFFF << (8 * 29)
    assert compact_to_target(0x03123456) == 0x123456
    assert compact_to_target(0x02123456) == 0x1234


def test_solve_finds_first_valid_nonce():
    header = BlockHeader(prev_blockhash=bytes(32), merkle_root=bytes(32), time=1, bits=0x207FFFFF)
    assert header.solve()
    assert header.meets_target()

    found = header.nonce
    for nonce in range(found):
        header.nonce = nonce
        assert not header.meets_target()


def test_solve_gives_up_when_nonce_space_is_exhausted():
    # target 0: no hash can meet it
    header = BlockHeader(prev_blockhash=bytes(32), merkle_root=bytes(32), time=1, bits=0x03000000, nonce=7)
    assert not header.solve(max_nonce=100)
    assert header.nonce == 7


@pytest.mark.parametrize(
    "n, encoded",
    [
        (0, ""),
        (1, "01"),
        (-1, "81"),
        (127, "7f"),
        (128, "8000"),
        (-128, "8080"),
        (255, "ff00"),
        (256, "0001"),
        (-256, "0081"),
        (0x7FFFFFFF, "ffffff7f"),
    ],
)
def test_script_num(n, encoded):
    assert script_num(n).hex() == encoded


@pytest.mark.parametrize(
    "n, script",
    [
        (0, "00"),
        (-1, "4f"),
        (1, "51"),
        (16, "60"),
        (17, "0111"),
        (100, "0164"),
        (1000, "02e803"),
        (-2, "0182"),
    ],
)
def test_push_int(n, script):
    assert push_int(n).hex() == script


def test_compact_size():
    assert ser_compact_size(0) == b"\x00"
    assert ser_compact_size(0xFC) == b"\xfc"
    assert ser_compact_size(0xFD) == b"\xfd\xfd\x00"


def test_p2sh_script():
    script = p2sh_script(bytes(20))
    assert script == bytes([0xA9, 0x14]) + bytes(20) + bytes([0x87])

    with pytest.raises(ValueError):
        p2sh_script(bytes(19))


def test_merkle_root():
    a, b, c = (hash256(bytes([i])) for i in range(3))

    assert merkle_root([a]) == a
    assert merkle_root([a, b]) == hash256(a + b)
    assert merkle_root([a, b, c]) == hash256(hash256(a + b) + hash256(c + c))

    with pytest.raises(ValueError):
        merkle_root([])


def test_coinbase_transaction_layout():
    tx = Transaction(
        inputs=[TxIn(script_sig=push_int(5))],
        outputs=[TxOut(value=0, script_pubkey=b"\x51")],
    )
    assert tx.is_coinbase()
    assert OutPoint().is_null()

    raw = tx.serialize()
    # version | 1 input | null outpoint | script | sequence | 1 output | value | script | locktime
    assert raw.hex() == (
        "01000000"
        "01"
        + "00" * 32
        + "ffffffff"
        "0155"
        "ffffffff"
        "01"
        "0000000000000000"
        "0151"
        "00000000"
    )
    assert tx.txid == hash256(raw)[::-1].hex()


def test_block_serialization_and_merkle_root():
    tx = Transaction(inputs=[TxIn(script_sig=push_int(1))], outputs=[TxOut(0, b"")])
    block = Block(
        header=BlockHeader(prev_blockhash=bytes(32), merkle_root=bytes(32), time=1, bits=0x207FFFFF),
        transactions=[tx],
    )
    block.header.merkle_root = block.compute_merkle_root()

    assert block.header.merkle_root == tx.txid_bytes()
    raw = block.serialize()
    assert raw[:80] == block.header.serialize()
    assert raw[80] == 1
    assert raw[81:] == tx.serialize()
    assert block.block_hash == block.header.block_hash
