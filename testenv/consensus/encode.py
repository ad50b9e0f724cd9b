"""
Bitcoin wire and script encoding helpers.
"""

from bitcoinlib.encoding import double_sha256, int_to_varbyteint

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_EQUAL = 0x87
OP_HASH160 = 0xA9


def ser_compact_size(n: int) -> bytes:
    return int_to_varbyteint(n)


def ser_bytes(b: bytes) -> bytes:
    """Length-prefixed byte string."""
    return ser_compact_size(len(b)) + b


def hash256(b: bytes) -> bytes:
    """Double SHA-256, in internal byte order."""
    return double_sha256(b)


def script_num(n: int) -> bytes:
    """
    Minimal little-endian sign-magnitude encoding of a script integer.
    """
    if n == 0:
        return b""

    neg = n < 0
    absval = -n if neg else n
    out = bytearray()
    while absval:
        out.append(absval & 0xFF)
        absval >>= 8

    # The top bit carries the sign, so it needs its own byte if already taken.
    if out[-1] & 0x80:
        out.append(0x80 if neg else 0x00)
    elif neg:
        out[-1] |= 0x80
    return bytes(out)


def push_data(data: bytes) -> bytes:
    if len(data) < OP_PUSHDATA1:
        return bytes([len(data)]) + data
    if len(data) <= 0xFF:
        return bytes([OP_PUSHDATA1, len(data)]) + data
    raise ValueError(f"push of {len(data)} bytes is not supported")


def push_int(n: int) -> bytes:
    """
    Script fragment pushing `n`, using the small-integer opcodes where they exist.
    """
    if n == 0:
        return bytes([OP_0])
    if n == -1:
        return bytes([OP_1NEGATE])
    if 1 <= n <= 16:
        return bytes([OP_1 + n - 1])
    return push_data(script_num(n))


def p2sh_script(script_hash: bytes) -> bytes:
    if len(script_hash) != 20:
        raise ValueError(f"script hash must be 20 bytes, got {len(script_hash)}")
    return bytes([OP_HASH160]) + push_data(script_hash) + bytes([OP_EQUAL])


def hash_from_hex(h: str) -> bytes:
    """RPC (display order) hash to internal byte order."""
    return bytes.fromhex(h)[::-1]


def hash_to_hex(b: bytes) -> str:
    """Internal byte order hash to RPC (display order)."""
    return b[::-1].hex()
