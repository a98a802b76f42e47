"""Bitcoin transactions, blocks and scripts with their consensus encoding.

Hashes (txids, block hashes, merkle roots) are held as 64-character hex
strings in the usual display order, which is the byte-reversed form of what
goes on the wire.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field
from functools import total_ordering

COIN_VALUE = 100_000_000
SEQUENCE_MAX = 0xFFFFFFFF
SEQUENCE_ENABLE_RBF_NO_LOCKTIME = 0xFFFFFFFD
ZERO_HASH = "0" * 64

_OP_0 = 0x00
_OP_PUSHDATA1 = 0x4C
_OP_PUSHDATA2 = 0x4D
_OP_PUSHDATA4 = 0x4E
_OP_1 = 0x51


def double_sha256(data: bytes) -> bytes:
    """Return SHA-256 applied twice to ``data``."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def _check_hash(value: str) -> str:
    if not isinstance(value, str) or len(value) != 64:
        raise ValueError(f"invalid hash: {value!r}")
    try:
        bytes.fromhex(value)
    except ValueError:
        raise ValueError(f"invalid hash: {value!r}") from None
    return value.lower()


def _hash_to_wire(value: str) -> bytes:
    return bytes.fromhex(_check_hash(value))[::-1]


def _wire_to_hash(data: bytes) -> str:
    return data[::-1].hex()


def _varint(n: int) -> bytes:
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


def _varbytes(data: bytes) -> bytes:
    return _varint(len(data)) + data


def _encode_witness(witness: list[bytes]) -> bytes:
    return _varint(len(witness)) + b"".join(_varbytes(item) for item in witness)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def read(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise ValueError("unexpected end of data")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def unpack(self, fmt: str) -> int:
        (value,) = struct.unpack(fmt, self.read(struct.calcsize(fmt)))
        return value

    def varint(self) -> int:
        prefix = self.read(1)[0]
        if prefix < 0xFD:
            return prefix
        return self.unpack({0xFD: "<H", 0xFE: "<I", 0xFF: "<Q"}[prefix])

    def varbytes(self) -> bytes:
        return self.read(self.varint())

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise ValueError("trailing data after transaction")


@total_ordering
@dataclass(frozen=True)
class OutPoint:
    """A reference to one output of a transaction."""

    txid: str
    vout: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "txid", _check_hash(self.txid))
        if not 0 <= self.vout <= 0xFFFFFFFF:
            raise ValueError(f"vout out of range: {self.vout}")

    @classmethod
    def null(cls) -> OutPoint:
        """The outpoint that coinbase inputs spend."""
        return cls(ZERO_HASH, 0xFFFFFFFF)

    @classmethod
    def parse(cls, text: str) -> OutPoint:
        """Parse ``<txid>:<vout>``."""
        txid, sep, vout = text.rpartition(":")
        if not sep or not vout.isdigit():
            raise ValueError(f"invalid outpoint: {text!r}")
        return cls(txid, int(vout))

    def is_null(self) -> bool:
        return self == OutPoint.null()

    def _key(self) -> tuple[bytes, int]:
        return (_hash_to_wire(self.txid), self.vout)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, OutPoint):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass
class TxIn:
    """A transaction input."""

    previous_output: OutPoint = field(default_factory=OutPoint.null)
    script_sig: bytes = b""
    sequence: int = SEQUENCE_MAX
    witness: list[bytes] = field(default_factory=list)

    def _encode(self) -> bytes:
        return (
            _hash_to_wire(self.previous_output.txid)
            + struct.pack("<I", self.previous_output.vout)
            + _varbytes(self.script_sig)
            + struct.pack("<I", self.sequence)
        )

    @classmethod
    def _read(cls, reader: _Reader) -> TxIn:
        txid = _wire_to_hash(reader.read(32))
        vout = reader.unpack("<I")
        script_sig = reader.varbytes()
        sequence = reader.unpack("<I")
        return cls(OutPoint(txid, vout), script_sig, sequence)


@dataclass
class TxOut:
    """A transaction output."""

    value: int
    script_pubkey: bytes = b""

    def _encode(self) -> bytes:
        return struct.pack("<Q", self.value) + _varbytes(self.script_pubkey)

    @classmethod
    def _read(cls, reader: _Reader) -> TxOut:
        value = reader.unpack("<Q")
        return cls(value, reader.varbytes())


@dataclass
class Transaction:
    """A Bitcoin transaction."""

    version: int = 1
    lock_time: int = 0
    input: list[TxIn] = field(default_factory=list)
    output: list[TxOut] = field(default_factory=list)

    def _has_witness(self) -> bool:
        return any(txin.witness for txin in self.input)

    def _encode(self, with_witness: bool) -> bytes:
        parts = [struct.pack("<i", self.version)]
        if with_witness:
            parts.append(b"\x00\x01")
        parts.append(_varint(len(self.input)))
        parts.extend(txin._encode() for txin in self.input)
        parts.append(_varint(len(self.output)))
        parts.extend(txout._encode() for txout in self.output)
        if with_witness:
            parts.extend(_encode_witness(txin.witness) for txin in self.input)
        parts.append(struct.pack("<I", self.lock_time))
        return b"".join(parts)

    def serialize(self) -> bytes:
        """Consensus encoding; segwit form when there are witnesses or no inputs."""
        return self._encode(not self.input or self._has_witness())

    @classmethod
    def deserialize(cls, data: bytes) -> Transaction:
        """Decode a consensus-encoded transaction, raising ValueError if malformed."""
        reader = _Reader(data)
        version = reader.unpack("<i")
        count = reader.varint()
        segwit = False
        if count == 0:
            flag = reader.read(1)[0]
            if flag != 1:
                raise ValueError(f"unsupported segwit flag: {flag}")
            segwit = True
            count = reader.varint()
        inputs = [TxIn._read(reader) for _ in range(count)]
        outputs = [TxOut._read(reader) for _ in range(reader.varint())]
        if segwit:
            for txin in inputs:
                txin.witness = [reader.varbytes() for _ in range(reader.varint())]
            if inputs and not any(txin.witness for txin in inputs):
                raise ValueError("witness flag set but no witnesses present")
        lock_time = reader.unpack("<I")
        reader.finish()
        return cls(version, lock_time, inputs, outputs)

    def txid(self) -> str:
        return _wire_to_hash(double_sha256(self._encode(False)))

    def weight(self) -> int:
        weight = 4 * len(self._encode(False))
        if self._has_witness():
            weight += 2 + sum(len(_encode_witness(txin.witness)) for txin in self.input)
        return weight


@dataclass
class BlockHeader:
    """An 80-byte block header."""

    version: int
    prev_blockhash: str
    merkle_root: str
    time: int
    bits: int
    nonce: int

    def serialize(self) -> bytes:
        return (
            struct.pack("<i", self.version)
            + _hash_to_wire(self.prev_blockhash)
            + _hash_to_wire(self.merkle_root)
            + struct.pack("<III", self.time, self.bits, self.nonce)
        )

    def block_hash(self) -> str:
        return _wire_to_hash(double_sha256(self.serialize()))


@dataclass
class Block:
    """A block: a header and its transactions."""

    header: BlockHeader
    txdata: list[Transaction] = field(default_factory=list)

    def serialize(self) -> bytes:
        return (
            self.header.serialize()
            + _varint(len(self.txdata))
            + b"".join(tx.serialize() for tx in self.txdata)
        )

    def block_hash(self) -> str:
        return self.header.block_hash()


def _script_num(n: int) -> bytes:
    if n == 0:
        return b""
    negative = n < 0
    value = abs(n)
    out = bytearray()
    while value:
        out.append(value & 0xFF)
        value >>= 8
    if out[-1] & 0x80:
        out.append(0x80 if negative else 0x00)
    elif negative:
        out[-1] |= 0x80
    return bytes(out)


def _push_slice(data: bytes) -> bytes:
    n = len(data)
    if n < _OP_PUSHDATA1:
        prefix = bytes([n])
    elif n < 0x100:
        prefix = bytes([_OP_PUSHDATA1, n])
    elif n < 0x10000:
        prefix = bytes([_OP_PUSHDATA2]) + struct.pack("<H", n)
    else:
        prefix = bytes([_OP_PUSHDATA4]) + struct.pack("<I", n)
    return prefix + data


def _push_int(n: int) -> bytes:
    if n == -1 or 1 <= n <= 16:
        return bytes([_OP_1 + n - 1])
    if n == 0:
        return bytes([_OP_0])
    return _push_slice(_script_num(n))


def build_script(*args: int | bytes) -> bytes:
    """Build a script from integers (pushed as numbers) and byte strings (pushed as data)."""
    parts = []
    for arg in args:
        if isinstance(arg, bool):
            raise TypeError("cannot push a bool onto a script")
        if isinstance(arg, int):
            parts.append(_push_int(arg))
        elif isinstance(arg, (bytes, bytearray)):
            parts.append(_push_slice(bytes(arg)))
        else:
            raise TypeError(f"cannot push {type(arg).__name__} onto a script")
    return b"".join(parts)