"""Segwit address encoding and pay-to-taproot addresses over secp256k1."""

from __future__ import annotations

import hashlib
import secrets

from .genesis import Network

_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_CONST = 1
_BECH32M_CONST = 0x2BC830A3
_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)

_HRPS = {
    Network.BITCOIN: "bc",
    Network.TESTNET: "tb",
    Network.SIGNET: "tb",
    Network.REGTEST: "bcrt",
}

_P = 2**256 - 2**32 - 977
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_Point = "tuple[int, int] | None"


def _polymod(values: list[int]) -> int:
    checksum = 1
    for value in values:
        top = checksum >> 25
        checksum = ((checksum & 0x1FFFFFF) << 5) ^ value
        for bit, generator in enumerate(_GENERATOR):
            if (top >> bit) & 1:
                checksum ^= generator
    return checksum


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _create_checksum(hrp: str, data: list[int], const: int) -> list[int]:
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ const
    return [(polymod >> (5 * (5 - i))) & 31 for i in range(6)]


def _to_five_bits(data: bytes) -> list[int]:
    acc = 0
    bits = 0
    out = []
    for byte in data:
        acc = (acc << 8) | byte
        bits += 8
        while bits >= 5:
            bits -= 5
            out.append((acc >> bits) & 31)
    if bits:
        out.append((acc << (5 - bits)) & 31)
    return out


def segwit_address(hrp: str, version: int, program: bytes) -> str:
    """Encode a segwit output program as a bech32 (v0) or bech32m (v1+) address."""
    if not hrp or any(not 33 <= ord(c) <= 126 for c in hrp) or hrp.lower() != hrp:
        raise ValueError(f"invalid human-readable part: {hrp!r}")
    if not 0 <= version <= 16:
        raise ValueError(f"invalid witness version: {version}")
    program = bytes(program)
    if not 2 <= len(program) <= 40:
        raise ValueError(f"invalid witness program length: {len(program)}")
    if version == 0 and len(program) not in (20, 32):
        raise ValueError(f"invalid v0 witness program length: {len(program)}")
    const = _BECH32_CONST if version == 0 else _BECH32M_CONST
    data = [version] + _to_five_bits(program)
    combined = data + _create_checksum(hrp, data, const)
    return hrp + "1" + "".join(_CHARSET[d] for d in combined)


def _point_add(a, b):
    if a is None:
        return b
    if b is None:
        return a
    if a[0] == b[0] and (a[1] + b[1]) % _P == 0:
        return None
    if a == b:
        slope = 3 * a[0] * a[0] * pow(2 * a[1], _P - 2, _P) % _P
    else:
        slope = (b[1] - a[1]) * pow(b[0] - a[0], _P - 2, _P) % _P
    x = (slope * slope - a[0] - b[0]) % _P
    return (x, (slope * (a[0] - x) - a[1]) % _P)


def _point_mul(point, scalar: int):
    result = None
    addend = point
    while scalar:
        if scalar & 1:
            result = _point_add(result, addend)
        addend = _point_add(addend, addend)
        scalar >>= 1
    return result


def _lift_x(x: int) -> tuple[int, int]:
    if x >= _P:
        raise ValueError("x coordinate is not a field element")
    c = (pow(x, 3, _P) + 7) % _P
    y = pow(c, (_P + 1) // 4, _P)
    if y * y % _P != c:
        raise ValueError("x coordinate is not on the curve")
    return (x, y if y % 2 == 0 else _P - y)


def _tagged_hash(tag: str, message: bytes) -> bytes:
    tag_hash = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(tag_hash + tag_hash + message).digest()


def _hrp_for(network: Network) -> str:
    return _HRPS[Network(network)]


def p2tr_address(internal_key: bytes, network: Network) -> str:
    """The key-path-only taproot address for a 32-byte x-only internal key."""
    internal_key = bytes(internal_key)
    if len(internal_key) != 32:
        raise ValueError(f"x-only public key must be 32 bytes, got {len(internal_key)}")
    point = _lift_x(int.from_bytes(internal_key, "big"))
    tweak = int.from_bytes(_tagged_hash("TapTweak", internal_key), "big")
    if tweak >= _N:
        raise ValueError("taproot tweak out of range")
    output = _point_add(point, _point_mul(_G, tweak))
    if output is None:
        raise ValueError("tweaked key is the point at infinity")
    return segwit_address(_hrp_for(network), 1, output[0].to_bytes(32, "big"))


def random_p2tr_address(network: Network) -> str:
    """A taproot address for a freshly generated random key."""
    secret_scalar = secrets.randbelow(_N - 1) + 1
    public = _point_mul(_G, secret_scalar)
    return p2tr_address(public[0].to_bytes(32, "big"), network)