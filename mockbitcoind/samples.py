"""Fixed sample identifiers and addresses for use in tests."""

from __future__ import annotations

from .primitives import OutPoint


def _single_hex_digit(n: int) -> str:
    digit = format(n, "x")
    if len(digit) != 1:
        raise ValueError(f"sample index must be a single hex digit: {n}")
    return digit


def blockhash(n: int) -> str:
    """A block hash made of one repeated hex digit."""
    return _single_hex_digit(n) * 64


def txid(n: int) -> str:
    """A txid made of one repeated hex digit."""
    return _single_hex_digit(n) * 64


def outpoint(n: int) -> OutPoint:
    """The outpoint ``txid(n):n``."""
    return OutPoint.parse(f"{txid(n)}:{n}")


def satpoint(n: int, offset: int) -> str:
    """The satpoint ``outpoint(n):offset``."""
    if offset < 0:
        raise ValueError(f"offset must not be negative: {offset}")
    return f"{outpoint(n)}:{offset}"


def inscription_id(n: int) -> str:
    """An inscription id ``<digit*64>i<n>``."""
    return f"{_single_hex_digit(n) * 64}i{n}"


def address() -> str:
    return "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"


def recipient() -> str:
    return "tb1q6en7qjxgw4ev8xwx94pzdry6a6ky7wlfeqzunz"


_CHANGE_ADDRESSES = (
    "tb1qjsv26lap3ffssj6hfy8mzn0lg5vte6a42j75ww",
    "tb1qakxxzv9n7706kc3xdcycrtfv8cqv62hnwexc0l",
    "tb1qxz9yk0td0yye009gt6ayn7jthz5p07a75luryg",
)


def change(n: int) -> str:
    """One of three fixed change addresses."""
    if not 0 <= n < len(_CHANGE_ADDRESSES):
        raise ValueError(f"no change address {n}")
    return _CHANGE_ADDRESSES[n]