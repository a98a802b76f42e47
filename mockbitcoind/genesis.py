"""Networks and their genesis blocks."""

from __future__ import annotations

from enum import Enum

from .primitives import (
    COIN_VALUE,
    SEQUENCE_MAX,
    ZERO_HASH,
    Block,
    BlockHeader,
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
)


class Network(Enum):
    """A Bitcoin network."""

    BITCOIN = "bitcoin"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"

    def __str__(self) -> str:
        return self.value


_COINBASE_SCRIPT_SIG = bytes.fromhex(
    "04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368616e63656c6c6f72"
    "206f6e206272696e6b206f66207365636f6e64206261696c6f757420666f722062616e6b73"
)

_COINBASE_SCRIPT_PUBKEY = bytes.fromhex(
    "4104678afdb0fe5548271967f1a67130b7105cd6a828e03909a67962e0ea1f61deb649f6bc3f4cef38"
    "c4f35504e51ec112de5c384df7ba0b8d578a4c702b6bf11d5fac"
)

# (time, bits, nonce) for each network's genesis header.
_HEADER_FIELDS = {
    Network.BITCOIN: (1231006505, 0x1D00FFFF, 2083236893),
    Network.TESTNET: (1296688602, 0x1D00FFFF, 414098458),
    Network.SIGNET: (1598918400, 0x1E0377AE, 52613770),
    Network.REGTEST: (1296688602, 0x207FFFFF, 2),
}


def _coinbase() -> Transaction:
    return Transaction(
        version=1,
        lock_time=0,
        input=[
            TxIn(
                previous_output=OutPoint.null(),
                script_sig=_COINBASE_SCRIPT_SIG,
                sequence=SEQUENCE_MAX,
            )
        ],
        output=[TxOut(50 * COIN_VALUE, _COINBASE_SCRIPT_PUBKEY)],
    )


def genesis_block(network: Network) -> Block:
    """Return a fresh copy of the genesis block of ``network``."""
    time, bits, nonce = _HEADER_FIELDS[Network(network)]
    coinbase = _coinbase()
    header = BlockHeader(
        version=1,
        prev_blockhash=ZERO_HASH,
        merkle_root=coinbase.txid(),
        time=time,
        bits=bits,
        nonce=nonce,
    )
    return Block(header, [coinbase])