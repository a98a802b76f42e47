"""The JSON-RPC methods of the mock node, answering in Bitcoin Core's JSON shapes.

Amounts in requests and replies are in bitcoin; the state keeps satoshis.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .genesis import Network
from .primitives import (
    COIN_VALUE,
    SEQUENCE_MAX,
    ZERO_HASH,
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
)
from .state import Sent, State
from .taproot import random_p2tr_address

_CHAIN_NAMES = {
    Network.BITCOIN: "main",
    Network.TESTNET: "test",
    Network.SIGNET: "signet",
    Network.REGTEST: "regtest",
}

METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_NOT_FOUND = -8


class RpcError(Exception):
    """An error reply to a JSON-RPC call."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"{message} ({code})")
        self.code = code
        self.message = message

    @classmethod
    def not_found(cls) -> RpcError:
        return cls(SERVER_NOT_FOUND, "Server error")

    def to_json(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


def _btc(sats: int) -> float:
    return sats / COIN_VALUE


def _require_none(**params: Any) -> None:
    for name, value in params.items():
        if value is not None:
            raise ValueError(f"{name} param not supported")


def _to_outpoint(value: OutPoint | Mapping[str, Any]) -> OutPoint:
    if isinstance(value, OutPoint):
        return value
    return OutPoint(value["txid"], int(value["vout"]))


def _outpoint_json(outpoint: OutPoint) -> dict[str, Any]:
    return {"txid": outpoint.txid, "vout": outpoint.vout}


def _txid_order(txid: str) -> bytes:
    return bytes.fromhex(txid)[::-1]


class Server:
    """Answers RPC calls from a shared :class:`State`, guarded by ``lock``."""

    def __init__(self, state: State, lock: threading.RLock | None = None) -> None:
        self.state = state
        self.lock = lock if lock is not None else threading.RLock()
        self.network = state.network
        self._methods: dict[str, tuple[Callable[..., Any], tuple[str, ...]]] = {
            "getblockchaininfo": (self.get_blockchain_info, ()),
            "getnetworkinfo": (self.get_network_info, ()),
            "getbalances": (self.get_balances, ()),
            "getblockhash": (self.get_block_hash, ("height",)),
            "getblockheader": (self.get_block_header, ("block_hash", "verbose")),
            "getblock": (self.get_block, ("block_hash", "verbosity")),
            "getblockcount": (self.get_block_count, ()),
            "getwalletinfo": (self.get_wallet_info, ()),
            "createrawtransaction": (
                self.create_raw_transaction,
                ("utxos", "outs", "locktime", "replaceable"),
            ),
            "createwallet": (
                self.create_wallet,
                ("name", "disable_private_keys", "blank", "passphrase", "avoid_reuse"),
            ),
            "signrawtransactionwithwallet": (
                self.sign_raw_transaction_with_wallet,
                ("tx", "utxos", "sighash_type"),
            ),
            "sendrawtransaction": (self.send_raw_transaction, ("tx",)),
            "sendtoaddress": (
                self.send_to_address,
                (
                    "address",
                    "amount",
                    "comment",
                    "comment_to",
                    "subtract_fee",
                    "replaceable",
                    "confirmation_target",
                    "estimate_mode",
                    "avoid_reuse",
                    "fee_rate",
                    "verbose",
                ),
            ),
            "gettransaction": (self.get_transaction, ("txid", "include_watchonly")),
            "getrawtransaction": (
                self.get_raw_transaction,
                ("txid", "verbose", "blockhash"),
            ),
            "listunspent": (
                self.list_unspent,
                ("minconf", "maxconf", "address", "include_unsafe", "query_options"),
            ),
            "listlockunspent": (self.list_lock_unspent, ()),
            "getrawchangeaddress": (self.get_raw_change_address, ("address_type",)),
            "getdescriptorinfo": (self.get_descriptor_info, ("desc",)),
            "importdescriptors": (self.import_descriptors, ("req",)),
            "getnewaddress": (self.get_new_address, ("label", "address_type")),
            "listtransactions": (
                self.list_transactions,
                ("label", "count", "skip", "include_watchonly"),
            ),
            "lockunspent": (self.lock_unspent, ("unlock", "outputs")),
            "listdescriptors": (self.list_descriptors, ()),
            "loadwallet": (self.load_wallet, ("wallet",)),
            "listwallets": (self.list_wallets, ()),
        }

    def _unspent(self) -> list[tuple[OutPoint, int]]:
        with self.lock:
            return [
                (outpoint, sats)
                for outpoint, sats in sorted(self.state.utxos.items())
                if outpoint not in self.state.locked
            ]

    def get_balances(self) -> dict[str, Any]:
        trusted = sum(sats for _, sats in self._unspent())
        return {
            "mine": {
                "trusted": _btc(trusted),
                "untrusted_pending": 0.0,
                "immature": 0.0,
            }
        }

    def get_blockchain_info(self) -> dict[str, Any]:
        with self.lock:
            best = self.state.hashes[0]
        return {
            "chain": _CHAIN_NAMES[self.network],
            "blocks": 0,
            "headers": 0,
            "bestblockhash": best,
            "difficulty": 0.0,
            "mediantime": 0,
            "verificationprogress": 0.0,
            "initialblockdownload": False,
            "chainwork": "",
            "size_on_disk": 0,
            "pruned": False,
            "softforks": {},
            "warnings": "",
        }

    def get_network_info(self) -> dict[str, Any]:
        with self.lock:
            version = self.state.version
        return {
            "version": version,
            "subversion": "",
            "protocolversion": 0,
            "localservices": "",
            "localrelay": False,
            "timeoffset": 0,
            "connections": 0,
            "networkactive": True,
            "networks": [],
            "relayfee": 0.0,
            "incrementalfee": 0.0,
            "localaddresses": [],
            "warnings": "",
        }

    def get_block_hash(self, height: int) -> str:
        with self.lock:
            if not 0 <= height < len(self.state.hashes):
                raise RpcError.not_found()
            return self.state.hashes[height]

    def get_block_header(self, block_hash: str, verbose: bool) -> Any:
        with self.lock:
            if verbose:
                try:
                    height = self.state.hashes.index(block_hash)
                except ValueError:
                    raise RpcError.not_found() from None
                return {
                    "hash": block_hash,
                    "confirmations": 0,
                    "height": height,
                    "version": 0,
                    "versionHex": "00000000",
                    "merkleroot": ZERO_HASH,
                    "time": 0,
                    "nonce": 0,
                    "bits": "",
                    "difficulty": 0.0,
                    "chainwork": "",
                    "nTx": 0,
                }
            block = self.state.blocks.get(block_hash)
            if block is None:
                raise RpcError.not_found()
            return block.header.serialize().hex()

    def get_block(self, block_hash: str, verbosity: int) -> str:
        if verbosity != 0:
            raise ValueError(f"Verbosity level {verbosity} is unsupported")
        with self.lock:
            block = self.state.blocks.get(block_hash)
            if block is None:
                raise RpcError.not_found()
            return block.serialize().hex()

    def get_block_count(self) -> int:
        with self.lock:
            return max(len(self.state.hashes) - 1, 0)

    def get_wallet_info(self) -> dict[str, Any]:
        with self.lock:
            if not self.state.loaded_wallets:
                raise RpcError.not_found()
            wallet_name = min(self.state.loaded_wallets)
        return {
            "walletname": wallet_name,
            "walletversion": 0,
            "balance": 0.0,
            "unconfirmed_balance": 0.0,
            "immature_balance": 0.0,
            "txcount": 0,
            "keypoolsize": 0,
            "keypoolsize_hd_internal": 0,
            "paytxfee": 0.0,
            "private_keys_enabled": False,
        }

    def create_raw_transaction(
        self,
        utxos: Iterable[OutPoint | Mapping[str, Any]],
        outs: Mapping[str, float],
        locktime: int | None,
        replaceable: bool | None,
    ) -> str:
        _require_none(locktime=locktime, replaceable=replaceable)
        tx = Transaction(
            version=0,
            lock_time=0,
            input=[
                TxIn(previous_output=_to_outpoint(utxo), sequence=SEQUENCE_MAX)
                for utxo in utxos
            ],
            output=[TxOut(int(amount * COIN_VALUE), b"") for amount in outs.values()],
        )
        return tx.serialize().hex()

    def create_wallet(
        self,
        name: str,
        disable_private_keys: bool | None,
        blank: bool | None,
        passphrase: str | None,
        avoid_reuse: bool | None,
    ) -> dict[str, Any]:
        with self.lock:
            self.state.wallets.add(name)
        return {"name": name, "warning": None}

    def sign_raw_transaction_with_wallet(
        self, tx: str, utxos: Any, sighash_type: Any
    ) -> dict[str, Any]:
        _require_none(utxos=utxos, sighash_type=sighash_type)
        transaction = Transaction.deserialize(bytes.fromhex(tx))
        for txin in transaction.input:
            txin.witness = [bytes(64)]
        return {"hex": transaction.serialize().hex(), "complete": True}

    def send_raw_transaction(self, tx: str) -> str:
        transaction = Transaction.deserialize(bytes.fromhex(tx))
        with self.lock:
            self.state.mempool.append(transaction)
        return transaction.txid()

    def send_to_address(
        self,
        address: str,
        amount: float,
        comment: str | None,
        comment_to: str | None,
        subtract_fee: bool | None,
        replaceable: bool | None,
        confirmation_target: int | None,
        estimate_mode: str | None,
        avoid_reuse: bool | None,
        fee_rate: float | None,
        verbose: bool | None,
    ) -> str:
        _require_none(
            comment=comment,
            comment_to=comment_to,
            subtract_fee=subtract_fee,
            replaceable=replaceable,
            confirmation_target=confirmation_target,
            estimate_mode=estimate_mode,
            avoid_reuse=avoid_reuse,
            verbose=verbose,
        )
        with self.lock:
            locked = sorted(self.state.locked)
            self.state.sent.append(Sent(amount=amount, address=address, locked=locked))
        return ZERO_HASH

    def get_transaction(self, txid: str, include_watchonly: bool | None) -> dict[str, Any]:
        with self.lock:
            tx = self.state.transactions.get(txid)
            if tx is None:
                raise RpcError.not_found()
            raw = tx.serialize().hex()
        return {
            "txid": txid,
            "confirmations": 0,
            "time": 0,
            "timereceived": 0,
            "walletconflicts": [],
            "bip125-replaceable": "unknown",
            "amount": 0.0,
            "details": [],
            "hex": raw,
        }

    def get_raw_transaction(
        self, txid: str, verbose: bool | None, blockhash: str | None
    ) -> Any:
        if blockhash is not None:
            raise ValueError("Blockhash param is unsupported")
        with self.lock:
            tx = self.state.transactions.get(txid)
            if tx is None:
                raise RpcError.not_found()
            if not verbose:
                return tx.serialize().hex()
        return {
            "in_active_chain": True,
            "hex": "",
            "txid": ZERO_HASH,
            "hash": ZERO_HASH,
            "size": 0,
            "vsize": 0,
            "version": 0,
            "locktime": 0,
            "vin": [],
            "vout": [],
            "confirmations": 1,
        }

    def list_unspent(
        self,
        minconf: int | None,
        maxconf: int | None,
        address: str | None,
        include_unsafe: bool | None,
        query_options: Any,
    ) -> list[dict[str, Any]]:
        _require_none(
            minconf=minconf,
            maxconf=maxconf,
            address=address,
            include_unsafe=include_unsafe,
            query_options=query_options,
        )
        return [
            {
                "txid": outpoint.txid,
                "vout": outpoint.vout,
                "scriptPubKey": "",
                "amount": _btc(sats),
                "confirmations": 0,
                "spendable": True,
                "solvable": True,
                "safe": True,
            }
            for outpoint, sats in self._unspent()
        ]

    def list_lock_unspent(self) -> list[dict[str, Any]]:
        with self.lock:
            return [_outpoint_json(outpoint) for outpoint in sorted(self.state.locked)]

    def get_raw_change_address(self, address_type: str | None) -> str:
        return random_p2tr_address(self.network)

    def get_descriptor_info(self, desc: str) -> dict[str, Any]:
        return {
            "descriptor": desc,
            "checksum": "",
            "isrange": False,
            "issolvable": False,
            "hasprivatekeys": True,
        }

    def import_descriptors(self, req: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        descriptors = [params["desc"] for params in req]
        with self.lock:
            self.state.descriptors.extend(descriptors)
        return [{"success": True, "warnings": [], "error": None}]

    def get_new_address(self, label: str | None, address_type: str | None) -> str:
        return random_p2tr_address(self.network)

    def list_transactions(
        self,
        label: str | None,
        count: int | None,
        skip: int | None,
        include_watchonly: bool | None,
    ) -> list[dict[str, Any]]:
        limit = 0xFFFF if count is None else count
        with self.lock:
            confirmed = sorted(self.state.transactions.items(), key=lambda item: _txid_order(item[0]))
            listed = confirmed[:limit] + [(tx.txid(), tx) for tx in self.state.mempool]
            return [
                {
                    "confirmations": self.state.get_confirmations(tx),
                    "txid": txid,
                    "time": 0,
                    "timereceived": 0,
                    "bip125-replaceable": "unknown",
                    "walletconflicts": [],
                    "category": "immature",
                    "amount": 0.0,
                    "vout": 0,
                    "fee": 0.0,
                }
                for txid, tx in listed
            ]

    def lock_unspent(
        self, unlock: bool, outputs: Iterable[OutPoint | Mapping[str, Any]]
    ) -> bool:
        if unlock:
            raise ValueError("unlocking outputs is not supported")
        with self.lock:
            if self.state.fail_lock_unspent:
                return False
            for output in outputs:
                outpoint = _to_outpoint(output)
                if outpoint not in self.state.utxos:
                    raise ValueError(f"cannot lock unknown output {outpoint}")
                self.state.locked.add(outpoint)
        return True

    def list_descriptors(self) -> dict[str, Any]:
        with self.lock:
            descriptors = list(self.state.descriptors)
        return {
            "wallet_name": "ord",
            "descriptors": [
                {"desc": desc, "timestamp": "now", "active": True} for desc in descriptors
            ],
        }

    def load_wallet(self, wallet: str) -> dict[str, Any]:
        with self.lock:
            if wallet not in self.state.wallets:
                raise RpcError.not_found()
            self.state.loaded_wallets.add(wallet)
        return {"name": wallet, "warning": None}

    def list_wallets(self) -> list[str]:
        with self.lock:
            return sorted(self.state.loaded_wallets)

    def dispatch(self, method: str, params: Any) -> Any:
        """Call the RPC ``method`` with JSON ``params``; omitted trailing params are null."""
        entry = self._methods.get(method)
        if entry is None:
            raise RpcError(METHOD_NOT_FOUND, "Method not found")
        handler, names = entry
        if params is None:
            params = []
        if isinstance(params, Mapping):
            unknown = set(params) - set(names)
            if unknown:
                raise RpcError(INVALID_PARAMS, f"Invalid params: unknown {sorted(unknown)}")
            args = [params.get(name) for name in names]
        else:
            args = list(params)
            if len(args) > len(names):
                raise RpcError(
                    INVALID_PARAMS,
                    f"Invalid params: expected at most {len(names)}, got {len(args)}",
                )
            args += [None] * (len(names) - len(args))
        try:
            return handler(*args)
        except RpcError:
            raise
        except (TypeError, KeyError) as error:
            raise RpcError(INVALID_PARAMS, f"Invalid params: {error}") from error
        except ValueError as error:
            raise RpcError(INTERNAL_ERROR, str(error)) from error