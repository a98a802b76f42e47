"""The in-memory chain, mempool and wallet bookkeeping of the mock node."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .genesis import Network, genesis_block
from .primitives import (
    SEQUENCE_MAX,
    ZERO_HASH,
    Block,
    BlockHeader,
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
    build_script,
)


@dataclass
class TransactionTemplate:
    """Describes a transaction to broadcast from already-mined outputs.

    ``inputs`` holds ``(block height, transaction index, output index)``
    triples; the first input carries ``witness``.
    """

    fee: int = 0
    inputs: Sequence[tuple[int, int, int]] = ()
    output_values: Sequence[int] = ()
    outputs: int = 1
    witness: list[bytes] = field(default_factory=list)


@dataclass
class Sent:
    """A record of one ``sendtoaddress`` call."""

    amount: float
    address: str
    locked: list[OutPoint] = field(default_factory=list)


class State:
    """Blocks, transactions, UTXOs and wallet data kept by the mock node."""

    def __init__(self, network: Network, version: int, fail_lock_unspent: bool) -> None:
        self.network = Network(network)
        self.version = version
        self.fail_lock_unspent = fail_lock_unspent

        genesis = genesis_block(self.network)
        genesis_hash = genesis.block_hash()
        self.hashes: list[str] = [genesis_hash]
        self.blocks: dict[str, Block] = {genesis_hash: genesis}

        self.descriptors: list[str] = []
        self.loaded_wallets: set[str] = set()
        self.locked: set[OutPoint] = set()
        self.mempool: list[Transaction] = []
        self.nonce = 0
        self.sent: list[Sent] = []
        self.transactions: dict[str, Transaction] = {}
        self.utxos: dict[OutPoint, int] = {}
        self.wallets: set[str] = set()

    def _collect_fee(self, tx: Transaction) -> int:
        spent = sum(
            self.transactions[txin.previous_output.txid].output[txin.previous_output.vout].value
            for txin in tx.input
        )
        created = sum(txout.value for txout in tx.output)
        if created > spent:
            raise ValueError(f"transaction {tx.txid()} spends more than its inputs")
        self.transactions[tx.txid()] = tx
        return spent - created

    def push_block(self, subsidy: int) -> Block:
        """Mine a block holding a coinbase and the whole mempool."""
        fees = sum(self._collect_fee(tx) for tx in self.mempool)
        coinbase = Transaction(
            version=0,
            lock_time=0,
            input=[
                TxIn(
                    previous_output=OutPoint.null(),
                    script_sig=build_script(len(self.blocks)),
                    sequence=SEQUENCE_MAX,
                )
            ],
            output=[TxOut(subsidy + fees, b"")],
        )
        self.transactions[coinbase.txid()] = coinbase

        header = BlockHeader(
            version=0,
            prev_blockhash=self.hashes[-1],
            merkle_root=ZERO_HASH,
            time=len(self.blocks),
            bits=0,
            nonce=self.nonce,
        )
        block = Block(header, [coinbase, *self.mempool])
        self.mempool.clear()

        for tx in block.txdata:
            for txin in tx.input:
                self.utxos.pop(txin.previous_output, None)
            txid = tx.txid()
            for vout, txout in enumerate(tx.output):
                self.utxos[OutPoint(txid, vout)] = txout.value

        block_hash = block.block_hash()
        self.blocks[block_hash] = block
        self.hashes.append(block_hash)
        self.nonce += 1
        return block

    def pop_block(self) -> str:
        """Remove the tip of the chain and return its hash."""
        if not self.hashes:
            raise IndexError("no blocks to pop")
        block_hash = self.hashes.pop()
        self.blocks.pop(block_hash, None)
        return block_hash

    def broadcast_tx(self, template: TransactionTemplate) -> str:
        """Build a transaction from ``template``, add it to the mempool and return its txid."""
        if template.outputs <= 0:
            raise ValueError("a transaction template needs at least one output")

        total_value = 0
        inputs = []
        for i, (height, tx_index, vout) in enumerate(template.inputs):
            tx = self.blocks[self.hashes[height]].txdata[tx_index]
            total_value += tx.output[vout].value
            inputs.append(
                TxIn(
                    previous_output=OutPoint(tx.txid(), vout),
                    script_sig=b"",
                    sequence=SEQUENCE_MAX,
                    witness=list(template.witness) if i == 0 else [],
                )
            )

        if template.fee > total_value:
            raise ValueError(f"fee {template.fee} exceeds input value {total_value}")
        value_per_output = (total_value - template.fee) // template.outputs
        if value_per_output * template.outputs + template.fee != total_value:
            raise ValueError(
                f"input value {total_value} less fee {template.fee} "
                f"does not split evenly into {template.outputs} outputs"
            )

        values = list(template.output_values)
        outputs = [
            TxOut(values[i] if i < len(values) else value_per_output, b"")
            for i in range(template.outputs)
        ]
        tx = Transaction(version=0, lock_time=0, input=inputs, output=outputs)
        self.mempool.append(tx)
        return tx.txid()

    def get_confirmations(self, tx: Transaction) -> int:
        """How many blocks deep ``tx`` is, or 0 if it is not in the chain."""
        for confirmations, block_hash in enumerate(reversed(self.hashes), start=1):
            if tx in self.blocks[block_hash].txdata:
                return confirmations
        return 0