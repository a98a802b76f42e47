import pytest

from mockbitcoind.genesis import Network, genesis_block
from mockbitcoind.primitives import COIN_VALUE, OutPoint, build_script
from mockbitcoind.state import State, TransactionTemplate

SUBSIDY = 50 * COIN_VALUE


@pytest.fixture
def state():
    return State(Network.BITCOIN, 240000, False)


def test_starts_with_genesis(state):
    genesis_hash = genesis_block(Network.BITCOIN).block_hash()
    assert state.hashes == [genesis_hash]
    assert list(state.blocks) == [genesis_hash]
    assert state.utxos == {}
    assert state.version == 240000


def test_push_block_creates_coinbase(state):
    block = state.push_block(SUBSIDY)
    coinbase = block.txdata[0]
    assert len(block.txdata) == 1
    assert coinbase.output[0].value == SUBSIDY
    assert coinbase.input[0].previous_output.is_null()
    assert coinbase.input[0].script_sig == build_script(1)
    assert block.header.prev_blockhash == state.hashes[0]
    assert state.hashes[-1] == block.block_hash()
    assert state.utxos == {OutPoint(coinbase.txid(), 0): SUBSIDY}
    assert state.transactions[coinbase.txid()] == coinbase
    assert state.nonce == 1


def test_block_times_and_nonces_increase(state):
    blocks = [state.push_block(SUBSIDY) for _ in range(3)]
    assert [b.header.time for b in blocks] == [1, 2, 3]
    assert [b.header.nonce for b in blocks] == [0, 1, 2]


def test_broadcast_splits_value(state):
    state.push_block(SUBSIDY)
    txid = state.broadcast_tx(TransactionTemplate(inputs=[(1, 0, 0)], outputs=2))
    (tx,) = state.mempool
    assert tx.txid() == txid
    assert [o.value for o in tx.output] == [SUBSIDY // 2, SUBSIDY // 2]


def test_broadcast_first_input_gets_witness(state):
    state.push_block(SUBSIDY)
    state.push_block(SUBSIDY)
    state.broadcast_tx(
        TransactionTemplate(inputs=[(1, 0, 0), (2, 0, 0)], witness=[b"\x01"], outputs=1)
    )
    tx = state.mempool[0]
    assert tx.input[0].witness == [b"\x01"]
    assert tx.input[1].witness == []
    assert tx.output[0].value == 2 * SUBSIDY


def test_explicit_output_values(state):
    state.push_block(SUBSIDY)
    state.broadcast_tx(
        TransactionTemplate(inputs=[(1, 0, 0)], outputs=2, output_values=[SUBSIDY // 2])
    )
    assert [o.value for o in state.mempool[0].output] == [SUBSIDY // 2, SUBSIDY // 2]


def test_fee_goes_to_next_coinbase(state):
    state.push_block(SUBSIDY)
    spent = OutPoint(state.blocks[state.hashes[1]].txdata[0].txid(), 0)
    txid = state.broadcast_tx(TransactionTemplate(inputs=[(1, 0, 0)], fee=1000))
    block = state.push_block(SUBSIDY)
    assert block.txdata[0].output[0].value == SUBSIDY + 1000
    assert block.txdata[1].txid() == txid
    assert state.mempool == []
    assert spent not in state.utxos
    assert state.utxos[OutPoint(txid, 0)] == SUBSIDY - 1000


def test_uneven_split_rejected(state):
    state.push_block(SUBSIDY)
    with pytest.raises(ValueError):
        state.broadcast_tx(TransactionTemplate(inputs=[(1, 0, 0)], fee=1, outputs=2))


def test_zero_outputs_rejected(state):
    state.push_block(SUBSIDY)
    with pytest.raises(ValueError):
        state.broadcast_tx(TransactionTemplate(inputs=[(1, 0, 0)], outputs=0))


def test_get_confirmations(state):
    first = state.push_block(SUBSIDY)
    state.push_block(SUBSIDY)
    last = state.push_block(SUBSIDY)
    assert state.get_confirmations(first.txdata[0]) == 3
    assert state.get_confirmations(last.txdata[0]) == 1
    state.push_block(SUBSIDY)
    state.broadcast_tx(TransactionTemplate(inputs=[(1, 0, 0)]))
    assert state.get_confirmations(state.mempool[0]) == 0


def test_pop_block(state):
    block = state.push_block(SUBSIDY)
    assert state.pop_block() == block.block_hash()
    assert block.block_hash() not in state.blocks
    assert len(state.hashes) == 1
    state.pop_block()
    with pytest.raises(IndexError):
        state.pop_block()