import json
import urllib.error
import urllib.request

import pytest

from mockbitcoind.genesis import Network
from mockbitcoind.handle import Builder, Handle, builder, spawn
from mockbitcoind.primitives import COIN_VALUE, OutPoint
from mockbitcoind.state import TransactionTemplate

GENESIS_TXID = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"


def _post(handle, body):
    request = urllib.request.Request(
        handle.url(),
        data=json.dumps(body).encode(),
        headers={"Content-Type": "application/json"},
    )
    with urllib.request.urlopen(request, timeout=5) as response:
        return json.loads(response.read())


def _call(handle, method, *params):
    return _post(handle, {"jsonrpc": "2.0", "id": 1, "method": method, "params": list(params)})


@pytest.fixture
def node():
    handle = spawn()
    yield handle
    handle.close()


def test_block_count_over_http(node):
    assert _call(node, "getblockcount")["result"] == 0
    node.mine_blocks(2)
    assert _call(node, "getblockcount")["result"] == 2


def test_url_uses_port(node):
    assert node.url() == f"http://127.0.0.1:{node.port}"


def test_create_and_load_wallet(node):
    assert "ord" not in node.wallets()
    _call(node, "createwallet", "ord")
    assert "ord" in node.wallets()
    assert node.loaded_wallets() == set()
    reply = _call(node, "loadwallet", "ord")
    assert reply["result"]["name"] == "ord"
    assert node.loaded_wallets() == {"ord"}


def test_missing_block_is_error(node):
    reply = _call(node, "getblockhash", 5)
    assert reply["error"]["code"] == -8


def test_unknown_method(node):
    reply = _call(node, "nosuchmethod")
    assert reply["error"]["code"] == -32601


def test_batch_request(node):
    replies = _post(
        node,
        [
            {"jsonrpc": "2.0", "id": 1, "method": "getblockcount", "params": []},
            {"jsonrpc": "2.0", "id": 2, "method": "listwallets", "params": []},
        ],
    )
    assert [reply["id"] for reply in replies] == [1, 2]
    assert replies[0]["result"] == 0
    assert replies[1]["result"] == []


def test_network_names():
    assert Builder().network(Network.BITCOIN)._network is Network.BITCOIN
    with builder().network(Network.SIGNET).build() as handle:
        assert handle.network() == "signet"
    with spawn() as handle:
        assert handle.network() == "mainnet"


def test_version_reported():
    with builder().version(230000).build() as handle:
        assert _call(handle, "getnetworkinfo")["result"]["version"] == 230000


def test_builder_is_not_mutated():
    base = builder()
    changed = base.version(1).fail_lock_unspent(True)
    assert base._version == 240000
    assert base._fail_lock_unspent is False
    assert changed._version == 1
    assert changed._fail_lock_unspent is True


def test_fail_lock_unspent():
    with builder().fail_lock_unspent(True).build() as handle:
        block = handle.mine_blocks(1)[0]
        txid = block.txdata[0].txid()
        reply = _call(handle, "lockunspent", False, [{"txid": txid, "vout": 0}])
        assert reply["result"] is False


def test_lock_shows_in_list_lock_unspent(node):
    block = node.mine_blocks(1)[0]
    outpoint = OutPoint(block.txdata[0].txid(), 0)
    node.lock(outpoint)
    reply = _call(node, "listlockunspent")
    assert reply["result"] == [{"txid": outpoint.txid, "vout": 0}]


def test_genesis_transaction(node):
    assert node.tx(0, 0).txid() == GENESIS_TXID


def test_utxo_amount(node):
    block = node.mine_blocks(1)[0]
    outpoint = OutPoint(block.txdata[0].txid(), 0)
    assert node.get_utxo_amount(outpoint) == 50 * COIN_VALUE
    assert node.get_utxo_amount(OutPoint.null()) is None


def test_mine_with_subsidy(node):
    blocks = node.mine_blocks_with_subsidy(1, 1_000_000)
    assert blocks[0].txdata[0].output[0].value == 1_000_000


def test_broadcast_tx_enters_mempool(node):
    node.mine_blocks(1)
    txid = node.broadcast_tx(TransactionTemplate(inputs=[(1, 0, 0)], fee=0))
    assert [tx.txid() for tx in node.mempool()] == [txid]
    node.mine_blocks(1)
    assert node.mempool() == []


def test_invalidate_tip(node):
    block = node.mine_blocks(1)[0]
    assert node.invalidate_tip() == block.block_hash()
    assert _call(node, "getblockcount")["result"] == 0


def test_descriptors(node):
    node.import_descriptor("tr(foo)")
    assert node.descriptors() == ["tr(foo)"]
    reply = _call(node, "listdescriptors")
    assert [d["desc"] for d in reply["result"]["descriptors"]] == ["tr(foo)"]


def test_sent_records_send_to_address(node):
    address = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
    reply = _call(node, "sendtoaddress", address, 1.0)
    assert reply["result"] == "0" * 64
    sent = node.sent()
    assert len(sent) == 1
    assert sent[0].address == address
    assert sent[0].amount == 1.0
    assert sent[0].locked == []


def test_parse_error(node):
    request = urllib.request.Request(node.url(), data=b"{not json")
    with urllib.request.urlopen(request, timeout=5) as response:
        reply = json.loads(response.read())
    assert reply["error"]["code"] == -32700


def test_close_stops_server():
    handle = spawn()
    url = handle.url()
    handle.close()
    handle.close()
    with pytest.raises(urllib.error.URLError):
        urllib.request.urlopen(url, data=b"{}", timeout=1)


def test_context_manager_returns_handle():
    with spawn() as handle:
        assert isinstance(handle, Handle)
        assert _call(handle, "getblockcount")["result"] == 0