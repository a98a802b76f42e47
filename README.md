# mockbitcoind

mockbitcoind is a stand-in for a Bitcoin Core node that you use in tests. It
runs a subset of the Bitcoin Core JSON-RPC interface over HTTP on
`127.0.0.1`, using a free port. The chain, the mempool and the wallet state
are all kept in memory. A test can therefore mine blocks, broadcast
transactions and look at the wallet directly. The package uses only the
standard library.

## Installing

```
pip install mockbitcoind
```

## Starting a node

```python
from mockbitcoind.handle import spawn, builder
from mockbitcoind.genesis import Network

with spawn() as node:
    node.mine_blocks(1)
    print(node.url())        # http://127.0.0.1:<port>
    print(node.network())    # "mainnet"

signet = builder().network(Network.SIGNET).version(230000).build()
try:
    ...
finally:
    signet.close()
```

By default `builder()` produces a mainnet node that reports version `240000`
from `getnetworkinfo`. `build()` starts the server in a background thread and
waits until it answers.

`Builder.fail_lock_unspent(True)` makes `lockunspent` return `false`. Use it
to test how a client handles a failed lock.

`Handle.close()` stops the server. Using the handle as a context manager does
the same on exit. Calling `close()` more than once has no effect.

## Driving the chain from a test

A `Handle` gives you direct access to the node's state:

- `mine_blocks(n)` mines `n` blocks with a subsidy of 50 BTC each.
  `mine_blocks_with_subsidy(n, subsidy)` lets you choose the subsidy.
  - Each block starts with a coinbase paying the subsidy plus the fees of the
    mempool transactions.
  - The mempool transactions follow the coinbase, and the mempool is then
    emptied.
- `broadcast_tx(template)` builds a transaction from a
  `mockbitcoind.state.TransactionTemplate`, puts it in the mempool and returns
  its txid.
  - `inputs` holds `(block height, tx index, output index)` triples.
  - The input value minus `fee` must split evenly across `outputs` outputs.
    Otherwise `ValueError` is raised.
- `invalidate_tip()` removes the newest block and returns its hash. It does
  not roll back UTXOs or known transactions.
- These methods let you look at the chain and its outputs:
  - `tx(height, index)` returns a transaction from a block.
  - `mempool()` returns the transactions in the mempool.
  - `get_utxo_amount(outpoint)` returns the value of an unspent output in
    satoshis, or `None`.
- These methods let you read and change the wallet state:
  - `wallets()`, `loaded_wallets()` and `descriptors()` read it.
  - `import_descriptor(desc)` adds a descriptor.
  - `sent()` returns the `Sent` records of `sendtoaddress` calls.
  - `lock(outpoint)` locks an output.

## Supported RPC methods

The server supports these methods:

`getblockchaininfo`, `getnetworkinfo`, `getbalances`, `getblockhash`,
`getblockheader`, `getblock`, `getblockcount`, `getwalletinfo`,
`createrawtransaction`, `createwallet`, `signrawtransactionwithwallet`,
`sendrawtransaction`, `sendtoaddress`, `gettransaction`, `getrawtransaction`,
`listunspent`, `listlockunspent`, `getrawchangeaddress`, `getdescriptorinfo`,
`importdescriptors`, `getnewaddress`, `listtransactions`, `lockunspent`,
`listdescriptors`, `loadwallet`, `listwallets`.

Amounts in requests and replies are in BTC. Many optional parameters must be
left null, because any other value is answered with an error. Some behaviour
is deliberately simplified:

- Signing sets a 64-byte zero witness on every input.
- `sendtoaddress` only records the call and returns an all-zero txid.
- `getnewaddress` and `getrawchangeaddress` return a random pay-to-taproot
  address for the node's network.

You can also call the methods in-process, without HTTP. Build a
`mockbitcoind.rpc.Server` around a `mockbitcoind.state.State` and call
`Server.dispatch(method, params)`. Params may be a list or a mapping. Failures
raise `mockbitcoind.rpc.RpcError`, which carries a JSON-RPC error code.

## Other modules

- **`mockbitcoind.primitives`** covers transactions, blocks and scripts. It
  provides `OutPoint`, `TxIn`, `TxOut`, `Transaction`, `BlockHeader` and
  `Block` with their consensus encoding, along with `double_sha256` and
  `build_script`.
- **`mockbitcoind.genesis`** covers networks. It provides the `Network` enum
  and `genesis_block(network)`.
- **`mockbitcoind.taproot`** covers address encoding. It provides
  `segwit_address` for bech32 and bech32m encoding, `p2tr_address` and
  `random_p2tr_address`.
- **`mockbitcoind.samples`** holds fixed sample values for tests: block
  hashes, txids, outpoints, satpoints, inscription ids and addresses.
- **`mockbitcoind.pages`** holds small view models for block explorer pages:
  - `Iframe` renders an inscription preview frame, optionally as a linked
    thumbnail.
  - `ClockSvg.for_height` computes the hand angles of the block clock.
  - `HomePage.from_blocks` collects the latest blocks and inscriptions.

## What it does not do

- It provides no command-line program.
- It persists nothing to disk. All state is gone when the process exits.
- It does not validate scripts, signatures or proof of work.
- It does not serve explorer pages. `mockbitcoind.pages` only holds the data
  and fragments described above, not full HTML or SVG documents.