"""Starting the mock node's JSON-RPC server and inspecting its state from tests."""

from __future__ import annotations

import json
import threading
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, replace
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any

from .genesis import Network
from .primitives import COIN_VALUE, Block, OutPoint, Transaction
from .rpc import INTERNAL_ERROR, RpcError, Server
from .state import Sent, State, TransactionTemplate

_PARSE_ERROR = -32700
_INVALID_REQUEST = -32600
_STARTUP_ATTEMPTS = 400
_STARTUP_DELAY = 0.025


class _RpcHttpServer(HTTPServer):
    def __init__(self, address: tuple[str, int], rpc: Server) -> None:
        super().__init__(address, _RpcRequestHandler)
        self.rpc = rpc


def _error_reply(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "error": {"code": code, "message": message},
        "id": request_id,
    }


class _RpcRequestHandler(BaseHTTPRequestHandler):
    server: _RpcHttpServer

    def log_message(self, format: str, *args: Any) -> None:
        pass

    def _send_json(self, status: int, body: Any) -> None:
        payload = json.dumps(body).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def do_GET(self) -> None:
        message = b"Used HTTP Method is not allowed. POST or OPTIONS is required\n"
        self.send_response(405)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(message)))
        self.end_headers()
        self.wfile.write(message)

    def do_POST(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length)
        try:
            request = json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            self._send_json(200, _error_reply(None, _PARSE_ERROR, "Parse error"))
            return
        if isinstance(request, list):
            if not request:
                self._send_json(200, _error_reply(None, _INVALID_REQUEST, "Invalid request"))
                return
            self._send_json(200, [self._call(item) for item in request])
        else:
            self._send_json(200, self._call(request))

    def _call(self, request: Any) -> dict[str, Any]:
        if not isinstance(request, dict) or not isinstance(request.get("method"), str):
            return _error_reply(None, _INVALID_REQUEST, "Invalid request")
        request_id = request.get("id")
        try:
            result = self.server.rpc.dispatch(request["method"], request.get("params"))
        except RpcError as error:
            return {"jsonrpc": "2.0", "error": error.to_json(), "id": request_id}
        except Exception as error:  # noqa: BLE001 - every failure becomes an RPC error
            return _error_reply(request_id, INTERNAL_ERROR, str(error))
        return {"jsonrpc": "2.0", "result": result, "id": request_id}


@dataclass(frozen=True)
class Builder:
    """Configures a mock node before it is started with :meth:`build`."""

    _fail_lock_unspent: bool = False
    _network: Network = Network.BITCOIN
    _version: int = 240000

    def fail_lock_unspent(self, fail_lock_unspent: bool) -> Builder:
        """Make ``lockunspent`` report failure."""
        return replace(self, _fail_lock_unspent=fail_lock_unspent)

    def network(self, network: Network) -> Builder:
        return replace(self, _network=Network(network))

    def version(self, version: int) -> Builder:
        """The version ``getnetworkinfo`` reports."""
        return replace(self, _version=version)

    def build(self) -> Handle:
        """Start the server on a free local port and wait until it answers."""
        state = State(self._network, self._version, self._fail_lock_unspent)
        return Handle(state)


class Handle:
    """A running mock node; close it (or use it as a context manager) to stop it."""

    def __init__(self, state: State) -> None:
        self._state = state
        self._lock = threading.RLock()
        self._server = _RpcHttpServer(("127.0.0.1", 0), Server(state, self._lock))
        self.port: int = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        self._closed = False
        self._wait_until_ready()

    def _wait_until_ready(self) -> None:
        for attempt in range(_STARTUP_ATTEMPTS + 1):
            try:
                with urllib.request.urlopen(self.url() + "/", timeout=1):
                    return
            except urllib.error.HTTPError:
                return
            except OSError as error:
                if attempt == _STARTUP_ATTEMPTS:
                    self.close()
                    raise RuntimeError(f"Server failed to start: {error}") from error
            time.sleep(_STARTUP_DELAY)

    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def wallets(self) -> set[str]:
        with self._lock:
            return set(self._state.wallets)

    def mine_blocks(self, n: int) -> list[Block]:
        return self.mine_blocks_with_subsidy(n, 50 * COIN_VALUE)

    def mine_blocks_with_subsidy(self, n: int, subsidy: int) -> list[Block]:
        with self._lock:
            return [self._state.push_block(subsidy) for _ in range(n)]

    def broadcast_tx(self, template: TransactionTemplate) -> str:
        with self._lock:
            return self._state.broadcast_tx(template)

    def invalidate_tip(self) -> str:
        with self._lock:
            return self._state.pop_block()

    def get_utxo_amount(self, outpoint: OutPoint) -> int | None:
        """The value in satoshis of an unspent output, or None."""
        with self._lock:
            return self._state.utxos.get(outpoint)

    def tx(self, bi: int, ti: int) -> Transaction:
        """Transaction ``ti`` of the block at height ``bi``."""
        with self._lock:
            return self._state.blocks[self._state.hashes[bi]].txdata[ti]

    def mempool(self) -> list[Transaction]:
        with self._lock:
            return list(self._state.mempool)

    def descriptors(self) -> list[str]:
        with self._lock:
            return list(self._state.descriptors)

    def import_descriptor(self, desc: str) -> None:
        with self._lock:
            self._state.descriptors.append(desc)

    def sent(self) -> list[Sent]:
        with self._lock:
            return list(self._state.sent)

    def lock(self, output: OutPoint) -> None:
        with self._lock:
            self._state.locked.add(output)

    def network(self) -> str:
        """The network name as given to ``--chain``."""
        with self._lock:
            network = self._state.network
        return "mainnet" if network is Network.BITCOIN else str(network)

    def loaded_wallets(self) -> set[str]:
        with self._lock:
            return set(self._state.loaded_wallets)

    def close(self) -> None:
        """Stop the server; calling it again does nothing."""
        if self._closed:
            return
        self._closed = True
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()

    def __enter__(self) -> Handle:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def builder() -> Builder:
    """A builder with the default settings: mainnet, version 240000."""
    return Builder()


def spawn() -> Handle:
    """Start a mock node with the default settings."""
    return builder().build()