"""In-memory mock of a Bitcoin Core JSON-RPC node for tests, with chain primitives and sample data."""

__version__ = "0.1.0"
__all__ = ["genesis", "handle", "pages", "primitives", "rpc", "samples", "state", "taproot"]