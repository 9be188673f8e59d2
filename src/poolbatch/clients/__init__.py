"""Remote read clients."""

from poolbatch.clients.rpc import RPC

__all__ = ["RPC"]
