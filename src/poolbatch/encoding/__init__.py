"""Compact binary wire format for batch results."""

from poolbatch.encoding.packer import PackedBatch, pack_batch, unpack_batch

__all__ = ["PackedBatch", "pack_batch", "unpack_batch"]
