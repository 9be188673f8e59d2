"""Storage components for exporting batch results.

This package provides:
- batch_to_table: index-aligned Arrow table with string-safe big integers
- write_parquet: atomic Parquet writer
"""

from poolbatch.storage.export import batch_to_table, write_parquet

__all__ = [
    "batch_to_table",
    "write_parquet",
]
