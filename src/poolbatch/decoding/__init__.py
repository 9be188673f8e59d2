"""Calldata encoding and strict fixed-width return decoding.

This package provides:
- `encode_call` / `selector` for read-only call payloads
- `parse_word` / `parse_words`: range-checked parsers for static ABI words
"""

from poolbatch.decoding.calldata import encode_call, selector
from poolbatch.decoding.words import WORD, parse_word, parse_words, word_at

__all__ = [
    "WORD",
    "encode_call",
    "parse_word",
    "parse_words",
    "selector",
    "word_at",
]
