"""Defensive validation of remote calls and total token-name resolution."""

from poolbatch.validation.names import placeholder_name, resolve_name, resolve_names
from poolbatch.validation.validator import (
    DefensiveValidator,
    ResourceBudget,
    WordRead,
    decode_fixed_width,
    normalize_address,
    validate_decimals,
)

__all__ = [
    "DefensiveValidator",
    "ResourceBudget",
    "WordRead",
    "decode_fixed_width",
    "normalize_address",
    "placeholder_name",
    "resolve_name",
    "resolve_names",
    "validate_decimals",
]
