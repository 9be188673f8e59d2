from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

from poolbatch.core.models import PoolRecord
from poolbatch.validation.names import resolve_names
from poolbatch.validation.validator import DefensiveValidator


class PoolAdapter:
    """One protocol family: which calls to make and how to build its record.

    `fetch` runs the entry's calls in order and returns a complete record.
    Any failed step raises an `EntrySkip`, which the batch driver turns into a
    sentinel; adapters never catch those themselves unless the field is
    optional and has a well-defined default.
    """

    tag: ClassVar[str]
    record_type: ClassVar[type[PoolRecord]]

    resolve_names: bool = True

    async def fetch(
        self,
        v: DefensiveValidator,
        pool: str,
        *,
        current_tick: int | None = None,
    ) -> PoolRecord:
        raise NotImplementedError

    async def token_decimals(self, v: DefensiveValidator, tokens: Sequence[str]) -> tuple[int, ...]:
        """Existence + decimals check for every token; decimals share one round trip."""
        return await v.tokens_decimals(tokens)

    async def token_names(self, v: DefensiveValidator, tokens: Sequence[str]) -> tuple[str, ...]:
        """Display names, or empty strings when name resolution is off."""
        if not self.resolve_names:
            return tuple("" for _ in tokens)
        return await resolve_names(v, tokens)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.tag!r})"
