"""Symmetric tick window around the current tick, mapped to bitmap words."""

from __future__ import annotations

from dataclasses import dataclass

from poolbatch.constants import MAX_TICK, MIN_TICK
from poolbatch.core.errors import ValueOutOfRange


@dataclass(frozen=True, slots=True)
class TickWindow:
    """Inclusive tick and word bounds of one scan."""

    min_tick: int
    max_tick: int
    min_word: int
    max_word: int

    @property
    def word_count(self) -> int:
        return self.max_word - self.min_word + 1

    def words(self) -> range:
        """Word positions in ascending order."""
        return range(self.min_word, self.max_word + 1)


def word_position(tick: int) -> int:
    """Bitmap word holding `tick`; `>>` floors, so -1 maps to word -1."""
    return tick >> 8


def half_width_for(ticks_to_fetch: int) -> int:
    """Half-width (in multiples of tick spacing) covering `ticks_to_fetch` ticks."""
    return max(1, ticks_to_fetch // 2)


def tick_window(current_tick: int, tick_spacing: int, half_width: int) -> TickWindow:
    """Window of `half_width * tick_spacing` ticks on each side of `current_tick`."""
    if tick_spacing <= 0:
        raise ValueOutOfRange(f"tick spacing {tick_spacing}")
    if not MIN_TICK <= current_tick <= MAX_TICK:
        raise ValueOutOfRange(f"tick {current_tick}")
    if half_width <= 0:
        raise ValueError(f"half_width must be positive, got {half_width}")

    tick_range = half_width * tick_spacing
    min_tick = max(MIN_TICK, current_tick - tick_range)
    max_tick = min(MAX_TICK, current_tick + tick_range)
    return TickWindow(
        min_tick=min_tick,
        max_tick=max_tick,
        min_word=word_position(min_tick),
        max_word=word_position(max_tick),
    )
