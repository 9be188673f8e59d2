import pytest

from poolbatch.adapters.tick_window import half_width_for, tick_window, word_position
from poolbatch.constants import MAX_TICK, MIN_TICK
from poolbatch.core.errors import ValueOutOfRange


def test_window_around_current_tick() -> None:
    w = tick_window(current_tick=100, tick_spacing=10, half_width=3)
    assert (w.min_tick, w.max_tick) == (70, 130)
    assert (w.min_word, w.max_word) == (0, 0)
    assert w.word_count == 1 == len(w.words())


def test_word_position_floors_negative_ticks() -> None:
    assert word_position(-1) == -1
    assert word_position(-256) == -1
    assert word_position(-257) == -2
    assert word_position(255) == 0
    assert word_position(256) == 1


def test_window_crossing_zero() -> None:
    w = tick_window(current_tick=0, tick_spacing=60, half_width=10)
    assert (w.min_tick, w.max_tick) == (-600, 600)
    assert list(w.words()) == [-3, -2, -1, 0, 1, 2]
    assert w.word_count == w.max_word - w.min_word + 1


def test_window_is_clamped_to_tick_bounds() -> None:
    w = tick_window(current_tick=MAX_TICK - 5, tick_spacing=200, half_width=3)
    assert w.max_tick == MAX_TICK
    w = tick_window(current_tick=MIN_TICK + 5, tick_spacing=200, half_width=3)
    assert w.min_tick == MIN_TICK


def test_words_are_strictly_ascending() -> None:
    words = list(tick_window(current_tick=-12_345, tick_spacing=1, half_width=1_000).words())
    assert words == sorted(set(words))


@pytest.mark.parametrize("spacing", [0, -10])
def test_non_positive_spacing_is_skipped(spacing: int) -> None:
    with pytest.raises(ValueOutOfRange):
        tick_window(current_tick=0, tick_spacing=spacing, half_width=3)


def test_tick_out_of_bounds() -> None:
    with pytest.raises(ValueOutOfRange):
        tick_window(current_tick=MAX_TICK + 1, tick_spacing=1, half_width=3)


@pytest.mark.parametrize(("ticks", "expected"), [(10, 5), (7, 3), (1, 1), (0, 1)])
def test_half_width_for(ticks: int, expected: int) -> None:
    assert half_width_for(ticks) == expected
