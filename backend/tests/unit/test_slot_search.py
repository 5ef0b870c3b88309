from datetime import datetime, timedelta, timezone

import pytest

from app.domain.intervals import Interval, contains
from app.domain.slot_search import (
    BacktrackingSearch,
    GreedySearch,
    SlotConstraints,
    alignment_rank,
    get_strategy,
)

BASE = datetime(2030, 1, 7, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0) -> datetime:
    return BASE + timedelta(hours=hour, minutes=minute)


def constraints(**overrides: object) -> SlotConstraints:
    values: dict = dict(
        duration_minutes=60,
        step_minutes=15,
        buffer_minutes=0,
        max_suggestions=3,
        earliest_start=BASE,
    )
    values.update(overrides)
    return SlotConstraints(**values)


def starts(result: list[Interval]) -> list[datetime]:
    return [s.start for s in result]


def test_greedy_returns_earliest_first() -> None:
    window = Interval(at(10), at(12))
    result = GreedySearch().search([window], constraints())
    assert starts(result) == [at(10), at(10, 15), at(10, 30)]
    assert all(s.duration == timedelta(minutes=60) for s in result)


def test_greedy_moves_to_next_window_when_exhausted() -> None:
    windows = [Interval(at(14), at(15)), Interval(at(10), at(11, 15))]
    result = GreedySearch().search(windows, constraints(max_suggestions=5))
    assert starts(result) == [at(10), at(10, 15), at(14)]


def test_buffer_padding_fits_inside_window() -> None:
    window = Interval(at(10), at(12))
    c = constraints(buffer_minutes=15, step_minutes=30, max_suggestions=10)
    result = GreedySearch().search([window], c)
    assert starts(result) == [at(10, 15), at(10, 45)]
    for slot in result:
        padded = Interval(slot.start - c.buffer, slot.end + c.buffer)
        assert contains(window, padded)


def test_earliest_start_is_respected() -> None:
    window = Interval(at(9), at(12))
    result = GreedySearch().search([window], constraints(earliest_start=at(10, 30)))
    assert starts(result)[0] == at(10, 30)


def test_window_too_short_yields_nothing() -> None:
    window = Interval(at(10), at(10, 45))
    assert GreedySearch().search([window], constraints()) == []
    assert BacktrackingSearch().search([window], constraints()) == []


def test_backtracking_prefers_aligned_starts() -> None:
    window = Interval(at(10), at(12))
    result = BacktrackingSearch().search([window], constraints())
    # 11:30 ranks before the quarter hours but does not fit and is skipped
    assert starts(result) == [at(10), at(11), at(10, 30)]


def test_backtracking_then_next_window() -> None:
    windows = [Interval(at(10), at(11)), Interval(at(13, 15), at(15))]
    result = BacktrackingSearch().search(windows, constraints(max_suggestions=4))
    assert starts(result) == [at(10), at(14), at(13, 30), at(13, 15)]


def test_alignment_rank() -> None:
    assert alignment_rank(at(9)) == 0
    assert alignment_rank(at(9, 30)) == 1
    assert alignment_rank(at(9, 45)) == 2
    assert alignment_rank(at(9, 10)) == 3


def test_zero_max_suggestions() -> None:
    window = Interval(at(10), at(12))
    assert GreedySearch().search([window], constraints(max_suggestions=0)) == []


def test_constraints_validation() -> None:
    with pytest.raises(ValueError):
        constraints(duration_minutes=0)
    with pytest.raises(ValueError):
        constraints(step_minutes=0)
    with pytest.raises(ValueError):
        constraints(buffer_minutes=-5)


def test_get_strategy() -> None:
    assert isinstance(get_strategy("GREEDY"), GreedySearch)
    assert isinstance(get_strategy("backtracking"), BacktrackingSearch)
    with pytest.raises(ValueError):
        get_strategy("random")
