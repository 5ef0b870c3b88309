"""
Slot search strategies over mutually-free windows.

Both strategies share the candidate grid `t0 + k*step` per window, where
`t0 = max(window.start + buffer, earliest_start)`, and the same postcondition:
every candidate [t, t+duration) has t >= earliest_start and its padded span
[t-buffer, t+duration+buffer) lies inside a single window. They differ only in
the order the grid is visited.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Sequence, Type

from app.domain.intervals import Interval, contains


@dataclass(frozen=True)
class SlotConstraints:
    duration_minutes: int
    step_minutes: int
    buffer_minutes: int
    max_suggestions: int
    earliest_start: datetime

    def __post_init__(self) -> None:
        if self.duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")
        if self.step_minutes <= 0:
            raise ValueError("step_minutes must be positive")
        if self.buffer_minutes < 0:
            raise ValueError("buffer_minutes must not be negative")
        if self.max_suggestions < 0:
            raise ValueError("max_suggestions must not be negative")

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)

    @property
    def step(self) -> timedelta:
        return timedelta(minutes=self.step_minutes)

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_minutes)


def padded_fit(window: Interval, start: datetime, constraints: SlotConstraints) -> bool:
    """True when the buffered candidate starting at `start` fits inside window."""
    if start < constraints.earliest_start:
        return False
    padded = Interval(
        start - constraints.buffer,
        start + constraints.duration + constraints.buffer,
    )
    return contains(window, padded)


def grid_points(window: Interval, constraints: SlotConstraints) -> Iterator[datetime]:
    """Every grid start inside the window, whether or not the candidate fits."""
    t = max(window.start + constraints.buffer, constraints.earliest_start)
    while t < window.end:
        yield t
        t += constraints.step


class SlotSearchStrategy(ABC):
    name: str = ""

    @abstractmethod
    def search(self, windows: Sequence[Interval], constraints: SlotConstraints) -> List[Interval]:
        """Return at most constraints.max_suggestions candidates."""


class GreedySearch(SlotSearchStrategy):
    """Earliest first: walk each window chronologically in step increments."""

    name = "greedy"

    def search(self, windows: Sequence[Interval], constraints: SlotConstraints) -> List[Interval]:
        results: List[Interval] = []
        if constraints.max_suggestions == 0:
            return results
        for window in sorted(windows):
            for t in grid_points(window, constraints):
                if not padded_fit(window, t, constraints):
                    # later grid points only end later; the window is exhausted
                    break
                results.append(Interval(t, t + constraints.duration))
                if len(results) >= constraints.max_suggestions:
                    return results
        return results


def alignment_rank(t: datetime) -> int:
    """0 on the hour, 1 on the half hour, 2 on a quarter hour, 3 otherwise."""
    if t.second or t.microsecond:
        return 3
    if t.minute == 0:
        return 0
    if t.minute == 30:
        return 1
    if t.minute in (15, 45):
        return 2
    return 3


class BacktrackingSearch(SlotSearchStrategy):
    """
    Preferred first: within each window, grid points are tried in alignment
    order (hour, half hour, quarter hour, other; ties by time). A point whose
    padded span does not fit is rejected and the search backtracks to the next
    preferred point of the same window before moving on to the next window.
    """

    name = "backtracking"

    def search(self, windows: Sequence[Interval], constraints: SlotConstraints) -> List[Interval]:
        results: List[Interval] = []
        if constraints.max_suggestions == 0:
            return results
        for window in sorted(windows):
            if self._explore(window, constraints, results):
                break
        return results

    def _explore(
        self, window: Interval, constraints: SlotConstraints, results: List[Interval]
    ) -> bool:
        ranked = sorted(grid_points(window, constraints), key=lambda t: (alignment_rank(t), t))
        for t in ranked:
            if not padded_fit(window, t, constraints):
                continue
            results.append(Interval(t, t + constraints.duration))
            if len(results) >= constraints.max_suggestions:
                return True
        return False


STRATEGIES: Dict[str, Type[SlotSearchStrategy]] = {
    GreedySearch.name: GreedySearch,
    BacktrackingSearch.name: BacktrackingSearch,
}


def get_strategy(algorithm: str) -> SlotSearchStrategy:
    try:
        return STRATEGIES[algorithm.lower()]()
    except KeyError:
        raise ValueError(f"unknown slot search algorithm: {algorithm}") from None
