"""Half-open time interval arithmetic shared by the resolver, suggester and conflict checks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional


@dataclass(frozen=True, order=True)
class Interval:
    """A half-open range [start, end) of UTC instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"interval end {self.end} must be after start {self.start}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and a.end > b.start


def intersect(a: Interval, b: Interval) -> Optional[Interval]:
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if start < end:
        return Interval(start, end)
    return None


def contains(outer: Interval, inner: Interval) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def pad(interval: Interval, minutes: int) -> Interval:
    if minutes <= 0:
        return interval
    delta = timedelta(minutes=minutes)
    return Interval(interval.start - delta, interval.end + delta)


def merge(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort and coalesce overlapping or touching intervals."""
    merged: List[Interval] = []
    for current in sorted(intervals):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def subtract(base: Interval, cuts: Iterable[Interval]) -> List[Interval]:
    """
    Remove every cut from base.

    The pieces are returned sorted by start; cuts that do not touch base are ignored,
    and a cut covering base entirely yields an empty list.
    """
    pieces: List[Interval] = []
    cursor = base.start
    for cut in merge(c for c in cuts if overlaps(c, base)):
        if cut.start > cursor:
            pieces.append(Interval(cursor, cut.start))
        cursor = max(cursor, cut.end)
        if cursor >= base.end:
            break
    if cursor < base.end:
        pieces.append(Interval(cursor, base.end))
    return pieces


def subtract_all(windows: Iterable[Interval], cuts: Iterable[Interval]) -> List[Interval]:
    cut_list = list(cuts)
    result: List[Interval] = []
    for window in merge(windows):
        result.extend(subtract(window, cut_list))
    return result


def intersect_all(a_list: Iterable[Interval], b_list: Iterable[Interval]) -> List[Interval]:
    """Pairwise intersection of two interval sets (two-pointer sweep over merged inputs)."""
    a_sorted = merge(a_list)
    b_sorted = merge(b_list)
    result: List[Interval] = []
    i = j = 0
    while i < len(a_sorted) and j < len(b_sorted):
        hit = intersect(a_sorted[i], b_sorted[j])
        if hit is not None:
            result.append(hit)
        if a_sorted[i].end <= b_sorted[j].end:
            i += 1
        else:
            j += 1
    return result


def clip(intervals: Iterable[Interval], bounds: Interval) -> List[Interval]:
    result: List[Interval] = []
    for interval in intervals:
        hit = intersect(interval, bounds)
        if hit is not None:
            result.append(hit)
    return result
