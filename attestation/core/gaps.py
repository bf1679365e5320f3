"""
Gap detection over ordered inclusive intervals.

A single forward scan compares the furthest stop seen so far with the start
of the next interval (a "lead" window). Both the source log (one degenerate
interval per distinct epoch) and the checksum archive (one interval per
published range) are scanned with it; each caller supplies its own dataset
and decides whether explicit bounds produce boundary gaps.
"""

from typing import Callable, Iterable, List, Optional, Tuple

Interval = Tuple[int, int]

# (furthest stop seen, next start) -> True when no gap lies between them
Adjacency = Callable[[int, int], bool]

UNBOUNDED = -1


def contiguous(reach: int, next_start: int) -> bool:
    """Next interval continues (or overlaps) the run ending at reach."""
    return next_start <= reach + 1


def normalize_bounds(start: int, stop: int) -> Tuple[Optional[int], Optional[int]]:
    """
    Translate -1 sentinels into open bounds.

    Raises:
        ValueError: If both bounds are given and start > stop
    """
    lower = start if start > UNBOUNDED else None
    upper = stop if stop > UNBOUNDED else None
    if lower is not None and upper is not None and lower > upper:
        raise ValueError(f"start {start} cannot be greater than stop {stop}")
    return lower, upper


def find_gaps(
    intervals: Iterable[Interval],
    adjacent: Adjacency = contiguous,
    lower: Optional[int] = None,
    upper: Optional[int] = None,
) -> List[Interval]:
    """
    Find the inclusive gaps between ordered intervals.

    Args:
        intervals: (start, stop) pairs sorted by start
        adjacent: Predicate deciding whether two neighbours touch
        lower: Explicit lower bound; a first interval starting above it
            yields a leading gap
        upper: Explicit upper bound; a last interval stopping below it
            yields a trailing gap

    Returns:
        Gaps as (gap_start, gap_stop) in ascending order. With no interval
        inside the window the result is the whole window when both bounds
        are explicit, otherwise empty.

    Raises:
        ValueError: If intervals are not sorted by start
    """
    gaps: List[Interval] = []
    reach: Optional[int] = None
    prev_start: Optional[int] = None

    for start, stop in intervals:
        if prev_start is not None and start < prev_start:
            raise ValueError("intervals must be ordered by start")
        prev_start = start

        # Clip to the window
        if lower is not None and stop < lower:
            continue
        if upper is not None and start > upper:
            break

        if reach is None:
            if lower is not None and start > lower:
                gaps.append((lower, start - 1))
            reach = stop
            continue

        if not adjacent(reach, start):
            gaps.append((reach + 1, start - 1))
        reach = max(reach, stop)

    if reach is None:
        if lower is not None and upper is not None:
            return [(lower, upper)]
        return gaps

    if upper is not None and upper > reach:
        gaps.append((reach + 1, upper))
    return gaps
