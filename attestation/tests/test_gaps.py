"""
Tests for the ordered-interval gap scan.
"""

import pytest

from attestation.core.gaps import contiguous, find_gaps, normalize_bounds


def test_contiguous_intervals_have_no_gaps():
    assert find_gaps([(0, 99), (100, 199), (200, 299)]) == []


def test_interior_gap():
    assert find_gaps([(0, 99), (200, 299)]) == [(100, 199)]


def test_boundary_gaps_against_explicit_bounds():
    intervals = [(0, 99), (200, 299)]

    assert find_gaps(intervals, lower=0, upper=350) == [(100, 199), (300, 350)]
    assert find_gaps([(100, 199)], lower=0, upper=199) == [(0, 99)]


def test_unbounded_side_yields_no_boundary_gap():
    assert find_gaps([(100, 199)], lower=None, upper=500) == [(200, 500)]
    assert find_gaps([(100, 199)], lower=0, upper=None) == [(0, 99)]


def test_degenerate_epoch_intervals():
    """Distinct epochs scanned as (e, e) find missing epochs."""
    epochs = [1, 2, 3, 7, 8, 12]

    assert find_gaps((e, e) for e in epochs) == [(4, 6), (9, 11)]


def test_empty_input():
    assert find_gaps([]) == []
    assert find_gaps([], lower=5) == []
    assert find_gaps([], lower=5, upper=9) == [(5, 9)]


def test_overlapping_intervals_do_not_invert():
    assert find_gaps([(0, 150), (100, 199), (300, 399)]) == [(200, 299)]


def test_window_clips_outside_intervals():
    intervals = [(0, 99), (200, 299), (400, 499)]

    assert find_gaps(intervals, lower=250, upper=450) == [(300, 399)]


def test_custom_adjacency_predicate():
    """A predicate tolerating one missing epoch hides single-epoch holes."""

    def tolerant(reach, next_start):
        return next_start <= reach + 2

    intervals = [(0, 9), (11, 19), (25, 30)]

    assert find_gaps(intervals, adjacent=tolerant) == [(20, 24)]
    assert find_gaps(intervals, adjacent=contiguous) == [(10, 10), (20, 24)]


def test_unsorted_input_rejected():
    with pytest.raises(ValueError):
        find_gaps([(200, 299), (0, 99)])


def test_normalize_bounds():
    assert normalize_bounds(-1, -1) == (None, None)
    assert normalize_bounds(0, -1) == (0, None)
    assert normalize_bounds(-1, 10) == (None, 10)
    assert normalize_bounds(3, 10) == (3, 10)
    with pytest.raises(ValueError):
        normalize_bounds(10, 3)
