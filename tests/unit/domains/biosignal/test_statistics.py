"""Tests for per-channel summary statistics."""

from __future__ import annotations

import pytest

from vitalfuse.domains.biosignal.domain_logic.statistics import (
    EmptyInputError,
    StatisticalSummary,
    compute_statistics,
    percentile,
)


class TestComputeStatistics:
    def test_one_to_ten(self):
        stats = compute_statistics([float(v) for v in range(1, 11)])
        assert stats.mean == 5.5
        assert stats.min == 1.0
        assert stats.max == 10.0
        assert stats.percentile25 == 3.0
        assert stats.percentile75 == 8.0

    def test_median_is_upper_middle_for_even_length(self):
        stats = compute_statistics([1.0, 2.0, 3.0, 4.0])
        assert stats.median == 3.0

    def test_median_odd_length(self):
        assert compute_statistics([5.0, 1.0, 3.0]).median == 3.0

    def test_population_std(self):
        stats = compute_statistics([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
        assert stats.std == pytest.approx(2.0)

    def test_single_value(self):
        stats = compute_statistics([42.0])
        assert stats == StatisticalSummary(42.0, 42.0, 42.0, 42.0, 0.0, 42.0, 42.0)

    def test_unsorted_input_not_modified(self):
        values = [3.0, 1.0, 2.0]
        compute_statistics(values)
        assert values == [3.0, 1.0, 2.0]

    def test_ordering_invariants(self):
        stats = compute_statistics([0.3, 9.1, 4.4, 4.4, 7.0, 1.2, 8.8])
        assert stats.min <= stats.percentile25 <= stats.median <= stats.percentile75 <= stats.max
        assert stats.min <= stats.mean <= stats.max
        assert stats.std >= 0

    def test_empty_raises(self):
        with pytest.raises(EmptyInputError):
            compute_statistics([])

    def test_empty_error_is_value_error(self):
        with pytest.raises(ValueError):
            compute_statistics([])

    def test_to_dict_keys(self):
        d = compute_statistics([1.0, 2.0]).to_dict()
        assert set(d) == {"mean", "min", "max", "median", "std", "percentile25", "percentile75"}


class TestPercentile:
    def test_nearest_rank(self):
        values = [float(v) for v in range(1, 11)]
        assert percentile(values, 0) == 1.0
        assert percentile(values, 50) == 6.0
        assert percentile(values, 90) == 10.0

    def test_hundredth_clamped_to_last(self):
        assert percentile([1.0, 2.0, 3.0], 100) == 3.0

    def test_out_of_range_p(self):
        with pytest.raises(ValueError, match="within"):
            percentile([1.0], 101)
        with pytest.raises(ValueError, match="within"):
            percentile([1.0], -1)

    def test_empty_raises(self):
        with pytest.raises(EmptyInputError):
            percentile([], 50)
