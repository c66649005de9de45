"""Tests for block-average downsampling."""

from __future__ import annotations

import pytest

from vitalfuse.domains.biosignal.domain_logic.downsampling import downsample


def test_block_means():
    reduced = downsample([float(v) for v in range(100)], 10)
    assert reduced == pytest.approx([4.5, 14.5, 24.5, 34.5, 44.5, 54.5, 64.5, 74.5, 84.5, 94.5])


def test_short_series_returned_unchanged():
    values = [1.0, 2.0, 3.0]
    reduced = downsample(values, 60)
    assert reduced == values
    assert reduced is not values


def test_exact_length_returned_unchanged():
    values = [float(v) for v in range(10)]
    assert downsample(values, 10) == values


def test_last_block_absorbs_remainder():
    # 10 samples into 3 blocks of 3: [0,1,2] [3,4,5] [6,7,8,9]
    reduced = downsample([float(v) for v in range(10)], 3)
    assert reduced == pytest.approx([1.0, 4.0, 7.5])


def test_output_length():
    assert len(downsample([1.0] * 301, 60)) == 60


def test_constant_series_stays_constant():
    assert downsample([7.0] * 120, 60) == [7.0] * 60


def test_empty_series():
    assert downsample([], 60) == []


@pytest.mark.parametrize("target", [0, -5])
def test_non_positive_target_rejected(target):
    with pytest.raises(ValueError, match="positive"):
        downsample([1.0, 2.0], target)
