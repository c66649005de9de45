"""Fixed-length reduction of per-second series by block averaging."""

from __future__ import annotations

import statistics
from typing import Sequence


def downsample(values: Sequence[float], target_length: int) -> list[float]:
    """Reduce ``values`` to ``target_length`` block means.

    Blocks are contiguous and ``len(values) // target_length`` long; the
    last block also absorbs the remainder. Series that are already short
    enough come back unchanged, as a new list.

    Raises:
        ValueError: ``target_length`` is not positive.
    """
    if target_length <= 0:
        raise ValueError(f"target_length must be positive, got {target_length}")

    n = len(values)
    if n <= target_length:
        return list(values)

    block = n // target_length
    reduced: list[float] = []
    for i in range(target_length):
        start = i * block
        end = n if i == target_length - 1 else start + block
        reduced.append(statistics.fmean(values[start:end]))
    return reduced
