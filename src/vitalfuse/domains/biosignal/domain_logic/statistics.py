"""Summary statistics over one per-second channel.

Conventions are fixed so that stored bundles and tests agree exactly:

* median is the element at ``sorted[n // 2]``, the upper-middle element for
  even ``n``, never the average of the two middle elements
* percentiles use nearest rank ``sorted[floor(p / 100 * n)]`` clamped to the
  last index
* standard deviation is the population value (divide by ``n``)
"""

from __future__ import annotations

import math
import statistics
from dataclasses import asdict, dataclass
from typing import Sequence


class EmptyInputError(ValueError):
    """Statistics were requested for an empty series."""


@dataclass(frozen=True)
class StatisticalSummary:
    mean: float
    min: float
    max: float
    median: float
    std: float
    percentile25: float
    percentile75: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def _nearest_rank(ordered: Sequence[float], p: float) -> float:
    n = len(ordered)
    index = math.floor(p / 100.0 * n)
    return ordered[min(max(index, 0), n - 1)]


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile of ``values``.

    Raises:
        EmptyInputError: ``values`` is empty.
        ValueError: ``p`` outside [0, 100].
    """
    if not 0 <= p <= 100:
        raise ValueError(f"Percentile must be within [0, 100], got {p}")
    if not values:
        raise EmptyInputError("Cannot compute a percentile of an empty series")
    return _nearest_rank(sorted(values), p)


def compute_statistics(values: Sequence[float]) -> StatisticalSummary:
    """Compute the summary of a non-empty numeric series.

    The input is not modified; sorting happens on a copy.

    Raises:
        EmptyInputError: ``values`` is empty.
    """
    if not values:
        raise EmptyInputError("Cannot compute statistics of an empty series")

    ordered = sorted(values)
    n = len(ordered)
    return StatisticalSummary(
        mean=statistics.fmean(ordered),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        median=float(ordered[n // 2]),
        std=statistics.pstdev(ordered),
        percentile25=float(_nearest_rank(ordered, 25)),
        percentile75=float(_nearest_rank(ordered, 75)),
    )
