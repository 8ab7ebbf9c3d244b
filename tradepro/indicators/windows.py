# tradepro/indicators/windows.py
"""
Fixed-window reducers shared by the indicator families.

A reducer maps N values and a period P to max(0, N - P + 1) values, one per
full window, the first one ending at index P-1. Too few values give an empty
list, never an error.

Every window is reduced from scratch with the same kernel, in the same
order, whether it comes from a full pass or from a streaming update that
re-reduces only the newest window. Both paths produce bit-identical values, and
sums such as RSI's average loss hit exactly 0.0 when they should.
"""
from __future__ import annotations

import math
from typing import Callable, Iterator, List, Sequence

Kernel = Callable[[Sequence[float]], float]


# ----------------- kernels -----------------
def total(window: Sequence[float]) -> float:
    return sum(window, 0.0)


def mean(window: Sequence[float]) -> float:
    return sum(window, 0.0) / len(window)


def weighted_mean(window: Sequence[float]) -> float:
    """Linear weights: oldest value 1, newest value len(window)."""
    n = len(window)
    num = 0.0
    for j, v in enumerate(window):
        num += v * (j + 1)
    return num / (n * (n + 1) / 2.0)


def lowest(window: Sequence[float]) -> float:
    return min(window)


def highest(window: Sequence[float]) -> float:
    return max(window)


def pvariance(window: Sequence[float]) -> float:
    """Population variance (divides by the window length, not length-1)."""
    m = mean(window)
    acc = 0.0
    for v in window:
        d = v - m
        acc += d * d
    return acc / len(window)


def pstdev(window: Sequence[float]) -> float:
    var = pvariance(window)
    # NaN fails the comparison and passes through
    return math.sqrt(var) if var >= 0.0 else var


# ----------------- sliding -----------------
def windows(values: Sequence[float], period: int) -> Iterator[Sequence[float]]:
    for end in range(period, len(values) + 1):
        yield values[end - period:end]


def rolling(values: Sequence[float], period: int, kernel: Kernel) -> List[float]:
    if period <= 0 or len(values) < period:
        return []
    return [kernel(w) for w in windows(values, period)]


def rolling_sum(values: Sequence[float], period: int) -> List[float]:
    return rolling(values, period, total)


def rolling_mean(values: Sequence[float], period: int) -> List[float]:
    return rolling(values, period, mean)


def rolling_weighted_mean(values: Sequence[float], period: int) -> List[float]:
    return rolling(values, period, weighted_mean)


def rolling_min(values: Sequence[float], period: int) -> List[float]:
    return rolling(values, period, lowest)


def rolling_max(values: Sequence[float], period: int) -> List[float]:
    return rolling(values, period, highest)


def rolling_pvariance(values: Sequence[float], period: int) -> List[float]:
    return rolling(values, period, pvariance)


# ----------------- changes -----------------
def diffs(values: Sequence[float]) -> List[float]:
    """values[i] - values[i-1] for i >= 1."""
    return [values[i] - values[i - 1] for i in range(1, len(values))]
