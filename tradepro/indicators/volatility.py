# tradepro/indicators/volatility.py
from __future__ import annotations

from typing import List, Sequence, Tuple

from .base import (
    IndicatorKind, Placement, WindowedIndicator, check_positive, register, to_points,
)
from .windows import pstdev, rolling, rolling_mean


# ----------------- Bollinger Bands -----------------
def bollinger_bands(closes: Sequence[float], period: int,
                    std_dev: float) -> Tuple[List[float], List[float], List[float]]:
    """(upper, middle, lower); middle is the SMA, width uses the population std."""
    middle = rolling_mean(closes, period)
    std = rolling(closes, period, pstdev)
    upper = [m + std_dev * sd for m, sd in zip(middle, std)]
    lower = [m - std_dev * sd for m, sd in zip(middle, std)]
    return upper, middle, lower


@register
class BollingerBands(WindowedIndicator):
    kind = IndicatorKind.BOLLINGER_BANDS
    name = "Bollinger Bands"
    placement = Placement.OVERLAY
    channels = ("upper", "middle", "lower")
    defaults = {"period": 20, "std_dev": 2.0}

    def validate(self, params):
        merged = super().validate(params)
        merged["std_dev"] = check_positive(merged, "std_dev")
        return merged

    def compute(self, series, params):
        p = params["period"]
        times = series.times()
        upper, middle, lower = bollinger_bands(series.closes(), p, params["std_dev"])
        return {
            "upper": to_points(times, upper, p - 1),
            "middle": to_points(times, middle, p - 1),
            "lower": to_points(times, lower, p - 1),
        }, None


# ----------------- ATR -----------------
def true_range(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float]) -> List[float]:
    """TR for bars 1..N-1 (bar 0 has no previous close)."""
    out: List[float] = []
    for i in range(1, len(closes)):
        h, l, pc = highs[i], lows[i], closes[i - 1]
        out.append(max(h - l, abs(h - pc), abs(l - pc)))
    return out


def atr(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int) -> List[float]:
    """Simple average of TR over `period` bars; the first value belongs to bar index `period`."""
    return rolling_mean(true_range(highs, lows, closes), period)


@register
class ATR(WindowedIndicator):
    kind = IndicatorKind.ATR
    name = "ATR"
    placement = Placement.PANEL
    defaults = {"period": 14}

    def lookback(self, params):
        return params["period"] + 1

    def compute(self, series, params):
        p = params["period"]
        values = atr(series.highs(), series.lows(), series.closes(), p)
        return {"value": to_points(series.times(), values, p)}, None
