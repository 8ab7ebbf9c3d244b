# tradepro/indicators/oscillators.py
from __future__ import annotations

from typing import List, Sequence

from .base import IndicatorKind, Placement, WindowedIndicator, register, to_points
from .windows import diffs, rolling_max, rolling_mean, rolling_min

# %K when the window has no range (high == low)
FLAT_STOCHASTIC = 50.0


# ----------------- RSI -----------------
def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100.0 - (100.0 / (1.0 + (avg_gain / avg_loss)))


def rsi(closes: Sequence[float], period: int) -> List[float]:
    """
    RSI with simple (not Wilder) averages of gains/losses over `period`
    changes. The first value belongs to bar index `period`.
    """
    changes = diffs(closes)
    gains = [max(ch, 0.0) for ch in changes]
    losses = [max(-ch, 0.0) for ch in changes]
    return [_rsi_value(g, l) for g, l in zip(rolling_mean(gains, period), rolling_mean(losses, period))]


@register
class RSI(WindowedIndicator):
    kind = IndicatorKind.RSI
    name = "RSI"
    placement = Placement.PANEL
    defaults = {"period": 14}

    def lookback(self, params):
        return params["period"] + 1

    def compute(self, series, params):
        p = params["period"]
        return {"value": to_points(series.times(), rsi(series.closes(), p), p)}, None


# ----------------- Stochastic -----------------
def stochastic(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
               period: int) -> List[float]:
    out: List[float] = []
    hh = rolling_max(highs, period)
    ll = rolling_min(lows, period)
    for i, (h, l) in enumerate(zip(hh, ll)):
        c = closes[i + period - 1]
        rng = h - l
        out.append(FLAT_STOCHASTIC if rng == 0 else (c - l) / rng * 100.0)
    return out


@register
class Stochastic(WindowedIndicator):
    kind = IndicatorKind.STOCHASTIC
    name = "Stochastic"
    placement = Placement.PANEL
    channels = ("k",)
    defaults = {"period": 14}

    def compute(self, series, params):
        p = params["period"]
        k = stochastic(series.highs(), series.lows(), series.closes(), p)
        return {"k": to_points(series.times(), k, p - 1)}, None
