# tradepro/indicators/moving_averages.py
"""SMA / EMA / WMA on close prices (EMA also on arbitrary scalar inputs)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from tradepro.data.models import Point
from .base import (
    Indicator, IndicatorKind, Placement, WindowedIndicator, put_last, register, to_points,
)
from .windows import mean, rolling_mean, rolling_weighted_mean


# ----------------- EMA recurrence -----------------
@dataclass
class EmaState:
    """
    Running EMA over a scalar stream. Seeded with the mean of the first
    `period` inputs, then ema = (x - ema_prev) * 2/(period+1) + ema_prev.
    `prev` keeps the value before the latest input so the latest input can
    be amended (in-progress bar) without replaying history.
    """
    period: int
    count: int = 0
    value: Optional[float] = None
    prev: Optional[float] = None
    seed: List[float] = field(default_factory=list)

    @property
    def k(self) -> float:
        return 2.0 / (self.period + 1.0)

    @property
    def ready(self) -> bool:
        return self.value is not None

    def push(self, x: float) -> Optional[float]:
        self.count += 1
        if self.count <= self.period:
            self.seed.append(x)
            if self.count == self.period:
                self.value = mean(self.seed)
            return self.value
        self.prev = self.value
        self.value = (x - self.prev) * self.k + self.prev
        return self.value

    def amend(self, x: float) -> Optional[float]:
        """Replace the latest input."""
        if self.count == 0:
            return self.push(x)
        if self.count <= self.period:
            self.seed[-1] = x
            if self.count == self.period:
                self.value = mean(self.seed)
            return self.value
        self.value = (x - self.prev) * self.k + self.prev
        return self.value


def ema_with_state(values: Sequence[float], period: int) -> Tuple[List[float], EmaState]:
    state = EmaState(period)
    out: List[float] = []
    for x in values:
        v = state.push(x)
        if v is not None:
            out.append(v)
    return out, state


# ----------------- series -----------------
def sma(values: Sequence[float], period: int) -> List[float]:
    return rolling_mean(values, period)


def ema(values: Sequence[float], period: int) -> List[float]:
    return ema_with_state(values, period)[0]


def wma(values: Sequence[float], period: int) -> List[float]:
    return rolling_weighted_mean(values, period)


# ----------------- indicators -----------------
@register
class SMA(WindowedIndicator):
    kind = IndicatorKind.SMA
    name = "SMA"
    placement = Placement.OVERLAY
    defaults = {"period": 20}

    def compute(self, series, params):
        p = params["period"]
        return {"value": to_points(series.times(), sma(series.closes(), p), p - 1)}, None


@register
class WMA(WindowedIndicator):
    kind = IndicatorKind.WMA
    name = "WMA"
    placement = Placement.OVERLAY
    defaults = {"period": 20}

    def compute(self, series, params):
        p = params["period"]
        return {"value": to_points(series.times(), wma(series.closes(), p), p - 1)}, None


@register
class EMA(Indicator):
    kind = IndicatorKind.EMA
    name = "EMA"
    placement = Placement.OVERLAY
    defaults = {"period": 20}

    def compute(self, series, params):
        p = params["period"]
        values, state = ema_with_state(series.closes(), p)
        return {"value": to_points(series.times(), values, p - 1)}, state

    def in_sync(self, series, state, replaced):
        return state is not None and state.count == len(series) - (0 if replaced else 1)

    def update(self, series, params, state, outputs, replaced):
        bar = series.last
        v = state.amend(bar.close) if replaced else state.push(bar.close)
        if v is not None:
            put_last(outputs["value"], Point(bar.time, v))
        return state
