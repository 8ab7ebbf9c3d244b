# tradepro/indicators/base.py
from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from tradepro.data.models import Point
from tradepro.data.series import BarSeries

Outputs = Dict[str, List[Point]]


# ----------------- errors -----------------
class IndicatorError(Exception):
    """Base class for misconfigured indicators."""


class InvalidParameter(IndicatorError, ValueError):
    pass


class UnsupportedIndicator(IndicatorError, LookupError):
    pass


# ----------------- kinds -----------------
class Placement(str, Enum):
    OVERLAY = "overlay"   # drawn on the price chart
    PANEL = "panel"       # own pane, time-synced with the price chart


class IndicatorKind(str, Enum):
    SMA = "sma"
    EMA = "ema"
    WMA = "wma"
    RSI = "rsi"
    MACD = "macd"
    STOCHASTIC = "stochastic"
    BOLLINGER_BANDS = "bb"
    ATR = "atr"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, kind: Any) -> "IndicatorKind":
        """Member, value ("bb") or name ("BollingerBands", "bollinger_bands")."""
        if isinstance(kind, cls):
            return kind
        if isinstance(kind, str):
            key = kind.strip().lower().replace("_", "").replace(" ", "")
            for k in cls:
                if key in (k.value, k.name.lower().replace("_", "")):
                    return k
        raise UnsupportedIndicator(f"unsupported indicator kind: {kind!r}")


# ----------------- params -----------------
def check_period(params: Dict[str, Any], name: str) -> int:
    v = params.get(name)
    if isinstance(v, bool) or not isinstance(v, int):
        raise InvalidParameter(f"{name} must be an integer, got {v!r}")
    if v <= 0:
        raise InvalidParameter(f"{name} must be >= 1, got {v}")
    return v


def check_positive(params: Dict[str, Any], name: str) -> float:
    v = params.get(name)
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise InvalidParameter(f"{name} must be a number, got {v!r}")
    if not math.isfinite(v) or v <= 0:
        raise InvalidParameter(f"{name} must be a finite number > 0, got {v}")
    return float(v)


# ----------------- points -----------------
def to_points(times: Sequence[int], values: Sequence[float], start: int) -> List[Point]:
    """Pair values with times[start:], i.e. each value with the bar closing its window."""
    return [Point(t, v) for t, v in zip(times[start:], values)]


def put_last(points: List[Point], point: Point) -> None:
    """Replace the trailing point if it has the same time, otherwise append."""
    if points and points[-1].time == point.time:
        points[-1] = point
    else:
        points.append(point)


def align(left: Iterable[Point], right: Iterable[Point]) -> Iterator[Tuple[int, float, float]]:
    """Join two point sequences on time, in the order of `left`."""
    by_time = {p.time: p.value for p in right}
    for p in left:
        if p.time in by_time:
            yield p.time, p.value, by_time[p.time]


# ----------------- contract -----------------
class Indicator:
    """
    One indicator kind. Instances are stateless; the per-instance recurrence
    state returned by compute()/update() is owned by the registry entry.
    """
    kind: IndicatorKind
    name: str = ""
    placement: Placement = Placement.PANEL
    channels: Tuple[str, ...] = ("value",)
    defaults: Dict[str, Any] = {}
    period_params: Tuple[str, ...] = ("period",)
    incremental: bool = True

    def validate(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = dict(self.defaults)
        for key, value in (params or {}).items():
            if key not in merged:
                raise InvalidParameter(f"{self.name}: unknown parameter {key!r}")
            merged[key] = value
        for p in self.period_params:
            check_period(merged, p)
        return merged

    def display_name(self, params: Dict[str, Any]) -> str:
        return self.name

    def empty(self) -> Outputs:
        return {ch: [] for ch in self.channels}

    def compute(self, series: BarSeries, params: Dict[str, Any]) -> Tuple[Outputs, Any]:
        raise NotImplementedError

    def in_sync(self, series: BarSeries, state: Any, replaced: bool) -> bool:
        return True

    def update(self, series: BarSeries, params: Dict[str, Any], state: Any,
               outputs: Outputs, replaced: bool) -> Any:
        """Default: full recompute, O(N) per tick."""
        fresh, state = self.compute(series, params)
        for ch in self.channels:
            outputs[ch] = fresh[ch]
        return state


class WindowedIndicator(Indicator):
    """
    Indicators whose last value depends only on the last `lookback` bars.
    A streaming update re-runs compute() on exactly that tail, so the new
    point comes out of the same kernels as a full pass.
    """

    def lookback(self, params: Dict[str, Any]) -> int:
        return params["period"]

    def update(self, series, params, state, outputs, replaced):
        n = self.lookback(params)
        if len(series) < n:
            return state
        fresh, _ = self.compute(series.tail_series(n), params)
        for ch in self.channels:
            for p in fresh[ch][-1:]:
                put_last(outputs[ch], p)
        return state


# ----------------- kind table -----------------
INDICATORS: Dict[IndicatorKind, Indicator] = {}


def register(cls):
    INDICATORS[cls.kind] = cls()
    return cls


def get_indicator(kind: Any) -> Indicator:
    k = IndicatorKind.parse(kind)
    try:
        return INDICATORS[k]
    except KeyError:
        raise UnsupportedIndicator(f"no implementation registered for {k.value!r}") from None
