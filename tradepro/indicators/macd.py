# tradepro/indicators/macd.py
"""
MACD: fast EMA - slow EMA, a signal EMA over that line, and the histogram
(line - signal). Each stage is joined to the next by timestamp: the fast EMA
starts earlier than the slow one, so positions differ while times do not.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from tradepro.data.models import Point
from .base import Indicator, IndicatorKind, Outputs, Placement, align, put_last, register, to_points
from .moving_averages import EmaState, ema_with_state


@dataclass
class MacdState:
    fast: EmaState
    slow: EmaState
    signal: EmaState


def macd(times: Sequence[int], closes: Sequence[float],
         fast: int, slow: int, signal: int) -> Tuple[Outputs, MacdState]:
    fast_vals, fast_state = ema_with_state(closes, fast)
    slow_vals, slow_state = ema_with_state(closes, slow)

    line = [Point(t, f - s) for t, f, s in align(to_points(times, fast_vals, fast - 1),
                                                  to_points(times, slow_vals, slow - 1))]

    sig_vals, sig_state = ema_with_state([p.value for p in line], signal)
    sig = to_points([p.time for p in line], sig_vals, signal - 1)

    hist = [Point(t, m - s) for t, m, s in align(line, sig)]

    outputs = {"macd": line, "signal": sig, "histogram": hist}
    return outputs, MacdState(fast_state, slow_state, sig_state)


@register
class MACD(Indicator):
    kind = IndicatorKind.MACD
    name = "MACD"
    placement = Placement.PANEL
    channels = ("macd", "signal", "histogram")
    defaults = {"fast_period": 12, "slow_period": 26, "signal_period": 9}
    period_params = ("fast_period", "slow_period", "signal_period")

    def compute(self, series, params):
        return macd(series.times(), series.closes(),
                    params["fast_period"], params["slow_period"], params["signal_period"])

    def in_sync(self, series, state, replaced):
        if state is None:
            return False
        expected = len(series) - (0 if replaced else 1)
        return state.fast.count == expected and state.slow.count == expected

    def update(self, series, params, state, outputs, replaced):
        bar = series.last
        if replaced:
            f, s = state.fast.amend(bar.close), state.slow.amend(bar.close)
        else:
            f, s = state.fast.push(bar.close), state.slow.push(bar.close)
        if f is None or s is None:
            return state

        # readiness depends on counts only, so a replaced bar already had its MACD point
        m = f - s
        put_last(outputs["macd"], Point(bar.time, m))
        sv = state.signal.amend(m) if replaced else state.signal.push(m)
        if sv is not None:
            put_last(outputs["signal"], Point(bar.time, sv))
            put_last(outputs["histogram"], Point(bar.time, m - sv))
        return state
