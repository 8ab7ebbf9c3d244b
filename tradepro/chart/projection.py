# tradepro/chart/projection.py
from __future__ import annotations

from math import isfinite
from typing import Any, Dict, List, Optional

from tradepro import config
from tradepro.data.models import Bar, Point
from tradepro.data.series import BarSeries
from tradepro.indicators.base import IndicatorKind
from tradepro.indicators.registry import IndicatorRegistry, IndicatorSummary, UpdateResult

# horizontal guide lines of the oscillator panes
REFERENCE_LEVELS = {
    IndicatorKind.RSI: [30, 70],
    IndicatorKind.STOCHASTIC: [20, 80],
}


class ChartProjector:
    """
    Turns engine output into plain JSON-ready dicts for the chart page.
    Only numbers leave the engine; the histogram sign tag and the volume
    colours are added here.
    """

    def __init__(self, max_points: Optional[int] = None,
                 hist_colors: Optional[tuple] = None, volume_colors: Optional[tuple] = None):
        self.max_points = config.MAX_PAYLOAD_POINTS if max_points is None else max_points
        self.hist_up, self.hist_down = hist_colors or (config.HIST_UP_COLOR, config.HIST_DOWN_COLOR)
        self.vol_up, self.vol_down = volume_colors or (config.VOLUME_UP_COLOR, config.VOLUME_DOWN_COLOR)

    # --------- series ---------
    def _cap(self, L: List[Any]) -> List[Any]:
        return L[-self.max_points:] if self.max_points and len(L) > self.max_points else L

    def line(self, points: List[Point]) -> List[Dict[str, Any]]:
        return [p.as_dict() for p in self._cap(points) if isfinite(p.value)]

    def hist(self, points: List[Point]) -> List[Dict[str, Any]]:
        return [{"time": p.time, "value": float(p.value),
                 "color": self.hist_up if p.value >= 0 else self.hist_down}
                for p in self._cap(points) if isfinite(p.value)]

    def channels(self, outputs: Dict[str, List[Point]]) -> Dict[str, List[Dict[str, Any]]]:
        return {ch: (self.hist(pts) if ch == "histogram" else self.line(pts)) for ch, pts in outputs.items()}

    # --------- indicators ---------
    def indicator_payload(self, summary: IndicatorSummary, outputs: Dict[str, List[Point]]) -> Dict[str, Any]:
        return {
            "id": summary.id,
            "kind": summary.kind.value,
            "name": summary.name,
            "placement": summary.placement.value,
            "series": self.channels(outputs),
            "levels": list(REFERENCE_LEVELS.get(summary.kind, [])),
        }

    def all_payloads(self, registry: IndicatorRegistry) -> List[Dict[str, Any]]:
        return [self.indicator_payload(s, registry.get_output(s.id)) for s in registry.list_indicators()]

    def delta_payload(self, result: UpdateResult) -> Dict[str, Any]:
        """Streaming patch: trailing point per changed channel (or everything on a reload)."""
        return {
            "time": result.time,
            "reload": result.full_reload,
            "indicators": {str(iid): self.channels(outs) for iid, outs in result.changes.items()},
        }

    # --------- price ---------
    def volume_payload(self, series: BarSeries) -> List[Dict[str, Any]]:
        return [{"time": b.time, "value": b.volume,
                 "color": self.vol_up if b.close >= b.open else self.vol_down}
                for b in self._cap(series.bars())]

    @staticmethod
    def price_summary(bar: Bar) -> Dict[str, float]:
        change = (bar.close - bar.open) / bar.open * 100.0 if bar.open else 0.0
        return {"price": bar.close, "change_pct": change}
