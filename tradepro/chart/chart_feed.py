# tradepro/chart/chart_feed.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from tradepro.chart.chart_bridge import ChartBridge
from tradepro.chart.projection import ChartProjector
from tradepro.data.series import BarSeries, to_bar
from tradepro.indicators.registry import IndicatorRegistry

log = logging.getLogger(__name__)


class ChartFeed:
    """
    Glue between the data producer and the chart page:
    history / live bars -> registry -> projector -> bridge signals.
    """

    def __init__(self, bridge: Optional[ChartBridge] = None, projector: Optional[ChartProjector] = None):
        self.bridge = bridge or ChartBridge()
        self.projector = projector or ChartProjector()
        self.registry = IndicatorRegistry(on_removed=self.bridge.send_indicator_removed)
        self.bridge.removeRequested.connect(self._on_remove_requested)

    # ---------- indicators ----------
    def add_indicator(self, kind: Any, params: Optional[Dict[str, Any]] = None) -> int:
        iid = self.registry.add(kind, params)
        self._publish_all()
        return iid

    def remove_indicator(self, indicator_id: int) -> None:
        self.registry.remove(indicator_id)

    def _on_remove_requested(self, indicator_id: int) -> None:
        if indicator_id not in self.registry:
            log.warning("Remove requested for unknown indicator #%d", indicator_id)
            return
        self.remove_indicator(indicator_id)

    # ---------- data ----------
    def on_history(self, bars: List[dict]) -> None:
        series = BarSeries.from_records(bars)
        self.bridge.send_bars_batch([b.model_dump() for b in series])
        self.registry.load_history(series)
        self._publish_all()

    def on_bar(self, bar: dict) -> None:
        b = to_bar(bar)
        self.bridge.send_bar_update(b.model_dump())
        result = self.registry.push_bar(b)
        if result.full_reload:
            self._publish_all()
        elif result.changes:
            self.bridge.send_indicator_update(self.projector.delta_payload(result))

    def _publish_all(self) -> None:
        self.bridge.send_indicators_all(self.projector.all_payloads(self.registry))
