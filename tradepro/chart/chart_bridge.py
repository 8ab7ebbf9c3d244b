# tradepro/chart/chart_bridge.py
from __future__ import annotations

import json
from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot


def _dumps(obj) -> str:
    return json.dumps(obj, separators=(",", ":"))


class ChartBridge(QObject):
    """
    Qt side of the chart page (QWebChannel object or any Qt consumer).
    Every signal carries a compact JSON string:
      seriesLoaded       list[bar]                 (history batch)
      barUpdated         bar                       (live bar)
      indicatorsLoaded   list[indicator payload]   (after a history load / add)
      indicatorUpdated   delta payload             (streaming patch)
      indicatorRemoved   {"id": ...}               (drop the pane / line series)
    The page asks for a removal with removeRequested(id); ChartFeed listens.
    """

    seriesLoaded = pyqtSignal(str)
    barUpdated = pyqtSignal(str)
    indicatorsLoaded = pyqtSignal(str)
    indicatorUpdated = pyqtSignal(str)
    indicatorRemoved = pyqtSignal(str)

    removeRequested = pyqtSignal(int)

    def __init__(self, parent=None):
        super().__init__(parent)

    # ---------- Python -> page ----------
    @pyqtSlot(list)
    def send_bars_batch(self, bars: list):
        """History batch in one go (seriesLoaded)."""
        self.seriesLoaded.emit(_dumps(bars))

    @pyqtSlot(dict)
    def send_bar_update(self, bar: dict):
        """Appended or still-forming bar (barUpdated)."""
        self.barUpdated.emit(_dumps(bar))

    @pyqtSlot(list)
    def send_indicators_all(self, payloads: list):
        """Every indicator with all its points (indicatorsLoaded)."""
        self.indicatorsLoaded.emit(_dumps(payloads or []))

    @pyqtSlot(dict)
    def send_indicator_update(self, patch: dict):
        self.indicatorUpdated.emit(_dumps(patch or {}))

    @pyqtSlot(int)
    def send_indicator_removed(self, indicator_id: int):
        """Registry removal hook: the page drops the matching series."""
        self.indicatorRemoved.emit(_dumps({"id": indicator_id}))

    # ---------- page -> Python ----------
    @pyqtSlot(int)
    def requestRemove(self, indicator_id: int):
        """Called from JS when a pane's close button is clicked."""
        self.removeRequested.emit(indicator_id)
