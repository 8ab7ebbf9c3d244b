# tradepro/indicators/registry.py
"""
Indicator registry: owns every active indicator instance and keeps them in
step with the bar series.

    reg = IndicatorRegistry()
    ema_id = reg.add("ema", {"period": 20})
    reg.load_history(bars)          # full recompute
    reg.push_bar(bar)               # streaming: append or in-progress replace
    reg.get_output(ema_id)          # {"value": [Point, ...]}

Not safe for concurrent mutation: add/remove/recompute_all/apply_incremental_bar
must be serialised by the caller. get_output() hands out fresh lists, so a
renderer may keep reading a snapshot while the next update runs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel

from tradepro.data.models import Point
from tradepro.data.series import INSERTED, REPLACED, BarLike, BarSeries, to_bar
from .base import IndicatorKind, Outputs, Placement, get_indicator

# kind modules register themselves in the kind table on import
from . import custom, macd, moving_averages, oscillators, volatility  # noqa: F401

log = logging.getLogger(__name__)


@dataclass
class IndicatorInstance:
    id: int
    kind: IndicatorKind
    params: Dict[str, Any]
    placement: Placement
    outputs: Outputs = field(default_factory=dict)
    state: Any = None


@dataclass(frozen=True)
class IndicatorSummary:
    id: int
    kind: IndicatorKind
    placement: Placement
    name: str
    params: Dict[str, Any]


@dataclass
class UpdateResult:
    """What a streaming bar changed. full_reload means every output was rebuilt."""
    outcome: str
    time: int
    changes: Dict[int, Outputs] = field(default_factory=dict)
    full_reload: bool = False


class IndicatorConfig(BaseModel):
    kind: str
    params: Dict[str, Any] = {}


class IndicatorRegistry:
    def __init__(self, series: Optional[BarSeries] = None,
                 on_removed: Optional[Callable[[int], None]] = None):
        self._series = series.copy() if series is not None else BarSeries()
        self._instances: Dict[int, IndicatorInstance] = {}
        self._next_id = 1
        self._on_removed = on_removed

    @property
    def series(self) -> BarSeries:
        return self._series

    # --------- lifecycle ---------
    def add(self, kind: Any, params: Optional[Dict[str, Any]] = None) -> int:
        """Raises UnsupportedIndicator / InvalidParameter; nothing is stored then."""
        k = IndicatorKind.parse(kind)
        ind = get_indicator(k)
        merged = ind.validate(params)

        inst = IndicatorInstance(id=self._next_id, kind=k, params=merged,
                                 placement=ind.placement, outputs=ind.empty())
        self._next_id += 1
        self._instances[inst.id] = inst
        self._compute(inst)
        log.info("Added %s #%d %s", ind.display_name(merged), inst.id, _public(merged))
        return inst.id

    def remove(self, indicator_id: int) -> None:
        inst = self._instances.pop(indicator_id)  # KeyError if unknown
        inst.outputs = {}
        inst.state = None
        log.info("Removed %s #%d", inst.kind.value, indicator_id)
        if self._on_removed:
            self._on_removed(indicator_id)

    def clear(self) -> None:
        for iid in list(self._instances):
            self.remove(iid)

    # --------- batch ---------
    def recompute_all(self, series: Optional[BarSeries] = None) -> None:
        if series is not None:
            self._series = series.copy()
        for inst in self._instances.values():
            self._compute(inst)

    def load_history(self, bars: Iterable[BarLike]) -> None:
        series = bars if isinstance(bars, BarSeries) else BarSeries.from_records(bars)
        log.info("History loaded: %d bars, %d indicators", len(series), len(self._instances))
        self.recompute_all(series)

    # --------- tick ---------
    def apply_incremental_bar(self, bar: BarLike) -> UpdateResult:
        b = to_bar(bar)
        outcome = self._series.upsert(b)

        if outcome == INSERTED:
            log.warning("Out-of-order bar t=%d (last t=%d) -> full recompute",
                        b.time, self._series.last.time)
            self.recompute_all()
            return UpdateResult(outcome, b.time, {iid: self.get_output(iid) for iid in self._instances},
                                full_reload=True)

        replaced = outcome == REPLACED
        result = UpdateResult(outcome, b.time)
        for inst in self._instances.values():
            self._update(inst, replaced)
            changed = {ch: [pts[-1]] for ch, pts in inst.outputs.items() if pts and pts[-1].time == b.time}
            if changed:
                result.changes[inst.id] = changed
        log.debug("Bar t=%d %s, %d indicators changed", b.time, outcome, len(result.changes))
        return result

    def push_bar(self, bar: BarLike) -> UpdateResult:
        return self.apply_incremental_bar(bar)

    # --------- read ---------
    def list_indicators(self) -> List[IndicatorSummary]:
        out = []
        for inst in self._instances.values():
            ind = get_indicator(inst.kind)
            out.append(IndicatorSummary(inst.id, inst.kind, inst.placement,
                                        ind.display_name(inst.params), dict(inst.params)))
        return out

    def get_output(self, indicator_id: int) -> Dict[str, List[Point]]:
        inst = self._instances[indicator_id]
        return {ch: list(pts) for ch, pts in inst.outputs.items()}

    def get_instance(self, indicator_id: int) -> IndicatorInstance:
        return self._instances[indicator_id]

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, indicator_id: object) -> bool:
        return indicator_id in self._instances

    # --------- session restore ---------
    def export_config(self) -> List[Dict[str, Any]]:
        records = []
        for inst in self._instances.values():
            if inst.kind is IndicatorKind.CUSTOM:
                log.info("Custom indicator #%d not exported (callable)", inst.id)
                continue
            records.append(IndicatorConfig(kind=inst.kind.value, params=inst.params).model_dump())
        return records

    def restore_config(self, records: Iterable[Dict[str, Any]]) -> List[int]:
        """All-or-nothing: every record is validated before any is added."""
        checked = []
        for r in records:
            cfg = IndicatorConfig.model_validate(r)
            kind = IndicatorKind.parse(cfg.kind)
            checked.append((kind, get_indicator(kind).validate(cfg.params)))
        return [self.add(kind, params) for kind, params in checked]

    # --------- internals ---------
    def _compute(self, inst: IndicatorInstance) -> None:
        ind = get_indicator(inst.kind)
        inst.outputs, inst.state = ind.compute(self._series, inst.params)
        if len(self._series) and not any(inst.outputs.values()):
            log.debug("%s #%d: insufficient data (%d bars)", inst.kind.value, inst.id, len(self._series))

    def _update(self, inst: IndicatorInstance, replaced: bool) -> None:
        ind = get_indicator(inst.kind)
        if not ind.incremental:
            log.debug("%s #%d: no incremental form, O(N) recompute", inst.kind.value, inst.id)
            self._compute(inst)
            return
        if not ind.in_sync(self._series, inst.state, replaced):
            log.warning("%s #%d: running state out of step with series -> recompute", inst.kind.value, inst.id)
            self._compute(inst)
            return
        inst.state = ind.update(self._series, inst.params, inst.state, inst.outputs, replaced)


def _public(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if not callable(v)}
