# tradepro/indicators/custom.py
from __future__ import annotations

import logging
import math
from typing import Any, List

from tradepro.data.models import Point
from .base import Indicator, IndicatorKind, InvalidParameter, Placement, register

log = logging.getLogger(__name__)


def _as_point(item: Any) -> Point:
    if isinstance(item, Point):
        return item
    if isinstance(item, dict):
        return Point(int(item["time"]), float(item["value"]))
    t, v = item
    return Point(int(t), float(v))


@register
class Custom(Indicator):
    """
    Host-supplied Python callable: func(list[Bar]) -> iterable of Point,
    (time, value) pairs or {"time", "value"} dicts. No incremental form:
    every tick re-runs the callable over the whole series.
    """
    kind = IndicatorKind.CUSTOM
    name = "Custom"
    placement = Placement.OVERLAY
    defaults = {"func": None, "name": "Custom"}
    period_params = ()
    incremental = False

    def validate(self, params):
        merged = super().validate(params)
        if not callable(merged["func"]):
            raise InvalidParameter("custom indicator needs a callable 'func'")
        if not isinstance(merged["name"], str) or not merged["name"].strip():
            raise InvalidParameter("custom indicator 'name' must be a non-empty string")
        return merged

    def display_name(self, params):
        return params["name"]

    def compute(self, series, params):
        if not len(series):
            return self.empty(), None
        try:
            result = params["func"](series.bars())
            points: List[Point] = [_as_point(x) for x in (result if result is not None else ())]
        except Exception:
            log.exception("custom indicator %r failed; output cleared", params["name"])
            return self.empty(), None
        points.sort(key=lambda p: p.time)
        if any(not math.isfinite(p.value) for p in points):
            log.debug("custom indicator %r produced non-finite values", params["name"])
        return {"value": points}, None
