"""Technical indicator engine behind the TradePro charts."""

from tradepro.data.models import Bar, Point
from tradepro.data.series import BarSeries
from tradepro.indicators.base import (
    IndicatorError, IndicatorKind, InvalidParameter, Placement, UnsupportedIndicator,
)
from tradepro.indicators.registry import IndicatorRegistry

__version__ = "0.3.0"

__all__ = [
    "Bar", "Point", "BarSeries",
    "IndicatorKind", "Placement",
    "IndicatorError", "InvalidParameter", "UnsupportedIndicator",
    "IndicatorRegistry",
]
