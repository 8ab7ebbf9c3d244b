"""
Pytest configuration and fixtures for the indicator engine tests.
"""

import random
from typing import Dict, List

import pytest

from tradepro.data.series import BarSeries
from tradepro.indicators.registry import IndicatorRegistry

T0 = 1_700_000_000
STEP = 60

# small periods so every kind produces output on short series
SMALL_PARAMS = {
    "sma": {"period": 5},
    "ema": {"period": 5},
    "wma": {"period": 5},
    "rsi": {"period": 5},
    "macd": {"fast_period": 3, "slow_period": 6, "signal_period": 4},
    "stochastic": {"period": 5},
    "bb": {"period": 5, "std_dev": 2.0},
    "atr": {"period": 5},
}


def make_bar(time, open, high, low, close, volume=0.0) -> Dict:
    return {"time": time, "open": open, "high": high, "low": low, "close": close, "volume": volume}


def random_walk(n: int, seed: int = 7, start: float = 100.0) -> List[Dict]:
    rng = random.Random(seed)
    bars = []
    price = start
    for i in range(n):
        o = price
        c = max(0.01, o + rng.uniform(-2.0, 2.0))
        h = max(o, c) + rng.uniform(0.0, 1.0)
        l = max(0.0, min(o, c) - rng.uniform(0.0, 1.0))
        bars.append(make_bar(T0 + i * STEP, o, h, l, c, rng.uniform(10.0, 1000.0)))
        price = c
    return bars


def assert_outputs_close(got, expected):
    assert got.keys() == expected.keys()
    for ch in expected:
        assert [p.time for p in got[ch]] == [p.time for p in expected[ch]], ch
        assert [p.value for p in got[ch]] == pytest.approx(
            [p.value for p in expected[ch]], rel=1e-9, abs=1e-12), ch


@pytest.fixture
def three_bars() -> List[Dict]:
    """(t=0,O=10,H=12,L=9,C=11), (t=1,O=11,H=13,L=10,C=12), (t=2,O=12,H=12,L=10,C=10)"""
    return [
        make_bar(0, 10, 12, 9, 11),
        make_bar(1, 11, 13, 10, 12),
        make_bar(2, 12, 12, 10, 10),
    ]


@pytest.fixture
def walk() -> List[Dict]:
    return random_walk(80)


@pytest.fixture
def walk_series(walk) -> BarSeries:
    return BarSeries.from_records(walk)


@pytest.fixture
def registry() -> IndicatorRegistry:
    return IndicatorRegistry()


@pytest.fixture
def full_registry() -> IndicatorRegistry:
    """One instance of every built-in kind, small periods."""
    reg = IndicatorRegistry()
    for kind, params in SMALL_PARAMS.items():
        reg.add(kind, params)
    return reg
