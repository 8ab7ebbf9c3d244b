"""
Tests for the indicator registry / orchestrator.
"""

import math

import pytest

from tradepro.data.models import Point
from tradepro.data.series import APPENDED, INSERTED, REPLACED, BarSeries
from tradepro.indicators.base import (
    IndicatorKind, InvalidParameter, Placement, UnsupportedIndicator,
)
from tradepro.indicators.registry import IndicatorRegistry
from conftest import SMALL_PARAMS, assert_outputs_close, make_bar, random_walk


def fresh_outputs(kind, params, bars):
    reg = IndicatorRegistry()
    iid = reg.add(kind, params)
    reg.load_history(bars)
    return reg.get_output(iid)


# ============================================================================
# LIFECYCLE
# ============================================================================

class TestLifecycle:
    def test_ids_unique_and_never_reused(self, registry):
        a = registry.add("sma")
        b = registry.add("ema")
        registry.remove(a)
        c = registry.add("sma")
        assert len({a, b, c}) == 3
        assert c > b > a

    def test_defaults_applied(self, registry):
        iid = registry.add("macd")
        (summary,) = registry.list_indicators()
        assert summary.id == iid
        assert summary.params == {"fast_period": 12, "slow_period": 26, "signal_period": 9}
        assert summary.placement is Placement.PANEL
        assert summary.name == "MACD"

    def test_list_keeps_insertion_order(self, full_registry):
        kinds = [s.kind for s in full_registry.list_indicators()]
        assert kinds == [IndicatorKind.parse(k) for k in SMALL_PARAMS]

    def test_placements(self, full_registry):
        placement = {s.kind: s.placement for s in full_registry.list_indicators()}
        overlays = {IndicatorKind.SMA, IndicatorKind.EMA, IndicatorKind.WMA, IndicatorKind.BOLLINGER_BANDS}
        for kind, p in placement.items():
            assert p is (Placement.OVERLAY if kind in overlays else Placement.PANEL)

    def test_remove_notifies_and_releases(self):
        removed = []
        reg = IndicatorRegistry(on_removed=removed.append)
        iid = reg.add("sma", {"period": 2})
        inst = reg.get_instance(iid)
        reg.remove(iid)
        assert removed == [iid]
        assert iid not in reg
        assert inst.outputs == {}
        with pytest.raises(KeyError):
            reg.get_output(iid)

    def test_remove_unknown(self, registry):
        with pytest.raises(KeyError):
            registry.remove(42)

    def test_clear(self):
        removed = []
        reg = IndicatorRegistry(on_removed=removed.append)
        ids = [reg.add("sma"), reg.add("rsi")]
        reg.clear()
        assert len(reg) == 0
        assert removed == ids

    def test_add_computes_against_current_series(self, three_bars):
        reg = IndicatorRegistry(BarSeries.from_records(three_bars))
        iid = reg.add("sma", {"period": 2})
        assert reg.get_output(iid)["value"] == [Point(1, 11.5), Point(2, 11.0)]

    @pytest.mark.parametrize("alias,kind", [
        ("SMA", IndicatorKind.SMA),
        ("bb", IndicatorKind.BOLLINGER_BANDS),
        ("BollingerBands", IndicatorKind.BOLLINGER_BANDS),
        ("bollinger_bands", IndicatorKind.BOLLINGER_BANDS),
        ("Stochastic", IndicatorKind.STOCHASTIC),
        (IndicatorKind.ATR, IndicatorKind.ATR),
    ])
    def test_kind_aliases(self, registry, alias, kind):
        registry.add(alias)
        assert registry.list_indicators()[0].kind is kind


# ============================================================================
# ERRORS
# ============================================================================

class TestErrors:
    @pytest.mark.parametrize("kind", ["vwap", "", None, 3])
    def test_unsupported_kind(self, registry, kind):
        with pytest.raises(UnsupportedIndicator):
            registry.add(kind)
        assert len(registry) == 0

    @pytest.mark.parametrize("period", [0, -3, 2.5, "14", True, None])
    def test_bad_period(self, registry, period):
        with pytest.raises(InvalidParameter):
            registry.add("rsi", {"period": period})
        assert len(registry) == 0

    def test_bad_macd_period(self, registry):
        with pytest.raises(InvalidParameter):
            registry.add("macd", {"signal_period": 0})

    def test_unknown_param(self, registry):
        with pytest.raises(InvalidParameter):
            registry.add("sma", {"length": 5})

    def test_invalid_parameter_is_value_error(self, registry):
        with pytest.raises(ValueError):
            registry.add("bb", {"std_dev": -2})

    def test_period_longer_than_series_is_empty_not_error(self, three_bars):
        reg = IndicatorRegistry(BarSeries.from_records(three_bars))
        iid = reg.add("sma", {"period": 10})
        assert reg.get_output(iid) == {"value": []}
        for i in range(3, 12):
            reg.push_bar(make_bar(i, 10, 11, 9, 10))
        assert len(reg.get_output(iid)["value"]) == 3


# ============================================================================
# FULL RECOMPUTE
# ============================================================================

class TestRecompute:
    def test_empty_series_gives_empty_outputs(self, full_registry):
        full_registry.load_history([])
        for s in full_registry.list_indicators():
            assert all(pts == [] for pts in full_registry.get_output(s.id).values())

    @pytest.mark.parametrize("n", [0, 1, 2, 4])
    def test_short_series_gives_empty_outputs(self, full_registry, n):
        full_registry.load_history(random_walk(n))
        for s in full_registry.list_indicators():
            out = full_registry.get_output(s.id)
            assert all(pts == [] for pts in out.values()), s.kind

    def test_caller_series_is_not_mutated(self, walk):
        series = BarSeries.from_records(walk[:10])
        reg = IndicatorRegistry()
        iid = reg.add("sma", {"period": 3})
        reg.load_history(series)
        reg.push_bar(walk[10])
        reg.push_bar(dict(walk[10], close=1.0))
        assert len(series) == 10
        assert series.times() == [b["time"] for b in walk[:10]]
        assert len(reg.series) == 11
        assert len(reg.get_output(iid)["value"]) == 9

        other = BarSeries.from_records(walk[:5])
        reg.recompute_all(other)
        reg.push_bar(walk[5])
        assert len(other) == 5

    def test_reload_replaces_everything(self, full_registry):
        full_registry.load_history(random_walk(50, seed=1))
        full_registry.load_history(random_walk(30, seed=2))
        for s in full_registry.list_indicators():
            assert_outputs_close(full_registry.get_output(s.id),
                                 fresh_outputs(s.kind, s.params, random_walk(30, seed=2)))

    def test_outputs_never_contain_nan_on_clean_data(self, full_registry, walk):
        full_registry.load_history(walk)
        for s in full_registry.list_indicators():
            for pts in full_registry.get_output(s.id).values():
                assert pts
                assert all(math.isfinite(p.value) for p in pts)

    def test_malformed_bars_do_not_raise(self, full_registry):
        bars = random_walk(20)
        bars[5]["close"] = float("nan")
        bars[8]["high"], bars[8]["low"] = bars[8]["low"], bars[8]["high"]
        bars[11]["open"] = -4.0
        bars[14]["close"] = float("inf")
        full_registry.load_history(bars)
        full_registry.push_bar(make_bar(bars[-1]["time"] + 60, 1, 1, 1, float("-inf")))
        assert len(full_registry) == len(SMALL_PARAMS)


# ============================================================================
# STREAMING
# ============================================================================

class TestIncremental:
    @pytest.mark.parametrize("kind", list(SMALL_PARAMS))
    def test_append_matches_full_recompute(self, kind, walk):
        params = SMALL_PARAMS[kind]
        reg = IndicatorRegistry()
        iid = reg.add(kind, params)
        reg.load_history(walk[:20])
        for bar in walk[20:]:
            reg.push_bar(bar)
        assert_outputs_close(reg.get_output(iid), fresh_outputs(kind, params, walk))

    @pytest.mark.parametrize("kind", list(SMALL_PARAMS))
    def test_streaming_from_empty(self, kind, walk):
        params = SMALL_PARAMS[kind]
        reg = IndicatorRegistry()
        iid = reg.add(kind, params)
        for bar in walk:
            reg.push_bar(bar)
        assert_outputs_close(reg.get_output(iid), fresh_outputs(kind, params, walk))

    @pytest.mark.parametrize("kind", list(SMALL_PARAMS))
    def test_in_progress_bar_replacement(self, kind, walk):
        """Each bar arrives as two provisional ticks before its final value."""
        params = SMALL_PARAMS[kind]
        reg = IndicatorRegistry()
        iid = reg.add(kind, params)
        reg.load_history(walk[:3])
        for bar in walk[3:]:
            for bump in (1.5, -0.7):
                tick = dict(bar, close=bar["close"] + bump, high=bar["high"] + 2.0)
                reg.push_bar(tick)
            result = reg.push_bar(bar)
            assert result.outcome == REPLACED
        assert_outputs_close(reg.get_output(iid), fresh_outputs(kind, params, walk))

    def test_update_result_reports_trailing_points(self, walk):
        reg = IndicatorRegistry()
        sma_id = reg.add("sma", {"period": 5})
        macd_id = reg.add("macd", SMALL_PARAMS["macd"])
        long_id = reg.add("sma", {"period": 500})
        reg.load_history(walk[:-1])
        result = reg.push_bar(walk[-1])
        assert result.outcome == APPENDED
        assert result.time == walk[-1]["time"]
        assert not result.full_reload
        assert set(result.changes) == {sma_id, macd_id}
        assert set(result.changes[macd_id]) == {"macd", "signal", "histogram"}
        assert result.changes[sma_id]["value"] == reg.get_output(sma_id)["value"][-1:]
        assert long_id not in result.changes

    def test_out_of_order_bar_falls_back_to_full_recompute(self, full_registry, walk):
        missing = walk[30]
        history = walk[:30] + walk[31:]
        full_registry.load_history(history)
        result = full_registry.push_bar(missing)
        assert result.outcome == INSERTED
        assert result.full_reload
        assert full_registry.series.times() == [b["time"] for b in walk]
        for s in full_registry.list_indicators():
            assert_outputs_close(full_registry.get_output(s.id), fresh_outputs(s.kind, s.params, walk))
            assert_outputs_close(result.changes[s.id], full_registry.get_output(s.id))

    def test_desynced_state_is_rebuilt(self, walk):
        reg = IndicatorRegistry()
        iid = reg.add("ema", {"period": 5})
        reg.load_history(walk[:40])
        reg.get_instance(iid).state.count += 3
        for bar in walk[40:]:
            reg.push_bar(bar)
        assert_outputs_close(reg.get_output(iid), fresh_outputs("ema", {"period": 5}, walk))

    def test_snapshot_not_mutated_by_updates(self, walk):
        reg = IndicatorRegistry()
        iid = reg.add("ema", {"period": 3})
        reg.load_history(walk[:10])
        snap = reg.get_output(iid)
        before = list(snap["value"])
        reg.push_bar(dict(walk[9], close=walk[9]["close"] + 5))
        reg.push_bar(walk[10])
        assert snap["value"] == before
        assert len(reg.get_output(iid)["value"]) == len(before) + 1

    def test_ema_state_is_constant_size(self, walk):
        reg = IndicatorRegistry()
        iid = reg.add("ema", {"period": 4})
        for bar in walk:
            reg.push_bar(bar)
        state = reg.get_instance(iid).state
        assert len(state.seed) == 4
        assert state.count == len(walk)


# ============================================================================
# CUSTOM
# ============================================================================

class TestCustom:
    def test_callable_output(self, walk):
        def midpoint(bars):
            return [(b.time, (b.high + b.low) / 2) for b in bars]

        reg = IndicatorRegistry()
        iid = reg.add("custom", {"func": midpoint, "name": "Mid"})
        reg.load_history(walk[:10])
        assert len(reg.get_output(iid)["value"]) == 10
        reg.push_bar(walk[10])
        out = reg.get_output(iid)["value"]
        assert out[-1] == Point(walk[10]["time"], (walk[10]["high"] + walk[10]["low"]) / 2)
        (summary,) = reg.list_indicators()
        assert summary.name == "Mid"
        assert summary.placement is Placement.OVERLAY

    def test_accepts_dicts_and_points(self, three_bars):
        reg = IndicatorRegistry(BarSeries.from_records(three_bars))
        a = reg.add("custom", {"func": lambda bars: [{"time": b.time, "value": 1} for b in bars]})
        b = reg.add("custom", {"func": lambda bars: [Point(b.time, 2.0) for b in reversed(bars)]})
        assert [p.value for p in reg.get_output(a)["value"]] == [1.0, 1.0, 1.0]
        assert [p.time for p in reg.get_output(b)["value"]] == [0, 1, 2]

    def test_failing_callable_is_contained(self, three_bars):
        def broken(bars):
            raise RuntimeError("boom")

        reg = IndicatorRegistry(BarSeries.from_records(three_bars))
        bad = reg.add("custom", {"func": broken})
        good = reg.add("sma", {"period": 2})
        reg.push_bar(make_bar(3, 10, 11, 9, 10))
        assert reg.get_output(bad) == {"value": []}
        assert len(reg.get_output(good)["value"]) == 3

    def test_requires_callable(self, registry):
        with pytest.raises(InvalidParameter):
            registry.add("custom")
        with pytest.raises(InvalidParameter):
            registry.add("custom", {"func": "return data"})


# ============================================================================
# SESSION RESTORE
# ============================================================================

class TestConfig:
    def test_export_restore(self, full_registry, walk):
        full_registry.add("custom", {"func": lambda bars: []})
        records = full_registry.export_config()
        assert len(records) == len(SMALL_PARAMS)
        assert records[0] == {"kind": "sma", "params": {"period": 5}}

        other = IndicatorRegistry()
        other.load_history(walk)
        ids = other.restore_config(records)
        assert [s.kind for s in other.list_indicators()] == [IndicatorKind.parse(r["kind"]) for r in records]
        full_registry.load_history(walk)
        for iid, s in zip(ids, full_registry.list_indicators()):
            assert_outputs_close(other.get_output(iid), full_registry.get_output(s.id))

    def test_restore_rejects_unknown_kind(self, registry):
        with pytest.raises(UnsupportedIndicator):
            registry.restore_config([{"kind": "ichimoku", "params": {}}])

    def test_restore_is_all_or_nothing(self, registry):
        records = [
            {"kind": "sma", "params": {"period": 5}},
            {"kind": "rsi", "params": {"period": 0}},
        ]
        with pytest.raises(InvalidParameter):
            registry.restore_config(records)
        assert len(registry) == 0
        assert registry.restore_config(records[:1]) == [1]
