import argparse
import json
import logging
import sys

from tradepro import config
from tradepro.chart.chart_feed import ChartFeed
from tradepro.data.series import BarSeries
from tradepro.indicators.base import IndicatorError

log = logging.getLogger("tradepro.replay")

# --indicator value -> param names, in order ("macd:12,26,9", "bb:20,2.5")
POSITIONAL_PARAMS = {
    "macd": ("fast_period", "slow_period", "signal_period"),
    "bb": ("period", "std_dev"),
    "bollingerbands": ("period", "std_dev"),
}


def parse_indicator(spec: str):
    kind, _, raw = spec.partition(":")
    kind = kind.strip().lower()
    params = {}
    if raw:
        names = POSITIONAL_PARAMS.get(kind.replace("_", ""), ("period",))
        for name, val in zip(names, raw.split(",")):
            params[name] = float(val) if name == "std_dev" else int(val)
    return kind, params


BRIDGE_SIGNALS = ("seriesLoaded", "barUpdated", "indicatorsLoaded", "indicatorUpdated", "indicatorRemoved")


def _printer(signal: str):
    def emit(payload: str):
        print(json.dumps({"signal": signal, "payload": json.loads(payload)}))
    return emit


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Replay OHLCV bars through the indicator engine.")
    p.add_argument("csv", help="CSV with time,open,high,low,close[,volume] columns")
    p.add_argument("-i", "--indicator", action="append", default=[],
                   help="kind[:params], e.g. sma:20, ema, rsi:14, macd:12,26,9, bb:20,2 (repeatable)")
    p.add_argument("--history", type=int, default=config.HISTORY_SPLIT,
                   help="rows loaded as history; the rest are streamed bar by bar")
    p.add_argument("--json", action="store_true", help="print every bridge payload as a JSON line")
    return p


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    series = BarSeries.from_csv(args.csv)
    bars = series.bars()
    history, live = bars[:args.history], bars[args.history:]

    feed = ChartFeed()
    if args.json:
        for name in BRIDGE_SIGNALS:
            getattr(feed.bridge, name).connect(_printer(name))

    for spec in args.indicator or ["sma:20"]:
        try:
            kind, params = parse_indicator(spec)
            feed.add_indicator(kind, params)
        except (IndicatorError, ValueError) as e:
            log.error("Indicator %r rejected: %s", spec, e)
            return 2

    feed.on_history([b.model_dump() for b in history])
    for b in live:
        feed.on_bar(b.model_dump())

    if not args.json:
        for s in feed.registry.list_indicators():
            out = feed.registry.get_output(s.id)
            last = {ch: (pts[-1].value if pts else None) for ch, pts in out.items()}
            log.info("%s #%d (%s) last=%s", s.name, s.id, s.placement.value, last)
        if bars:
            log.info("%s %s", config.DEFAULT_SYMBOL, feed.projector.price_summary(bars[-1]))
    return 0


if __name__ == "__main__":
    sys.exit(main())
