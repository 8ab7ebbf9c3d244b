# tradepro/data/series.py
from __future__ import annotations

import bisect
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import pandas as pd

from .models import Bar

log = logging.getLogger(__name__)

BarLike = Union[Bar, Dict[str, Any]]

# volume column preference when loading a frame (broker exports differ)
VOLUME_COLUMNS = ("volume", "real_volume", "tick_volume")

# outcome of BarSeries.upsert()
APPENDED = "appended"
REPLACED = "replaced"
INSERTED = "inserted"


def _epoch_seconds(ts: pd.Series) -> pd.Series:
    ts = pd.to_datetime(ts, utc=True)
    return (ts - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(seconds=1)


def to_bar(bar: BarLike) -> Bar:
    if isinstance(bar, Bar):
        return bar
    data = dict(bar)
    if data.get("volume") is None:
        data.pop("volume", None)
    return Bar(**data)


class BarSeries:
    """
    Ordered OHLCV bars, one per timestamp.
    Append-only during a session except for the last bar, which is replaced
    in place while it is still forming. Bars arriving late are slotted back
    in time order (the caller is expected to recompute everything then).
    """

    def __init__(self, bars: Optional[Iterable[BarLike]] = None):
        self._bars: List[Bar] = []
        self._times: List[int] = []
        for b in bars or ():
            self.upsert(b)

    # --------- constructors ---------
    @classmethod
    def from_records(cls, records: Iterable[BarLike]) -> "BarSeries":
        """Sorted by time; a repeated timestamp keeps the last record."""
        by_time: Dict[int, Bar] = {}
        for r in records:
            b = to_bar(r)
            by_time[b.time] = b
        s = cls()
        s._bars = [by_time[t] for t in sorted(by_time)]
        s._times = [b.time for b in s._bars]
        return s

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "BarSeries":
        """
        DataFrame -> BarSeries. Time comes from a `time` column (epoch seconds)
        or, failing that, from a DatetimeIndex.
        """
        if df is None or len(df) == 0:
            return cls()
        frame = df
        if "time" not in frame.columns:
            if not isinstance(frame.index, pd.DatetimeIndex):
                raise ValueError("frame needs a 'time' column or a DatetimeIndex")
            frame = frame.assign(time=_epoch_seconds(frame.index.to_series(index=frame.index)))
        elif pd.api.types.is_datetime64_any_dtype(frame["time"]):
            frame = frame.assign(time=_epoch_seconds(frame["time"]))

        vol_col = next((c for c in VOLUME_COLUMNS if c in frame.columns), None)

        records: List[Bar] = []
        for r in frame.itertuples(index=False):
            records.append(Bar(
                time=int(getattr(r, "time")),
                open=float(getattr(r, "open")),
                high=float(getattr(r, "high")),
                low=float(getattr(r, "low")),
                close=float(getattr(r, "close")),
                volume=float(getattr(r, vol_col)) if vol_col else 0.0,
            ))
        return cls.from_records(records)

    @classmethod
    def from_csv(cls, path: str) -> "BarSeries":
        df = pd.read_csv(path)
        df.columns = [str(c).strip().lower() for c in df.columns]
        log.info("Loaded %d rows from %s", len(df), path)
        return cls.from_frame(df)

    # --------- mutation ---------
    def append(self, bar: BarLike) -> Bar:
        b = to_bar(bar)
        if self._times and b.time <= self._times[-1]:
            raise ValueError(f"bar time {b.time} is not after last bar {self._times[-1]}")
        self._bars.append(b)
        self._times.append(b.time)
        return b

    def replace_last(self, bar: BarLike) -> Bar:
        b = to_bar(bar)
        if not self._bars or b.time != self._times[-1]:
            raise ValueError(f"bar time {b.time} does not match the last bar")
        self._bars[-1] = b
        return b

    def upsert(self, bar: BarLike) -> str:
        """Append, replace the last bar, or slot an old bar back in order."""
        b = to_bar(bar)
        if not self._bars or b.time > self._times[-1]:
            self._bars.append(b)
            self._times.append(b.time)
            return APPENDED
        if b.time == self._times[-1]:
            self._bars[-1] = b
            return REPLACED
        i = bisect.bisect_left(self._times, b.time)
        if self._times[i] == b.time:
            self._bars[i] = b
        else:
            self._bars.insert(i, b)
            self._times.insert(i, b.time)
        return INSERTED

    def clear(self) -> None:
        self._bars.clear()
        self._times.clear()

    # --------- access ---------
    @property
    def last(self) -> Optional[Bar]:
        return self._bars[-1] if self._bars else None

    def times(self) -> List[int]:
        return list(self._times)

    def closes(self) -> List[float]:
        return [b.close for b in self._bars]

    def highs(self) -> List[float]:
        return [b.high for b in self._bars]

    def lows(self) -> List[float]:
        return [b.low for b in self._bars]

    def tail(self, n: int) -> List[Bar]:
        return self._bars[-n:] if n > 0 else []

    def tail_series(self, n: int) -> "BarSeries":
        s = BarSeries()
        s._bars = self.tail(n)
        s._times = self._times[-n:] if n > 0 else []
        return s

    def bars(self) -> List[Bar]:
        return list(self._bars)

    def copy(self) -> "BarSeries":
        s = BarSeries()
        s._bars = list(self._bars)
        s._times = list(self._times)
        return s

    def __len__(self) -> int:
        return len(self._bars)

    def __getitem__(self, i):
        return self._bars[i]

    def __iter__(self) -> Iterator[Bar]:
        return iter(self._bars)

    def __repr__(self) -> str:
        if not self._bars:
            return "BarSeries([])"
        return f"BarSeries({len(self._bars)} bars, {self._times[0]}..{self._times[-1]})"
