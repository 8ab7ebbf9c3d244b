# Pydantic types (Bar) + plain output points

from __future__ import annotations
from dataclasses import dataclass

from pydantic import BaseModel


class Bar(BaseModel):
    time: int            # epoch seconds (UTC)
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class Point:
    time: int
    value: float

    def as_dict(self) -> dict:
        return {"time": self.time, "value": self.value}
