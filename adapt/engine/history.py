"""
Append-only record of measured values, one entry per controlled call.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Protocol, Sequence, runtime_checkable

import pandas as pd


@runtime_checkable
class HistorySink(Protocol):
    def append(self, measured: Mapping[str, float]) -> None:
        ...


class MeasureHistory:
    """
    In-memory history sink.

    Stores a copy of each measured map. ``to_frame`` exports the log for
    offline inspection with one row per call and one column per measure.
    """

    def __init__(self, measures: Sequence[str] = ()):
        self.measures = list(measures)
        self._records: List[Dict[str, float]] = []

    def append(self, measured: Mapping[str, float]) -> None:
        self._records.append(dict(measured))

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[Dict[str, float]]:
        return [dict(r) for r in self._records]

    def series(self, measure: str) -> List[float]:
        return [r[measure] for r in self._records if measure in r]

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame.from_records(self._records, columns=self.measures or None)
        frame.index = pd.RangeIndex(start=1, stop=len(frame) + 1, name="iteration")
        return frame
