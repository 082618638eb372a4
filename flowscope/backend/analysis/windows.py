"""
analysis/windows.py

Fixed-size, epoch-aligned time windows shared by volume analysis and pattern
detection. Only windows that contain at least one record are produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable

from ..models import FlowRecord, TimeRange
from ..statistics.processor import window_start_ms

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(slots=True)
class TimeWindow:
    start_ms: int
    size_ms: int
    records: list[FlowRecord] = field(default_factory=list)

    @property
    def volume(self) -> int:
        return sum(r.byte_count for r in self.records)

    @property
    def start(self) -> datetime:
        return _EPOCH + timedelta(milliseconds=self.start_ms)

    @property
    def end(self) -> datetime:
        return _EPOCH + timedelta(milliseconds=self.start_ms + self.size_ms)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start, self.end)


def group_by_window(records: Iterable[FlowRecord], window_ms: int) -> list[TimeWindow]:
    """Bucket records into windows of `window_ms`, sorted by window start."""
    windows: dict[int, TimeWindow] = {}
    for record in records:
        start = window_start_ms(record.timestamp_ms, window_ms)
        window = windows.get(start)
        if window is None:
            window = windows[start] = TimeWindow(start, window_ms)
        window.records.append(record)
    return [windows[k] for k in sorted(windows)]
