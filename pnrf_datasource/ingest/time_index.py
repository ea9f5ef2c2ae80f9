"""File time index: tick arithmetic, file begin resolution and floor search.

Time policy
-----------
All absolute times are integer nanoseconds since the Unix epoch (UTC) and all
durations are integer nanoseconds ("ticks"). Floating-point seconds only
appear at the decoder boundary and are converted once. Sample intervals are
rounded to 10 ns (8 decimal digits of seconds) before being used as a key, so
decoder values like 1.9999999999999998e-05 normalise to 20_000 ns.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from pnrf_datasource.errors import InvalidTimeError, NoChannelsError
from pnrf_datasource.ingest.recording import DataSourceKind, Recording, RecordingSource

logger = logging.getLogger(__name__)

NS_PER_SECOND = 1_000_000_000
NS_PER_DAY = 86_400 * NS_PER_SECOND

# 8 decimal digits of seconds
SAMPLE_PERIOD_PRECISION_NS = 10
_PERIOD_SCALE = NS_PER_SECOND // SAMPLE_PERIOD_PRECISION_NS


def round_sample_period(interval_s: float) -> int:
    """Rounded sample period in ticks; the single identity of a sample period."""
    x = float(interval_s)
    if not math.isfinite(x) or x <= 0:
        raise ValueError(f"sample interval must be finite and > 0, got {interval_s!r}")
    ticks = int(round(x * _PERIOD_SCALE)) * SAMPLE_PERIOD_PRECISION_NS
    if ticks <= 0:
        raise ValueError(f"sample interval {interval_s!r} rounds to zero at 10 ns precision")
    return ticks


def seconds_to_ticks(seconds: float) -> int:
    return int(round(float(seconds) * NS_PER_SECOND))


def to_ticks(value: int | str | datetime | np.datetime64 | pd.Timestamp) -> int:
    """Convert a timestamp to ticks. Naive timestamps are taken as UTC."""
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        return int(value)
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return int(ts.value)


def ticks_to_timestamp(ticks: int) -> pd.Timestamp:
    return pd.Timestamp(int(ticks), unit="ns", tz="UTC")


def utc_header_to_ticks(year: int, day_of_year: int, seconds: float) -> int:
    """UTC(year, Jan 1) + (day_of_year - 1) days + seconds."""
    jan1 = pd.Timestamp(year=int(year), month=1, day=1, tz="UTC")
    return int(jan1.value) + (int(day_of_year) - 1) * NS_PER_DAY + seconds_to_ticks(seconds)


class RecordingCache:
    """Call-local cache of opened recordings and resolved file begins.

    Created at the start of one catalog build or read call and closed at its
    end. Entries are only ever added during the call.
    """

    def __init__(self, source: RecordingSource) -> None:
        self.source = source
        self._recordings: Dict[str, Recording] = {}
        self._begins: Dict[str, int] = {}

    def __enter__(self) -> "RecordingCache":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def recording(self, path: str | Path) -> Recording:
        key = str(path)
        rec = self._recordings.get(key)
        if rec is None:
            logger.debug("Open file %s", key)
            rec = self.source.open(path)
            self._recordings[key] = rec
        return rec

    def file_begin(self, path: str | Path) -> int:
        key = str(path)
        begin = self._begins.get(key)
        if begin is None:
            begin = _read_file_begin(self.recording(path), path)
            self._begins[key] = begin
        return begin

    @property
    def open_paths(self) -> List[str]:
        return list(self._recordings)

    def close(self) -> None:
        for key, rec in self._recordings.items():
            try:
                rec.close()
            except Exception:
                logger.exception("Failed to close recording %s", key)
        self._recordings.clear()
        self._begins.clear()


def _read_file_begin(recording: Recording, path: str | Path) -> int:
    # No file-level begin exists in the decoder API; the first channel's
    # mixed data source carries the UTC header.
    channels = recording.channels
    if not channels:
        raise NoChannelsError(path)
    header = channels[0].data_source(DataSourceKind.MIXED).utc_time()
    if not header.valid:
        raise InvalidTimeError(path)
    return utc_header_to_ticks(header.year, header.day_of_year, header.seconds)


def resolve_file_begin(cache: RecordingCache, path: str | Path) -> int:
    """Absolute begin of a file in ticks (memoized in `cache`)."""
    return cache.file_begin(path)


def find_nearest_file_index(cache: RecordingCache, paths: Sequence[str | Path], target: int) -> int:
    """Floor search over the file begins.

    Returns the index of the file beginning exactly at `target`, else of the
    greatest begin strictly below `target`, else 0. Errors resolving a begin
    propagate: without the key the search result is meaningless.
    """
    if not paths:
        raise ValueError("paths must not be empty")
    target = int(target)
    left, right = 0, len(paths) - 1
    floor = 0
    while left <= right:
        mid = left + (right - left) // 2
        mid_begin = cache.file_begin(paths[mid])
        logger.debug("Begin of %s is %s", paths[mid], ticks_to_timestamp(mid_begin))
        if target > mid_begin:
            floor = mid
            left = mid + 1
        elif target < mid_begin:
            right = mid - 1
        else:
            return mid
    return floor


def sort_by_begin(cache: RecordingCache, paths: Sequence[str | Path]) -> List[str | Path]:
    """Order files by their resolved begin (opens every file)."""
    return sorted(paths, key=lambda p: (cache.file_begin(p), str(p)))
