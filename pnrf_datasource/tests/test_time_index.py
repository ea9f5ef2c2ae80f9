import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pandas as pd

from pnrf_datasource.errors import InvalidTimeError, NoChannelsError, OpenError
from pnrf_datasource.ingest.memory_source import (
    MemoryRecording,
    MemoryRecordingSource,
    MemorySegment,
    single_channel_recording,
)
from pnrf_datasource.ingest.recording import UtcTime
from pnrf_datasource.ingest.time_index import (
    NS_PER_SECOND,
    RecordingCache,
    find_nearest_file_index,
    resolve_file_begin,
    round_sample_period,
    sort_by_begin,
    to_ticks,
    ticks_to_timestamp,
    utc_header_to_ticks,
)


def _recording_at(seconds: float, valid: bool = True) -> MemoryRecording:
    seg = MemorySegment(0.0, 1.0, np.zeros(4))
    return single_channel_recording("G", "R", "C", [seg], utc=UtcTime(2024, 1, seconds, valid))


def _source_with_begins(begins_s):
    src = MemoryRecordingSource()
    paths = []
    for k, b in enumerate(begins_s):
        p = f"/data/rec_{k:03d}.pnrf"
        src.add(p, _recording_at(b))
        paths.append(p)
    return src, paths


class TestSamplePeriodRounding(unittest.TestCase):
    def test_float_noise_normalises(self):
        self.assertEqual(round_sample_period(1.9999999999999998e-05), 20_000)
        self.assertEqual(round_sample_period(2.0e-05), 20_000)
        self.assertNotEqual(round_sample_period(2.1e-05), 20_000)

    def test_ten_nanosecond_precision(self):
        self.assertEqual(round_sample_period(1e-8), 10)
        self.assertEqual(round_sample_period(1.0), NS_PER_SECOND)
        self.assertEqual(round_sample_period(0.001), 1_000_000)

    def test_rejects_unusable_intervals(self):
        for bad in (0.0, -1e-3, float("nan"), float("inf"), 1e-10):
            with self.assertRaises(ValueError):
                round_sample_period(bad)


class TestTicks(unittest.TestCase):
    def test_utc_header(self):
        # 2024 is a leap year: day 61 is March 1st
        ticks = utc_header_to_ticks(2024, 61, 36000.0)
        self.assertEqual(ticks, to_ticks("2024-03-01T10:00:00"))
        self.assertEqual(ticks_to_timestamp(ticks), pd.Timestamp("2024-03-01T10:00:00", tz="UTC"))

    def test_utc_header_keeps_sub_microsecond_seconds(self):
        base = utc_header_to_ticks(2023, 1, 0.0)
        self.assertEqual(utc_header_to_ticks(2023, 1, 1.23456789) - base, 1_234_567_890)

    def test_to_ticks_inputs(self):
        aware = datetime(2024, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=1)))
        naive = datetime(2024, 1, 1, 0, 0)
        self.assertEqual(to_ticks(aware), to_ticks(naive))
        self.assertEqual(to_ticks(np.datetime64("2024-01-01T00:00:00")), to_ticks(naive))
        self.assertEqual(to_ticks(12345), 12345)


class TestFileBegin(unittest.TestCase):
    def test_resolve_and_memoize(self):
        src, paths = _source_with_begins([10.0])
        with RecordingCache(src) as cache:
            b1 = resolve_file_begin(cache, paths[0])
            b2 = resolve_file_begin(cache, paths[0])
        self.assertEqual(b1, b2)
        self.assertEqual(b1, utc_header_to_ticks(2024, 1, 10.0))
        self.assertEqual(src.open_counts[Path(paths[0])], 1)

    def test_no_channels(self):
        src = MemoryRecordingSource()
        src.add("/data/empty.pnrf", MemoryRecording([]))
        with RecordingCache(src) as cache:
            with self.assertRaises(NoChannelsError):
                resolve_file_begin(cache, "/data/empty.pnrf")

    def test_invalid_header(self):
        src = MemoryRecordingSource()
        src.add("/data/bad.pnrf", _recording_at(0.0, valid=False))
        with RecordingCache(src) as cache:
            with self.assertRaises(InvalidTimeError):
                resolve_file_begin(cache, "/data/bad.pnrf")

    def test_unknown_file_raises_open_error(self):
        with RecordingCache(MemoryRecordingSource()) as cache:
            with self.assertRaises(OpenError):
                resolve_file_begin(cache, "/data/missing.pnrf")

    def test_cache_close_releases_recordings(self):
        src, paths = _source_with_begins([10.0, 20.0])
        cache = RecordingCache(src)
        recs = [cache.recording(p) for p in paths]
        cache.close()
        self.assertTrue(all(r.closed for r in recs))
        self.assertEqual(cache.open_paths, [])


class TestFloorSearch(unittest.TestCase):
    def _index(self, begins, target_s):
        src, paths = _source_with_begins(begins)
        with RecordingCache(src) as cache:
            return find_nearest_file_index(cache, paths, utc_header_to_ticks(2024, 1, target_s))

    def test_between_files_rounds_down(self):
        self.assertEqual(self._index([10, 20, 30], 25), 1)

    def test_exact_match(self):
        self.assertEqual(self._index([10, 20, 30], 10), 0)
        self.assertEqual(self._index([10, 20, 30], 20), 1)
        self.assertEqual(self._index([10, 20, 30], 30), 2)

    def test_before_first_clamps_to_zero(self):
        self.assertEqual(self._index([10, 20, 30], 5), 0)

    def test_after_last(self):
        self.assertEqual(self._index([10, 20, 30], 35), 2)

    def test_larger_lists(self):
        begins = [10 * k for k in range(1, 18)]
        for target in (9, 10, 11, 55, 60, 169, 170, 500):
            expected = max([i for i, b in enumerate(begins) if b <= target], default=0)
            self.assertEqual(self._index(begins, target), expected, msg=f"target={target}")

    def test_each_file_opened_once(self):
        src, paths = _source_with_begins([10 * k for k in range(1, 9)])
        with RecordingCache(src) as cache:
            for target in (15, 35, 75):
                find_nearest_file_index(cache, paths, utc_header_to_ticks(2024, 1, target))
        self.assertTrue(all(n == 1 for n in src.open_counts.values()))

    def test_invalid_header_propagates(self):
        src, paths = _source_with_begins([10, 20, 30])
        src.add(paths[1], _recording_at(20, valid=False))
        with RecordingCache(src) as cache:
            with self.assertRaises(InvalidTimeError):
                find_nearest_file_index(cache, paths, utc_header_to_ticks(2024, 1, 25))

    def test_sort_by_begin(self):
        src, paths = _source_with_begins([30, 10, 20])
        with RecordingCache(src) as cache:
            ordered = sort_by_begin(cache, paths)
        self.assertEqual(ordered, [paths[1], paths[2], paths[0]])


if __name__ == "__main__":
    unittest.main()
