"""In-memory recording source.

Builds the decoder object graph from plain numpy arrays. Used by the test
suite and for synthetic recordings; behaves like the vendor decoder at the
interface boundary (1-based waveform indexing, None for missing data).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from pnrf_datasource.errors import OpenError
from pnrf_datasource.ingest.recording import (
    Channel,
    ChannelType,
    DataSource,
    DataSourceDataType,
    DataSourceKind,
    Group,
    Recorder,
    Recording,
    RecordingSource,
    Segment,
    UtcTime,
)


@dataclass(eq=False)
class MemorySegment(Segment):
    """Segment backed by a float64 array.

    end_time defaults to start_time + n * interval when not given.
    """
    _start_time: float
    _sample_interval: float
    samples: np.ndarray
    _end_time: Optional[float] = None

    def __post_init__(self) -> None:
        self.samples = np.asarray(self.samples, dtype=np.float64)
        if self._end_time is None:
            self._end_time = self._start_time + len(self.samples) * self._sample_interval

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def end_time(self) -> float:
        return float(self._end_time)

    @property
    def sample_interval(self) -> float:
        return self._sample_interval

    @property
    def sample_count(self) -> int:
        return int(len(self.samples))

    def waveform(self, first_index: int, count: int) -> Optional[np.ndarray]:
        i0 = int(first_index) - 1
        if i0 < 0 or count <= 0 or i0 >= len(self.samples):
            return None
        return self.samples[i0:i0 + int(count)].copy()


@dataclass(eq=False)
class MemoryDataSource(DataSource):
    segment_list: List[MemorySegment] = field(default_factory=list)
    utc: UtcTime = UtcTime(2024, 1, 0.0, True)
    unit: Optional[str] = None
    kind_data_type: DataSourceDataType = DataSourceDataType.ANALOG_WAVEFORM

    @property
    def data_type(self) -> DataSourceDataType:
        return self.kind_data_type

    @property
    def y_unit(self) -> Optional[str]:
        return self.unit

    @property
    def sweep_range(self) -> Tuple[float, float]:
        if not self.segment_list:
            return (0.0, 0.0)
        return (
            min(s.start_time for s in self.segment_list),
            max(s.end_time for s in self.segment_list),
        )

    def segments(self, start: float, end: float) -> Optional[List[Segment]]:
        hits: List[Segment] = [s for s in self.segment_list if s.end_time >= start and s.start_time <= end]
        return hits or None

    def utc_time(self) -> UtcTime:
        return self.utc


class MemoryChannel(Channel):
    def __init__(
        self,
        name: str,
        data_source: Optional[MemoryDataSource] = None,
        channel_type: ChannelType = ChannelType.ANALOG,
    ) -> None:
        self._name = name
        self._data_source = data_source or MemoryDataSource()
        self._channel_type = channel_type
        self._recorder: Optional[MemoryRecorder] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def recorder(self) -> "MemoryRecorder":
        if self._recorder is None:
            raise RuntimeError(f"Channel '{self._name}' is not attached to a recorder.")
        return self._recorder

    @property
    def channel_type(self) -> ChannelType:
        return self._channel_type

    def data_source(self, kind: DataSourceKind = DataSourceKind.MIXED) -> MemoryDataSource:
        return self._data_source


class MemoryRecorder(Recorder):
    def __init__(self, name: str, channels: Sequence[MemoryChannel] = ()) -> None:
        self._name = name
        self._channels = list(channels)
        self._group: Optional[MemoryGroup] = None
        for ch in self._channels:
            ch._recorder = self

    @property
    def name(self) -> str:
        return self._name

    @property
    def group(self) -> "MemoryGroup":
        if self._group is None:
            raise RuntimeError(f"Recorder '{self._name}' is not attached to a group.")
        return self._group

    @property
    def channels(self) -> List[MemoryChannel]:
        return self._channels


class MemoryGroup(Group):
    def __init__(self, name: str, recorders: Sequence[MemoryRecorder] = ()) -> None:
        self._name = name
        self._recorders = list(recorders)
        for rec in self._recorders:
            rec._group = self

    @property
    def name(self) -> str:
        return self._name

    @property
    def recorders(self) -> List[MemoryRecorder]:
        return self._recorders


class MemoryRecording(Recording):
    def __init__(self, groups: Sequence[MemoryGroup] = ()) -> None:
        self._groups = list(groups)
        self.closed = False

    @property
    def groups(self) -> List[MemoryGroup]:
        return self._groups

    def close(self) -> None:
        self.closed = True


class MemoryRecordingSource(RecordingSource):
    """Registry of in-memory recordings keyed by resolved path.

    open_counts tracks how many times each path was opened, which makes the
    per-call memoization observable.
    """

    def __init__(self) -> None:
        self._recordings: Dict[Path, MemoryRecording] = {}
        self._confidence: Dict[Path, int] = {}
        self.open_counts: Dict[Path, int] = {}

    @staticmethod
    def _key(path: str | Path) -> Path:
        return Path(path).expanduser().resolve()

    def add(self, path: str | Path, recording: MemoryRecording, *, confidence: int = 100) -> MemoryRecording:
        key = self._key(path)
        self._recordings[key] = recording
        self._confidence[key] = int(confidence)
        return recording

    def open(self, path: str | Path) -> MemoryRecording:
        key = self._key(path)
        self.open_counts[key] = self.open_counts.get(key, 0) + 1
        rec = self._recordings.get(key)
        if rec is None:
            raise OpenError(key, "not a registered recording")
        return rec

    def confidence_to_load(self, path: str | Path) -> int:
        return self._confidence.get(self._key(path), 0)


def single_channel_recording(
    group: str,
    recorder: str,
    channel: str,
    segments: Sequence[MemorySegment],
    *,
    utc: UtcTime,
    unit: Optional[str] = None,
) -> MemoryRecording:
    """Convenience builder for a recording holding exactly one analog channel."""
    ds = MemoryDataSource(segment_list=list(segments), utc=utc, unit=unit)
    return MemoryRecording([MemoryGroup(group, [MemoryRecorder(recorder, [MemoryChannel(channel, ds)])])])
