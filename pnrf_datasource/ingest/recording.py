"""Narrow interface over a recording decoder.

The vendor decoder exposes a loosely typed object graph

    recording -> groups -> recorders -> channels -> data sources -> segments

Only the operations needed by the time index, the catalog builder and the
read engine are modelled here. Concrete sources adapt the decoder to these
classes (see :mod:`pnrf_datasource.ingest.pnrf_com`) or build the graph in
memory (see :mod:`pnrf_datasource.ingest.memory_source`).

Thread safety:
    Not thread-safe. A source is used by one catalog build or one read
    call at a time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np


class ChannelType(Enum):
    ANALOG = "analog"
    DIGITAL = "digital"
    EVENT = "event"
    TIMER = "timer"
    UNKNOWN = "unknown"


class DataSourceDataType(Enum):
    ANALOG_WAVEFORM = "analog_waveform"
    DIGITAL_WAVEFORM = "digital_waveform"
    EVENT = "event"
    UNKNOWN = "unknown"


WAVEFORM_DATA_TYPES = frozenset({DataSourceDataType.ANALOG_WAVEFORM, DataSourceDataType.DIGITAL_WAVEFORM})


class DataSourceKind(Enum):
    """Which view of a channel's sweeps to use.

    MIXED combines all sweeps and is the safe default access path.
    """
    NORMAL = "normal"
    MIXED = "mixed"
    SWEEPS = "sweeps"


class UtcTime(NamedTuple):
    """UTC header of a data source: year, 1-based day of year, seconds within the day."""
    year: int
    day_of_year: int
    seconds: float
    valid: bool


class Segment(ABC):
    """A contiguous run of uniformly spaced samples.

    start_time/end_time are offsets in seconds relative to the file begin.
    sample_interval is in seconds and may carry binary floating-point noise.
    """

    @property
    @abstractmethod
    def start_time(self) -> float: ...

    @property
    @abstractmethod
    def end_time(self) -> float: ...

    @property
    @abstractmethod
    def sample_interval(self) -> float: ...

    @property
    @abstractmethod
    def sample_count(self) -> int: ...

    @abstractmethod
    def waveform(self, first_index: int, count: int) -> Optional[np.ndarray]:
        """Return `count` float64 samples starting at the 1-based `first_index`, or None."""


class DataSource(ABC):
    @property
    @abstractmethod
    def data_type(self) -> DataSourceDataType: ...

    @property
    @abstractmethod
    def y_unit(self) -> Optional[str]: ...

    @property
    @abstractmethod
    def sweep_range(self) -> Tuple[float, float]:
        """(start, end) of all sweeps, in seconds relative to the file begin."""

    @abstractmethod
    def segments(self, start: float, end: float) -> Optional[List[Segment]]:
        """Segments overlapping [start, end], ordered by start time; None if there is no data."""

    @abstractmethod
    def utc_time(self) -> UtcTime: ...

    def all_segments(self) -> Optional[List[Segment]]:
        """Segments over the full sweep range (simple and conservative)."""
        start, end = self.sweep_range
        return self.segments(start, end)


class Channel(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def recorder(self) -> "Recorder": ...

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType: ...

    @abstractmethod
    def data_source(self, kind: DataSourceKind = DataSourceKind.MIXED) -> DataSource: ...


class Recorder(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def group(self) -> "Group": ...

    @property
    @abstractmethod
    def channels(self) -> Sequence[Channel]: ...


class Group(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def recorders(self) -> Sequence[Recorder]: ...


class Recording(ABC):
    """One opened file's decoded object graph."""

    @property
    @abstractmethod
    def groups(self) -> Sequence[Group]: ...

    @property
    def channels(self) -> List[Channel]:
        """All channels in document order (group, then recorder, then channel)."""
        return [ch for g in self.groups for rec in g.recorders for ch in rec.channels]

    def close(self) -> None:
        """Release decoder resources. Default: nothing to release."""


class RecordingSource(ABC):
    """Injected decoder handle."""

    @abstractmethod
    def open(self, path: str | Path) -> Recording:
        """Open a recording. Raises :class:`~pnrf_datasource.errors.OpenError`."""

    @abstractmethod
    def confidence_to_load(self, path: str | Path) -> int:
        """Confidence in [0, 100] that `path` can be loaded; 0 means definitely unreadable."""
