"""PNRF decoder adapter over the vendor COM loader (Windows only).

The Perception PNRF Reader installs a COM server whose recording objects are
exposed through pywin32 dynamic dispatch. This module adapts that loosely
typed graph to :mod:`pnrf_datasource.ingest.recording`; nothing else in the
package touches COM objects.

Reference: HBM "PNRF Reader toolkit" programming manual (i2697), section E
"Sweeps and Segments".

COM conventions
- collections are 1-based (``Count`` / ``Item(i)``)
- ``out`` parameters come back as return values
- enumeration arguments are plain integers; the values below follow the
  toolkit's type library and can be overridden through ``ComConstants``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

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

logger = logging.getLogger(__name__)

PNRF_LOADER_PROG_ID = "Perception.Loaders.pNRF"


@dataclass(frozen=True)
class ComConstants:
    """Integer values of the toolkit enumerations used by the adapter."""
    data_source_select: Dict[DataSourceKind, int] = field(default_factory=lambda: {
        DataSourceKind.NORMAL: 0,
        DataSourceKind.SWEEPS: 1,
        DataSourceKind.MIXED: 3,
    })
    channel_types: Dict[int, ChannelType] = field(default_factory=lambda: {
        0: ChannelType.ANALOG,
        1: ChannelType.DIGITAL,
        2: ChannelType.EVENT,
        3: ChannelType.TIMER,
    })
    data_types: Dict[int, DataSourceDataType] = field(default_factory=lambda: {
        0: DataSourceDataType.ANALOG_WAVEFORM,
        1: DataSourceDataType.DIGITAL_WAVEFORM,
        2: DataSourceDataType.EVENT,
    })
    result_type_double64: int = 5


def _com_items(collection: Any) -> List[Any]:
    if collection is None:
        return []
    return [collection.Item(i) for i in range(1, int(collection.Count) + 1)]


class ComSegment(Segment):
    def __init__(self, com: Any, constants: ComConstants) -> None:
        self._com = com
        self._constants = constants

    @property
    def start_time(self) -> float:
        return float(self._com.StartTime)

    @property
    def end_time(self) -> float:
        return float(self._com.EndTime)

    @property
    def sample_interval(self) -> float:
        return float(self._com.SampleInterval)

    @property
    def sample_count(self) -> int:
        return int(self._com.NumberOfSamples)

    def waveform(self, first_index: int, count: int) -> Optional[np.ndarray]:
        data = self._com.Waveform(self._constants.result_type_double64, int(first_index), int(count), 1)
        if data is None:
            return None
        return np.asarray(data, dtype=np.float64)


class ComDataSource(DataSource):
    def __init__(self, com: Any, constants: ComConstants) -> None:
        self._com = com
        self._constants = constants

    @property
    def data_type(self) -> DataSourceDataType:
        return self._constants.data_types.get(int(self._com.DataType), DataSourceDataType.UNKNOWN)

    @property
    def y_unit(self) -> Optional[str]:
        unit = self._com.YUnit
        return None if unit is None else str(unit)

    @property
    def sweep_range(self) -> Tuple[float, float]:
        sweeps = self._com.Sweeps
        return float(sweeps.StartTime), float(sweeps.EndTime)

    def segments(self, start: float, end: float) -> Optional[List[Segment]]:
        segments = self._com.Data(start, end)
        if segments is None:
            return None
        return [ComSegment(s, self._constants) for s in _com_items(segments)]

    def utc_time(self) -> UtcTime:
        year, day_of_year, seconds, valid = self._com.GetUTCTime()
        return UtcTime(int(year), int(day_of_year), float(seconds), bool(valid))


class ComChannel(Channel):
    def __init__(self, com: Any, recorder: "ComRecorder", constants: ComConstants) -> None:
        self._com = com
        self._recorder = recorder
        self._constants = constants

    @property
    def name(self) -> str:
        return str(self._com.Name)

    @property
    def recorder(self) -> "ComRecorder":
        return self._recorder

    @property
    def channel_type(self) -> ChannelType:
        return self._constants.channel_types.get(int(self._com.ChannelType), ChannelType.UNKNOWN)

    def data_source(self, kind: DataSourceKind = DataSourceKind.MIXED) -> ComDataSource:
        return ComDataSource(self._com.DataSource(self._constants.data_source_select[kind]), self._constants)


class ComRecorder(Recorder):
    def __init__(self, com: Any, group: "ComGroup", constants: ComConstants) -> None:
        self._com = com
        self._group = group
        self._channels = [ComChannel(c, self, constants) for c in _com_items(com.Channels)]

    @property
    def name(self) -> str:
        return str(self._com.Name)

    @property
    def group(self) -> "ComGroup":
        return self._group

    @property
    def channels(self) -> List[ComChannel]:
        return self._channels


class ComGroup(Group):
    def __init__(self, com: Any, constants: ComConstants) -> None:
        self._com = com
        self._recorders = [ComRecorder(r, self, constants) for r in _com_items(com.Recorders)]

    @property
    def name(self) -> str:
        return str(self._com.Name)

    @property
    def recorders(self) -> List[ComRecorder]:
        return self._recorders


class ComRecording(Recording):
    def __init__(self, com: Any, constants: ComConstants) -> None:
        self._com = com
        self._groups = [ComGroup(g, constants) for g in _com_items(com.Groups)]

    @property
    def groups(self) -> List[ComGroup]:
        return self._groups

    def close(self) -> None:
        # dropping the reference releases the COM object
        self._com = None


def _dispatch_loader() -> Any:
    import win32com.client  # pywin32, Windows only

    return win32com.client.Dispatch(PNRF_LOADER_PROG_ID)


class PnrfComSource(RecordingSource):
    """
    Recording source backed by the PNRF COM loader.

    The loader is created on first use; pass `loader_factory` to inject a
    different dispatch (tests use plain Python stand-ins).
    """

    def __init__(
        self,
        loader_factory: Callable[[], Any] = _dispatch_loader,
        constants: Optional[ComConstants] = None,
    ) -> None:
        self._loader_factory = loader_factory
        self._loader: Any = None
        self.constants = constants or ComConstants()

    @property
    def loader(self) -> Any:
        if self._loader is None:
            self._loader = self._loader_factory()
        return self._loader

    def open(self, path: str | Path) -> ComRecording:
        p = str(Path(path))
        try:
            com = self.loader.LoadRecording(p)
            recording = None if com is None else ComRecording(com, self.constants)
        except Exception as e:
            raise OpenError(p, str(e)) from e
        if recording is None:
            raise OpenError(p, "loader returned no recording")
        return recording

    def confidence_to_load(self, path: str | Path) -> int:
        return int(self.loader.CanLoadRecording(str(Path(path))))
