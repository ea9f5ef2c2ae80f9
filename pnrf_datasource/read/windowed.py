"""Windowed read engine.

Fills caller-owned request buffers with the samples of [begin, end) found in
a time-ordered list of recordings.

Per file and request the channel's segments are scanned in order::

              begin |          | end
    segment     [                   ]     read [begin, end)
                         [          ]     read [segment begin, end)
                         [ ]              read the whole segment
                [          ]              read [begin, segment end)

All offsets and counts are integer tick divisions; nothing is resampled, so a
segment only contributes when its rounded sample period equals the
requested one. Slots no segment covers keep status 0 (absent).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

import numpy as np

from pnrf_datasource.errors import FileTimeError, OpenError, ReadCancelledError
from pnrf_datasource.ingest.recording import Channel, DataSourceKind, Recording, RecordingSource
from pnrf_datasource.ingest.time_index import (
    RecordingCache,
    find_nearest_file_index,
    round_sample_period,
    seconds_to_ticks,
    sort_by_begin,
    ticks_to_timestamp,
    to_ticks,
)
from pnrf_datasource.models.catalog import ChannelKey
from pnrf_datasource.models.requests import STATUS_PRESENT, ReadRequest
from pnrf_datasource.models.settings import ORDER_BY_BEGIN, ORDER_BY_NAME

logger = logging.getLogger(__name__)


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


ProgressCallback = Callable[[float], None]


def find_channel(recording: Recording, key: ChannelKey) -> Optional[Channel]:
    for channel in recording.channels:
        recorder = channel.recorder
        if channel.name == key.name and recorder.name == key.recorder and recorder.group.name == key.group:
            return channel
    return None


def _check_cancel(cancel: Optional[CancelSignal]) -> None:
    if cancel is not None and cancel.is_set():
        raise ReadCancelledError("Read cancelled")


def _copy_samples(request: ReadRequest, dest_offset: int, samples: np.ndarray) -> int:
    n = min(len(samples), len(request.data) - dest_offset)
    if n <= 0:
        return 0
    request.data[dest_offset:dest_offset + n] = samples[:n]
    request.status[dest_offset:dest_offset + n] = STATUS_PRESENT
    return n


def read_channel_segments(
    recording: Recording,
    file_begin: int,
    begin: int,
    end: int,
    request: ReadRequest,
) -> int:
    """Copy one file's matching samples for one request; returns the number of samples written."""
    key = request.channel_key
    channel = find_channel(recording, key)
    if channel is None:
        logger.debug("Channel %s not found, skipping", key.name)
        return 0

    logger.debug("Processing channel %s", key.name)
    segments = channel.data_source(DataSourceKind.MIXED).all_segments()
    if not segments:
        logger.debug("No segments available, skipping")
        return 0

    period = request.sample_period
    written = 0
    logger.debug("Processing %d segment(s)", len(segments))

    for number, segment in enumerate(segments):
        try:
            segment_period = round_sample_period(segment.sample_interval)
        except ValueError:
            logger.debug("Segment %d has an unusable sample interval %r, skipping", number, segment.sample_interval)
            continue
        if segment_period != period:
            logger.debug("Segment %d has no matching sample period, skipping", number)
            continue

        segment_begin = file_begin + seconds_to_ticks(segment.start_time)
        if segment_begin >= end:
            logger.debug("No more segments found for the requested time period, leaving")
            break

        segment_end = file_begin + seconds_to_ticks(segment.end_time)
        if segment_end < begin:
            logger.debug("Segment %d does not contain data for the requested period, skipping", number)
            continue

        read_begin = max(begin, segment_begin)
        read_end = min(end, segment_end)

        segment_offset = (read_begin - segment_begin) // period
        count = (read_end - read_begin) // period
        if count <= 0:
            continue

        # decoder sample indices are 1-based
        samples = segment.waveform(segment_offset + 1, count)
        if samples is None or len(samples) == 0:
            logger.debug("No data available in segment %d, skipping", number)
            continue
        if len(samples) < count:
            logger.debug("Segment %d returned %d of %d requested samples", number, len(samples), count)

        dest_offset = (read_begin - begin) // period
        written += _copy_samples(request, dest_offset, np.asarray(samples, dtype=np.float64))

    return written


def read_window(
    source: RecordingSource,
    paths: Sequence[str | Path],
    begin,
    end,
    requests: Sequence[ReadRequest],
    *,
    cancel: Optional[CancelSignal] = None,
    progress: Optional[ProgressCallback] = None,
    order_by: str = ORDER_BY_NAME,
) -> None:
    """
    Fill every request's buffers with the data of [begin, end).

    paths are the candidate recordings, sorted by name (assumed to be
    chronological) unless order_by is "begin". Missing channels, mismatched
    periods and empty segments are skipped. A file that cannot be opened or
    has no usable begin time is logged and skipped; the same errors raised
    while searching the first file propagate.
    """
    begin = to_ticks(begin)
    end = to_ticks(end)
    if end <= begin:
        raise ValueError(f"end must be after begin (begin={begin}, end={end})")
    if order_by not in (ORDER_BY_NAME, ORDER_BY_BEGIN):
        raise ValueError(f"order_by must be '{ORDER_BY_NAME}' or '{ORDER_BY_BEGIN}', got {order_by!r}")
    for request in requests:
        request.validate(begin, end)

    files: List[str | Path] = list(paths)
    if not files:
        logger.debug("No files found")
        return

    with RecordingCache(source) as cache:
        if order_by == ORDER_BY_BEGIN:
            files = sort_by_begin(cache, files)

        first = find_nearest_file_index(cache, files, begin)
        logger.debug("Nearest file for %s is %s", ticks_to_timestamp(begin), files[first])

        n_files = len(files) - first
        previous_begin: Optional[int] = None
        reported = 0.0

        for i in range(first, len(files)):
            _check_cancel(cancel)
            path = files[i]
            done = (i - first + 1) / n_files
            try:
                file_begin = cache.file_begin(path)
            except (OpenError, FileTimeError):
                logger.exception("Unable to process file %s, skipping", path)
                if progress is not None:
                    progress(done)
                    reported = done
                continue

            logger.debug("Current file begin is %s", ticks_to_timestamp(file_begin))
            if file_begin >= end:
                logger.debug("No more files found for the requested time period, leaving")
                break
            if previous_begin is not None and file_begin < previous_begin:
                logger.warning("File %s begins before its predecessor; file names do not sort chronologically", path)
            previous_begin = file_begin

            logger.debug("Processing file %s", path)
            recording = cache.recording(path)
            for request in requests:
                _check_cancel(cancel)
                read_channel_segments(recording, file_begin, begin, end, request)

            if progress is not None:
                progress(done)
                reported = done

    # leaving early skips the remaining files
    if progress is not None and reported < 1.0:
        progress(1.0)
