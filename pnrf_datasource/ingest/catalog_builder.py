"""Catalog builder: turns representative recordings into a ResourceCatalog.

Only analog channels whose mixed data source holds analog or digital
waveforms are cataloged. A channel needs at least one segment, since the
sample periods offered are inferred from its segments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence

from pnrf_datasource.errors import OpenError
from pnrf_datasource.ingest.naming import composite_channel_name, enforce_naming_convention
from pnrf_datasource.ingest.recording import (
    WAVEFORM_DATA_TYPES,
    Channel,
    ChannelType,
    DataSourceKind,
    Recording,
    RecordingSource,
)
from pnrf_datasource.ingest.time_index import RecordingCache, round_sample_period
from pnrf_datasource.models.catalog import (
    ORIGINAL_NAME_KEY,
    PNRF_GROUP_KEY,
    PNRF_RECORDER_KEY,
    CatalogResource,
    Representation,
    ResourceCatalog,
)

logger = logging.getLogger(__name__)


def build_resource(group_name: str, recorder_name: str, channel: Channel) -> Optional[CatalogResource]:
    """Catalog entry for one channel, or None if the channel cannot be cataloged."""
    channel_name = composite_channel_name(group_name, recorder_name, channel.name)
    logger.debug("Processing channel %s", channel_name)

    if channel.channel_type != ChannelType.ANALOG:
        logger.debug("Channel %s is not of type 'analog', skipping", channel_name)
        return None

    data_source = channel.data_source(DataSourceKind.MIXED)
    if data_source.data_type not in WAVEFORM_DATA_TYPES:
        logger.debug(
            "Data source of %s is of type %s instead of analog or digital waveform, skipping",
            channel_name, data_source.data_type.value,
        )
        return None

    segments = data_source.all_segments()
    if not segments:
        logger.debug("Channel %s has no data, unable to determine its sample period, skipping", channel_name)
        return None

    resource_id = enforce_naming_convention(channel_name)
    if resource_id is None:
        logger.debug("Channel %s has an invalid name, skipping", channel_name)
        return None

    periods = set()
    for seg in segments:
        try:
            periods.add(round_sample_period(seg.sample_interval))
        except ValueError:
            logger.debug("Channel %s: ignoring segment with sample interval %r", channel_name, seg.sample_interval)
    if not periods:
        logger.debug("Channel %s has no usable sample period, skipping", channel_name)
        return None

    unit = data_source.y_unit
    return CatalogResource(
        id=resource_id,
        unit=unit if unit and unit.strip() else None,
        groups=(f"{group_name} - {recorder_name}",),
        properties={
            ORIGINAL_NAME_KEY: channel.name,
            PNRF_GROUP_KEY: group_name,
            PNRF_RECORDER_KEY: recorder_name,
        },
        representations=tuple(Representation(sample_period=p) for p in sorted(periods)),
    )


def catalog_from_recording(recording: Recording, catalog_id: str) -> ResourceCatalog:
    resources: Dict[str, CatalogResource] = {}
    for group in recording.groups:
        for recorder in group.recorders:
            for channel in recorder.channels:
                res = build_resource(group.name, recorder.name, channel)
                if res is None:
                    continue
                prev = resources.get(res.id)
                if prev is not None:
                    # two channels sanitize to the same id within one file
                    logger.warning("Resource id %s defined twice, keeping the last definition", res.id)
                    res = prev.merge(res)
                resources[res.id] = res
    return ResourceCatalog(id=catalog_id, resources=tuple(resources.values()))


def build_catalog(
    source: RecordingSource,
    catalog_id: str,
    paths: Sequence[str | Path],
    base: Optional[ResourceCatalog] = None,
) -> ResourceCatalog:
    """
    Build (or enrich `base` with) the catalog defined by the given files.

    Files are merged in order; a later file wins on conflicting metadata for
    the same resource id. Files that cannot be opened are logged and skipped.
    """
    catalog = base if base is not None else ResourceCatalog(id=catalog_id)
    with RecordingCache(source) as cache:
        for path in paths:
            logger.info("Building catalog %s from %s", catalog_id, path)
            try:
                recording = cache.recording(path)
            except OpenError:
                logger.exception("Unable to open file %s, skipping it for catalog %s", path, catalog_id)
                continue
            catalog = catalog.merge(catalog_from_recording(recording, catalog_id))
    logger.debug("Catalog %s holds %d resource(s)", catalog_id, len(catalog.resources))
    return catalog
