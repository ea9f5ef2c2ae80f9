"""PNRF data source -- time-addressable access to HBM Perception recordings.

Exposes a directory of segmented PNRF recordings as a resource catalog and
serves windowed reads into caller-provided sample buffers.

This package provides tools for:
- Locating the recordings that overlap a requested time window
- Building a resource catalog (channels, units, sample periods) from representative files
- Copying exactly the overlapping samples into output buffers, with a presence mask

Key principles:
- Tick-exact time: integer nanoseconds throughout, sample periods rounded to 10 ns
- No resampling: segments contribute only at their own sample period
- Call-scoped resources: recordings are opened lazily and released per call

Main subpackages:
- ingest: Decoder interface and sources, file time index, discovery, catalog builder
- read: Windowed read engine and tabulation helpers
- models: Catalog, read request and settings data models
- scripts: Command-line inspection/export
"""

from pnrf_datasource.data_source import PnrfDataSource

__version__ = "0.3.0"

__all__ = ["PnrfDataSource", "__version__"]
