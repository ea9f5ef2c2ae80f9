"""PNRF data source -- the host-facing facade.

Answers the three host queries:

1. catalog registrations for a path (one catalog at "/"),
2. catalog materialization (resources with their representations),
3. windowed reads into caller-owned buffers.

The decoder is injected; settings are read from ``config.json`` in the root
on first use unless given explicitly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from pnrf_datasource.ingest.catalog_builder import build_catalog
from pnrf_datasource.ingest.discovery import RecordingDiscovery
from pnrf_datasource.ingest.recording import RecordingSource
from pnrf_datasource.models.catalog import CatalogRegistration, ResourceCatalog
from pnrf_datasource.models.requests import ReadRequest
from pnrf_datasource.models.settings import SETTINGS_FILE_NAME, SourceSettings, load_settings
from pnrf_datasource.read.windowed import CancelSignal, ProgressCallback, read_window

logger = logging.getLogger(__name__)


class PnrfDataSource:
    def __init__(
        self,
        root: str | Path,
        source: RecordingSource,
        settings: Optional[SourceSettings] = None,
    ) -> None:
        self.root = Path(root).expanduser()
        self.source = source
        self._settings = settings

    @property
    def settings(self) -> SourceSettings:
        if self._settings is None:
            self._settings = load_settings(self.root / SETTINGS_FILE_NAME)
        return self._settings

    @property
    def search_dir(self) -> Path:
        return self.root / self.settings.data_directory

    def discovery(self) -> RecordingDiscovery:
        s = self.settings
        return RecordingDiscovery(
            search_dir=self.search_dir,
            glob_pattern=s.glob_pattern,
            min_confidence=s.min_load_confidence,
            check_loadability=s.min_load_confidence > 0,
        )

    def get_catalog_registrations(self, path: str) -> List[CatalogRegistration]:
        if path == "/":
            return [CatalogRegistration(self.settings.catalog_id, self.settings.title)]
        return []

    def catalog_source_files(self) -> List[Path]:
        """Files defining the catalog: the configured list, else the first file found."""
        configured = self.settings.catalog_source_files
        if configured is not None:
            return [self.root / f for f in configured]
        first = self.discovery().first_file()
        return [] if first is None else [first]

    def enrich_catalog(self, catalog: Optional[ResourceCatalog] = None) -> ResourceCatalog:
        catalog_id = self.settings.catalog_id
        files = self.catalog_source_files()
        if not files:
            logger.info("No recordings found in %s, catalog %s stays empty", self.search_dir, catalog_id)
        return build_catalog(self.source, catalog_id, files, base=catalog)

    def get_catalog(self, catalog_id: str) -> ResourceCatalog:
        if catalog_id != self.settings.catalog_id:
            raise KeyError(f"Unknown catalog '{catalog_id}'")
        return self.enrich_catalog()

    def read(
        self,
        begin,
        end,
        requests: Sequence[ReadRequest],
        *,
        cancel: Optional[CancelSignal] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        candidates = self.discovery().candidates(self.source)
        read_window(
            self.source,
            candidates,
            begin,
            end,
            requests,
            cancel=cancel,
            progress=progress,
            order_by=self.settings.order_by,
        )
