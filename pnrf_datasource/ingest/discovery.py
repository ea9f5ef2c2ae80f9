from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from pnrf_datasource.ingest.recording import RecordingSource

logger = logging.getLogger(__name__)


def find_files(search_dir: str | Path, glob_pattern: str) -> List[Path]:
    """
    Files matching glob_pattern anywhere below search_dir, sorted by path.

    Sorting by path is assumed to be chronological (recorders number their
    files). This does not hold once names stop sorting with time, e.g. when a
    counter gains a digit; SourceSettings.order_by = "begin" is the explicit alternative.
    """
    root = Path(search_dir)
    if not root.is_dir():
        logger.debug("Search directory %s does not exist", root)
        return []
    return sorted((p for p in root.rglob(glob_pattern) if p.is_file()), key=lambda p: str(p))


def filter_loadable(
    source: RecordingSource,
    paths: Sequence[Path],
    min_confidence: int = 1,
) -> List[Path]:
    """Drop files the decoder is not confident it can load (confidence 0..100)."""
    out: List[Path] = []
    for p in paths:
        confidence = int(source.confidence_to_load(p))
        if confidence < min_confidence:
            logger.debug("Decoder confidence %d for %s is below %d, skipping", confidence, p, min_confidence)
            continue
        out.append(p)
    return out


@dataclass
class RecordingDiscovery:
    """
    Candidate-file discovery for one data directory.

    check_loadability:
      - True: ask the decoder for its load confidence and drop files below min_confidence.
      - False: keep every file matching the pattern.
    """
    search_dir: Path
    glob_pattern: str
    min_confidence: int = 1
    check_loadability: bool = True

    def candidates(self, source: RecordingSource) -> List[Path]:
        files = find_files(self.search_dir, self.glob_pattern)
        if self.check_loadability:
            files = filter_loadable(source, files, self.min_confidence)
        if not files:
            logger.debug("No files found in %s matching %s", self.search_dir, self.glob_pattern)
        return files

    def first_file(self) -> Optional[Path]:
        files = find_files(self.search_dir, self.glob_pattern)
        return files[0] if files else None
