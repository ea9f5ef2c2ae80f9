"""Tests for the data source facade and its settings file."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import numpy as np
import pytest

from pnrf_datasource import PnrfDataSource
from pnrf_datasource.errors import ConfigurationError
from pnrf_datasource.ingest.memory_source import MemoryRecordingSource, MemorySegment, single_channel_recording
from pnrf_datasource.ingest.recording import UtcTime
from pnrf_datasource.ingest.time_index import NS_PER_SECOND, utc_header_to_ticks
from pnrf_datasource.models import ReadRequest, SourceSettings, load_settings
from pnrf_datasource.models.catalog import CatalogResource, ResourceCatalog
from pnrf_datasource.models.settings import save_settings

CONFIG = {
    "CatalogId": "/TEST/PNRF",
    "Title": "Test recordings",
    "DataDirectory": "DATA",
    "GlobPattern": "*.pnrf",
}


def _write_config(root: Path, **overrides) -> None:
    (root / "config.json").write_text(json.dumps({**CONFIG, **overrides}), encoding="utf-8")


def _add_file(src: MemoryRecordingSource, path: Path, begin_s: float, channel: str = "U1", confidence: int = 100) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00")
    seg = MemorySegment(0.0, 1.0, begin_s + np.arange(100, dtype=np.float64))
    rec = single_channel_recording("G", "R", channel, [seg], utc=UtcTime(2024, 1, begin_s, True), unit="V")
    src.add(path, rec, confidence=confidence)


@pytest.fixture
def setup(tmp_path: Path):
    _write_config(tmp_path)
    src = MemoryRecordingSource()
    _add_file(src, tmp_path / "DATA" / "day1" / "rec_000.pnrf", 0.0)
    _add_file(src, tmp_path / "DATA" / "day1" / "rec_001.pnrf", 100.0, channel="I1")
    _add_file(src, tmp_path / "DATA" / "day2" / "rec_002.pnrf", 200.0)
    return tmp_path, src


def test_settings_accept_pascal_case(tmp_path: Path) -> None:
    _write_config(tmp_path, CatalogSourceFiles=["DATA/a.pnrf", "DATA/b.pnrf"], OrderBy="begin")
    s = load_settings(tmp_path / "config.json")
    assert s.catalog_id == "/TEST/PNRF"
    assert s.title == "Test recordings"
    assert s.catalog_source_files == ("DATA/a.pnrf", "DATA/b.pnrf")
    assert s.order_by == "begin"
    assert s.min_load_confidence == 1


def test_settings_round_trip(tmp_path: Path) -> None:
    s = SourceSettings(catalog_id="/X", data_directory="d", glob_pattern="*.pnrf", catalog_source_files=("a",))
    path = save_settings(s, tmp_path / "config.json")
    assert load_settings(path) == s
    assert SourceSettings.from_dict(s.to_dict()) == s


@pytest.mark.parametrize(
    "content",
    [
        None,
        "{not json",
        json.dumps({"CatalogId": "/X", "GlobPattern": "*.pnrf"}),
        json.dumps({**CONFIG, "Colour": "red"}),
        json.dumps({**CONFIG, "OrderBy": "size"}),
        json.dumps({**CONFIG, "CatalogSourceFiles": "DATA/a.pnrf"}),
        json.dumps([CONFIG]),
    ],
)
def test_bad_configuration(tmp_path: Path, content) -> None:
    if content is not None:
        (tmp_path / "config.json").write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(tmp_path / "config.json")


def test_registrations(setup) -> None:
    root, src = setup
    ds = PnrfDataSource(root, src)
    regs = ds.get_catalog_registrations("/")
    assert [(r.id, r.title) for r in regs] == [("/TEST/PNRF", "Test recordings")]
    assert ds.get_catalog_registrations("/TEST/") == []


def test_missing_config_surfaces_on_first_use(tmp_path: Path) -> None:
    ds = PnrfDataSource(tmp_path, MemoryRecordingSource())
    with pytest.raises(ConfigurationError):
        ds.get_catalog_registrations("/")


def test_catalog_from_first_file(setup) -> None:
    root, src = setup
    catalog = PnrfDataSource(root, src).get_catalog("/TEST/PNRF")
    assert catalog.id == "/TEST/PNRF"
    assert catalog.resource_ids == ["G_R_U1"]
    assert catalog.find("G_R_U1").unit == "V"


def test_catalog_from_configured_files(setup) -> None:
    root, src = setup
    _write_config(root, CatalogSourceFiles=["DATA/day1/rec_000.pnrf", "DATA/day1/rec_001.pnrf"])
    catalog = PnrfDataSource(root, src).enrich_catalog()
    assert catalog.resource_ids == ["G_R_U1", "G_R_I1"]


def test_enrich_keeps_existing_resources(setup) -> None:
    root, src = setup
    base = ResourceCatalog(id="/TEST/PNRF", resources=(CatalogResource(id="Extra"),))
    catalog = PnrfDataSource(root, src).enrich_catalog(base)
    assert catalog.resource_ids == ["Extra", "G_R_U1"]


def test_empty_directory_gives_empty_catalog(tmp_path: Path) -> None:
    _write_config(tmp_path)
    catalog = PnrfDataSource(tmp_path, MemoryRecordingSource()).enrich_catalog()
    assert catalog.resources == ()


def test_unknown_catalog(setup) -> None:
    root, src = setup
    with pytest.raises(KeyError):
        PnrfDataSource(root, src).get_catalog("/OTHER")


def test_read_across_discovered_files(setup) -> None:
    root, src = setup
    ds = PnrfDataSource(root, src)
    resource = ds.get_catalog("/TEST/PNRF").find("G_R_U1")
    rep = resource.representations[0]

    origin = utc_header_to_ticks(2024, 1, 0.0)
    begin, end = origin + 50 * NS_PER_SECOND, origin + 250 * NS_PER_SECOND
    req = ReadRequest.allocate(resource, rep, begin, end)
    ds.read(begin, end, [req])

    # U1 lives in the first and third file; the second only has I1
    expected = np.r_[np.ones(50), np.zeros(100), np.ones(50)].astype(bool)
    np.testing.assert_array_equal(req.status.astype(bool), expected)
    np.testing.assert_array_equal(req.data[:50], 50.0 + np.arange(50))
    np.testing.assert_array_equal(req.data[150:], 200.0 + np.arange(50))


def test_read_skips_files_below_confidence(setup) -> None:
    root, src = setup
    _add_file(src, root / "DATA" / "day2" / "rec_002.pnrf", 200.0, confidence=0)
    ds = PnrfDataSource(root, src)
    resource = ds.get_catalog("/TEST/PNRF").find("G_R_U1")

    origin = utc_header_to_ticks(2024, 1, 0.0)
    begin, end = origin + 200 * NS_PER_SECOND, origin + 250 * NS_PER_SECOND
    req = ReadRequest.allocate(resource, resource.representations[0], begin, end)
    ds.read(begin, end, [req])
    assert not req.status.any()
    assert Path(root / "DATA" / "day2" / "rec_002.pnrf").resolve() not in src.open_counts


def test_explicit_settings_skip_config_file(tmp_path: Path) -> None:
    settings = SourceSettings(catalog_id="/MEM", data_directory=".", glob_pattern="*.pnrf", title=None)
    ds = PnrfDataSource(tmp_path, MemoryRecordingSource(), settings=replace(settings, min_load_confidence=0))
    assert ds.get_catalog_registrations("/")[0].id == "/MEM"
    assert ds.discovery().check_loadability is False
