"""Inspect a PNRF data source and export time windows.

Examples::

    python -m pnrf_datasource.scripts.export_window D:/data/test catalog
    python -m pnrf_datasource.scripts.export_window D:/data/test read \\
        --resource Group1_Rec1_U1 --begin 2024-03-01T10:00:00 --end 2024-03-01T10:00:01 \\
        --period 20_us --out u1.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import textwrap
from pathlib import Path
from typing import Optional, Sequence

from pnrf_datasource.data_source import PnrfDataSource
from pnrf_datasource.errors import PnrfSourceError
from pnrf_datasource.ingest.recording import RecordingSource
from pnrf_datasource.ingest.time_index import to_ticks
from pnrf_datasource.models.catalog import parse_sample_period
from pnrf_datasource.models.requests import ReadRequest
from pnrf_datasource.read.frames import window_frame

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
        root_logger.addHandler(handler)


def _cmd_catalog(ds: PnrfDataSource, ns: argparse.Namespace) -> int:
    catalog = ds.enrich_catalog()
    if ns.json:
        Path(ns.json).write_text(json.dumps(catalog.to_dict(), indent=2), encoding="utf-8")
        print(f"[info] wrote catalog {catalog.id} to {ns.json}")
    df = catalog.to_dataframe()
    if df.empty:
        print(f"Catalog {catalog.id} has no resources.")
    else:
        print(df[["id", "representation", "unit", "group"]].to_string(index=False))
    return 0


def _cmd_read(ds: PnrfDataSource, ns: argparse.Namespace) -> int:
    begin = to_ticks(ns.begin)
    end = to_ticks(ns.end)
    catalog = ds.enrich_catalog()
    resource = catalog.find(ns.resource)
    if ns.period:
        representation = resource.find_representation(parse_sample_period(ns.period))
    else:
        if len(resource.representations) != 1:
            labels = ", ".join(r.id for r in resource.representations)
            print(f"[error] {resource.id} offers several sample periods ({labels}); choose one with --period")
            return 2
        representation = resource.representations[0]

    request = ReadRequest.allocate(resource, representation, begin, end)
    ds.read(begin, end, [request])

    df = window_frame(request, begin)
    n_present = int(df["present"].sum())
    if ns.out:
        df.to_csv(ns.out, index=False)
        print(f"[info] wrote {len(df)} rows ({n_present} present) to {ns.out}")
    else:
        print(df.to_string(index=False, max_rows=40))
    return 0


def main(argv: Optional[Sequence[str]] = None, source: Optional[RecordingSource] = None) -> int:
    p = argparse.ArgumentParser(
        prog="python -m pnrf_datasource.scripts.export_window",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            List the resource catalog of a PNRF data source or export one time window.

            ROOT must contain config.json (catalog id, data directory, glob pattern).
            Times are ISO 8601; naive times are taken as UTC.
            """
        ),
    )
    p.add_argument("root", help="Data source root (contains config.json)")
    p.add_argument("--debug", "-d", action="store_true", help="Enable DEBUG logging")
    sub = p.add_subparsers(dest="command", required=True)

    cat_p = sub.add_parser("catalog", help="Print the resource catalog")
    cat_p.add_argument("--json", default=None, help="Also write the catalog as JSON to this path")

    read_p = sub.add_parser("read", help="Read one resource over [begin, end)")
    read_p.add_argument("--resource", required=True, help="Resource id as listed by 'catalog'")
    read_p.add_argument("--begin", required=True, help="Window begin (inclusive)")
    read_p.add_argument("--end", required=True, help="Window end (exclusive)")
    read_p.add_argument("--period", default=None, help="Sample period label, e.g. 20_us (required if several)")
    read_p.add_argument("--out", default=None, help="CSV output path (default: print)")

    ns = p.parse_args(list(argv) if argv is not None else None)
    configure_logging(ns.debug)

    if source is None:
        from pnrf_datasource.ingest.pnrf_com import PnrfComSource

        source = PnrfComSource()

    ds = PnrfDataSource(ns.root, source)
    try:
        if ns.command == "catalog":
            return _cmd_catalog(ds, ns)
        return _cmd_read(ds, ns)
    except (PnrfSourceError, KeyError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"[error] {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
