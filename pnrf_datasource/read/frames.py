from __future__ import annotations

import pandas as pd

from pnrf_datasource.ingest.time_index import ticks_to_timestamp, to_ticks
from pnrf_datasource.models.requests import STATUS_PRESENT, ReadRequest


def window_frame(request: ReadRequest, begin) -> pd.DataFrame:
    """
    Tabulate a filled request: one row per sample slot.

    Columns: 'time' (UTC slot start), 'value' (float64, NaN where absent),
    'present' (bool). Absent slots are kept so the time axis stays regular.
    """
    n = len(request.data)
    times = pd.date_range(
        start=ticks_to_timestamp(to_ticks(begin)),
        periods=n,
        freq=pd.Timedelta(request.sample_period, unit="ns"),
    )
    present = request.status == STATUS_PRESENT
    values = request.data.astype("float64", copy=True)
    values[~present] = float("nan")
    return pd.DataFrame({"time": times, "value": values, "present": present})
