# src/lakeice/services/timeseries_service.py
from __future__ import annotations

import numpy as np
import pandas as pd

from ..contracts.scenes import SceneStack
from .frost_filter_service import SMOOTH_BAND

SERIES_COLUMNS = ("date", "median", "valid_pixels")


def median_series(stack: SceneStack, band: str = SMOOTH_BAND) -> pd.DataFrame:
    """Mediana regional de `band` por fecha (ascendente). Fechas sin píxeles válidos: NaN."""
    rows = []
    for scene in stack.sort(ascending=True):
        r = scene.band(band)
        vals = r.data[r.valid]
        rows.append({
            "date": pd.Timestamp(scene.timestamp),
            "median": float(np.median(vals)) if vals.size else np.nan,
            "valid_pixels": int(vals.size),
        })
    return pd.DataFrame(rows, columns=list(SERIES_COLUMNS))


__all__ = ["median_series", "SERIES_COLUMNS"]
