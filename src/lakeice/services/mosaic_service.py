# src/lakeice/services/mosaic_service.py
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Dict, List, Sequence

import numpy as np

from ..contracts.geo import GeoRaster, validate_grid_compat
from ..contracts.scenes import DATE_ID_FORMAT, Scene, SceneStack
from .parallel import parallel_map

logger = logging.getLogger(__name__)


def mosaic_scenes(scenes: Sequence[Scene], day: date) -> Scene:
    """
    Compone escenas de una misma fecha: por banda, el último valor válido
    (en orden de entrada) gana en cada píxel.
    """
    if not scenes:
        raise ValueError("mosaic_scenes requiere al menos una escena")
    ref = scenes[0].profile
    names: List[str] = []
    for s in scenes:
        validate_grid_compat(ref, s.profile)
        names.extend(n for n in s.band_names() if n not in names)

    bands: Dict[str, GeoRaster] = {}
    for name in names:
        acc = np.full(ref.shape, np.nan, dtype=np.float64)
        for s in scenes:
            if name not in s.bands:
                continue
            layer = s.bands[name].data
            acc = np.where(np.isfinite(layer), layer, acc)
        bands[name] = GeoRaster(acc, ref)

    ts = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return Scene(scene_id=ts.strftime(DATE_ID_FORMAT), timestamp=ts, bands=bands)


def mosaic_by_date(stack: SceneStack, max_workers: int = 1) -> SceneStack:
    """
    Una escena por fecha UTC distinta, con timestamp a medianoche e id
    YYYY-MM-DD. Salida ordenada por fecha DESCENDENTE (first() = más reciente).
    """
    groups: "OrderedDict[date, List[Scene]]" = OrderedDict()
    for s in stack:
        groups.setdefault(s.acq_date, []).append(s)
    if not groups:
        return SceneStack()
    logger.debug(f"mosaico: {len(stack)} escenas -> {len(groups)} fechas")
    mosaics = parallel_map(lambda kv: mosaic_scenes(kv[1], kv[0]), list(groups.items()), max_workers=max_workers)
    return SceneStack(scenes=tuple(mosaics)).sort(ascending=False)


__all__ = ["mosaic_by_date", "mosaic_scenes"]
