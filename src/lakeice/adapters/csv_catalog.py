# =============================
# FILE: src/lakeice/adapters/csv_catalog.py
# =============================
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..contracts.scenes import Scene, SceneStack, to_utc
from ..ports.catalog import SceneCatalogPort, SceneQuery, metadata_matches
from ..ports.raster_read import RasterReaderPort

logger = logging.getLogger(__name__)

# Column maps tolerantes a distintas nomenclaturas
SCENE_COLMAP: Dict[str, Tuple[str, ...]] = {
    "scene_id": ("scene_id", "SCENE_ID", "system:index", "id", "product_id"),
    "path": ("path", "asset_path", "filepath", "file", "product_path"),
    "datetime": ("datetime", "system:time_start", "acq_datetime", "sensing_time", "date", "time"),
    "polarisation": ("transmitterReceiverPolarisation", "polarisation", "polarization", "pol"),
    "orbit_pass": ("orbitProperties_pass", "orbit_pass", "pass", "orbit_direction"),
    "band": ("band", "BAND"),
}

LIST_SEPARATORS = (";", "|", " ")


def _first_present(df: pd.DataFrame, candidates: Tuple[str, ...]) -> Optional[str]:
    for c in candidates:
        if c in df.columns:
            return c
    return None


def _standardize(df: pd.DataFrame, colmap: Dict[str, Tuple[str, ...]]) -> pd.DataFrame:
    out = pd.DataFrame(index=df.index)
    keep_extra: List[str] = []
    for std, cands in colmap.items():
        col = _first_present(df, cands)
        if col is None:
            out[std] = pd.Series([None] * len(df), index=df.index)
        else:
            out[std] = df[col]
    # Extras
    for c in df.columns:
        if all(c not in cands for cands in colmap.values()):
            keep_extra.append(c)
    if keep_extra:
        out["_extras"] = df[keep_extra].to_dict(orient="records")
    else:
        out["_extras"] = [{} for _ in range(len(df))]
    return out


def _is_missing(val: Any) -> bool:
    return val is None or (isinstance(val, float) and pd.isna(val))


def _parse_datetime(val: Any) -> Optional[datetime]:
    if _is_missing(val):
        return None
    if isinstance(val, datetime):
        return to_utc(val)
    # epoch en milisegundos (system:time_start)
    if isinstance(val, (int, float, np.integer, np.floating)):
        return to_utc(pd.to_datetime(int(val), unit="ms").to_pydatetime())
    s = str(val).strip()
    if not s:
        return None
    if s.isdigit() and len(s) >= 12:
        return to_utc(pd.to_datetime(int(s), unit="ms").to_pydatetime())
    ts = pd.to_datetime(s, utc=True)
    return ts.to_pydatetime()


def _parse_list(val: Any) -> Tuple[str, ...]:
    if _is_missing(val):
        return ()
    s = str(val).strip()
    for sep in LIST_SEPARATORS:
        if sep in s:
            return tuple(p.strip().upper() for p in s.split(sep) if p.strip())
    return (s.upper(),) if s else ()


class CsvSceneCatalog(SceneCatalogPort):
    """Adapter de catálogo que **lee un índice CSV** de GeoTIFFs y expone un **SceneCatalogPort**.

    Columnas mínimas: `path`, `datetime`. Opcionales: `scene_id`,
    `transmitterReceiverPolarisation` (p.ej. "VV;VH"), `orbitProperties_pass`,
    `band` (nombre de la banda leída; por defecto "VV"). Columnas extra quedan en metadata.
    Las rutas relativas se resuelven contra la carpeta del índice.
    """

    def __init__(
        self,
        index_path: Path,
        reader: RasterReaderPort,
        *,
        default_band: str = "VV",
        encoding: str = "utf-8",
    ) -> None:
        self.index_path = Path(index_path).resolve()
        if not self.index_path.exists():
            raise FileNotFoundError(f"No se encontró el índice de escenas: {self.index_path}")
        self.reader = reader
        self.default_band = default_band
        self.encoding = encoding
        self._rows: List[Dict[str, Any]] = []
        self._load()

    # -------------
    # Infra
    # -------------
    def _abspath(self, p: Any) -> Optional[Path]:
        if _is_missing(p):
            return None
        path = Path(str(p))
        return (self.index_path.parent / path).resolve() if not path.is_absolute() else path.resolve()

    def _load(self) -> None:
        raw = pd.read_csv(self.index_path, encoding=self.encoding)
        df = _standardize(raw, SCENE_COLMAP)
        rows: List[Dict[str, Any]] = []
        for _, r in df.iterrows():
            path = self._abspath(r.get("path"))
            ts = _parse_datetime(r.get("datetime"))
            if path is None or ts is None:
                logger.warning(f"fila de índice sin path/datetime ignorada: {dict(r)}")
                continue
            meta: Dict[str, Any] = dict(r.get("_extras", {}) or {})
            pols = _parse_list(r.get("polarisation"))
            if pols:
                meta["transmitterReceiverPolarisation"] = pols
            if not _is_missing(r.get("orbit_pass")):
                meta["orbitProperties_pass"] = str(r.get("orbit_pass")).strip().upper()
            sid = r.get("scene_id")
            band = r.get("band")
            rows.append({
                "scene_id": path.stem if _is_missing(sid) else str(sid),
                "path": path,
                "timestamp": ts,
                "band": self.default_band if _is_missing(band) else str(band).upper(),
                "metadata": meta,
            })
        self._rows = rows
        logger.info(f"catálogo CSV: {len(rows)} escenas en {self.index_path}")

    # -------------
    # API SceneCatalogPort
    # -------------
    def search(self, query: SceneQuery) -> SceneStack:
        rows: List[Dict[str, Any]] = []
        for row in self._rows:
            ts: datetime = row["timestamp"]
            if query.start is not None and ts < query.start:
                continue
            if query.end is not None and ts >= query.end:
                continue
            if not metadata_matches(row["metadata"], query.predicates):
                continue
            if query.band is not None and row["band"] != query.band:
                continue
            if query.bounds is not None and not self.reader.profile(str(row["path"])).bounds.intersects(query.bounds):
                continue
            rows.append(row)
        if query.latest is not None:
            # sólo se leen los rasters de las N filas más recientes
            rows = sorted(rows, key=lambda r: r["timestamp"], reverse=True)[: query.latest]
        scenes = [
            Scene(
                scene_id=row["scene_id"],
                timestamp=row["timestamp"],
                bands={row["band"]: self.reader.read(str(row["path"]))},
                metadata=row["metadata"],
            )
            for row in rows
        ]
        return SceneStack(scenes=tuple(scenes))


__all__ = ["CsvSceneCatalog", "SCENE_COLMAP"]
