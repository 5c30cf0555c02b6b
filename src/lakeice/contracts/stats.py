from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from .geo import GeoRaster
from .scenes import millis_to_datetime

LABEL_DATE_FORMAT = "%m/%d/%Y"


@dataclass(frozen=True, eq=False)
class Histogram:
    """
    Histograma tipado: medias de bucket (ascendentes) y conteos paralelos.
    """
    bucket_means: np.ndarray
    counts: np.ndarray

    def __post_init__(self):
        means = np.array(self.bucket_means, dtype=np.float64).ravel()
        counts = np.array(self.counts, dtype=np.float64).ravel()
        if means.shape != counts.shape:
            raise ValueError(f"bucket_means y counts con largos distintos: {means.size} vs {counts.size}")
        if means.size > 1 and np.any(np.diff(means) < 0):
            raise ValueError("bucket_means debe ser ascendente")
        if np.any(counts < 0):
            raise ValueError("counts no puede tener valores negativos")
        means.setflags(write=False)
        counts.setflags(write=False)
        object.__setattr__(self, "bucket_means", means)
        object.__setattr__(self, "counts", counts)

    def __len__(self) -> int:
        return int(self.bucket_means.size)

    @property
    def total(self) -> float:
        return float(self.counts.sum())

    @classmethod
    def from_values(cls, values: np.ndarray, max_buckets: int = 255) -> "Histogram":
        """
        Buckets de igual ancho sobre los valores finitos.
        La media de cada bucket es la media real de sus valores (centro si está vacío).
        """
        if max_buckets < 1:
            raise ValueError("max_buckets debe ser >= 1")
        v = np.asarray(values, dtype=np.float64).ravel()
        v = v[np.isfinite(v)]
        if v.size == 0:
            return cls(np.empty(0), np.empty(0))
        vmin, vmax = float(v.min()), float(v.max())
        if vmax <= vmin:
            return cls(np.array([vmin]), np.array([float(v.size)]))
        edges = np.linspace(vmin, vmax, max_buckets + 1)
        # el borde derecho cae en el último bucket, como np.histogram
        idx = np.clip(np.searchsorted(edges, v, side="right") - 1, 0, max_buckets - 1)
        counts = np.bincount(idx, minlength=max_buckets).astype(np.float64)
        sums = np.bincount(idx, weights=v, minlength=max_buckets)
        centers = (edges[:-1] + edges[1:]) / 2.0
        with np.errstate(invalid="ignore", divide="ignore"):
            means = np.where(counts > 0, sums / counts, centers)
        # medias dentro de su intervalo; accumulate absorbe el redondeo en los bordes
        return cls(np.maximum.accumulate(means), counts)

    @classmethod
    def from_raster(cls, raster: GeoRaster, max_buckets: int = 255, mask: Optional[GeoRaster] = None) -> "Histogram":
        r = raster.update_mask(mask) if mask is not None else raster
        return cls.from_values(r.data, max_buckets=max_buckets)


@dataclass(frozen=True)
class VisualizationParams:
    """Parámetros de despliegue derivados (sin estado)."""
    min: float
    max: float
    palette: Tuple[str, ...] = field(default_factory=lambda: ("blue", "aqua"))

    def palette_string(self) -> str:
        return ",".join(self.palette)

    def date_labels(self, fmt: str = LABEL_DATE_FORMAT) -> Tuple[str, str]:
        """Etiquetas de la barra de color cuando min/max son milisegundos epoch."""
        if not (np.isfinite(self.min) and np.isfinite(self.max)):
            return ("", "")
        return (millis_to_datetime(self.min).strftime(fmt), millis_to_datetime(self.max).strftime(fmt))

    def as_dict(self) -> dict:
        return {"min": self.min, "max": self.max, "palette": self.palette_string()}


__all__ = ["Histogram", "VisualizationParams", "LABEL_DATE_FORMAT"]
