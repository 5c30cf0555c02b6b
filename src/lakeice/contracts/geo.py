# src/lakeice/contracts/geo.py

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, NamedTuple, Tuple, Optional

import numpy as np
import numpy.typing as npt

from ..errors import MisalignedGridError

GeoTransform = Tuple[float, float, float, float, float, float]

class Bounds(NamedTuple):
    minx: float; miny: float; maxx: float; maxy: float

    def intersects(self, other: "Bounds") -> bool:
        return not (
            self.maxx < other.minx or other.maxx < self.minx
            or self.maxy < other.miny or other.maxy < self.miny
        )

# ---------- CRS (puro dominio, sin GDAL) ----------
@dataclass(frozen=True)
class CRSRef:
    wkt: Optional[str] = None
    epsg: Optional[int] = None

    @staticmethod
    def from_epsg(code: int) -> "CRSRef":
        return CRSRef(epsg=int(code))

    @staticmethod
    def from_wkt(wkt: str) -> "CRSRef":
        return CRSRef(wkt=wkt)

    @staticmethod
    def parse(value: str) -> "CRSRef":
        """Acepta 'EPSG:<code>' o WKT."""
        s = str(value).strip()
        if not s:
            raise ValueError("CRS vacío")
        if s.upper().startswith("EPSG:"):
            return CRSRef.from_epsg(int(s.split(":")[1]))
        return CRSRef.from_wkt(s)

    def to_string(self) -> str:
        """
        Representación de texto del CRS.
        - Si hay EPSG, 'EPSG:<code>'.
        - Si no, el WKT tal cual.
        """
        if self.epsg is not None:
            return f"EPSG:{int(self.epsg)}"
        if self.wkt:
            return self.wkt
        raise ValueError("CRSRef vacío: no hay WKT ni EPSG.")

    @staticmethod
    def _normalize_wkt(wkt: str) -> str:
        # comparación determinista: mayúsculas, espacios colapsados
        s = " ".join(wkt.strip().upper().split())
        s = s.replace(" ,", ",").replace(", ", ",")
        s = s.replace("[ ", "[").replace(" ]", "]")
        return s

    def equals(self, other: "CRSRef") -> bool:
        """
        Comparación sin GDAL:
        1) Si ambos tienen EPSG -> compara enteros.
        2) Si ambos tienen WKT -> compara WKT normalizado.
        3) Cualquier mezcla -> False.
        """
        if self is other:
            return True
        if self.epsg is not None and other.epsg is not None:
            return int(self.epsg) == int(other.epsg)
        if self.wkt and other.wkt:
            return self._normalize_wkt(self.wkt) == self._normalize_wkt(other.wkt)
        return False

# ---------- Perfil y Raster (puro dominio) ----------
@dataclass(frozen=True)
class GeoProfile:
    width: int
    height: int
    transform: GeoTransform
    crs: CRSRef

    @property
    def bounds(self) -> Bounds:
        return geotransform_bounds(self.transform, self.width, self.height)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    def pixel_size(self) -> Tuple[float, float]:
        _, px, _, _, _, py = self.transform
        return (px, py)


@dataclass(frozen=True, eq=False)
class GeoRaster:
    """
    Banda 2D float64 sobre una grilla fija.
    Convención de validez: NaN = píxel enmascarado/inválido.
    """
    data: "npt.NDArray[Any]"  # type: ignore[valid-type]
    profile: GeoProfile

    def __post_init__(self):
        arr = np.array(self.data, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"GeoRaster espera un arreglo 2D; llegó ndim={arr.ndim}")
        if arr.shape != self.profile.shape:
            raise ValueError(f"shape {arr.shape} no coincide con el perfil {self.profile.shape}")
        # Bloquea mutaciones accidentales sobre los datos
        arr.setflags(write=False)
        object.__setattr__(self, "data", arr)

    @classmethod
    def full(cls, profile: GeoProfile, value: float = np.nan) -> "GeoRaster":
        return cls(np.full(profile.shape, value, dtype=np.float64), profile)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape  # type: ignore[no-any-return]

    @property
    def valid(self) -> np.ndarray:
        return np.isfinite(self.data)

    def update_mask(self, mask: "GeoRaster") -> "GeoRaster":
        """Invalida los píxeles donde `mask` es inválido o cero."""
        validate_grid_compat(self.profile, mask.profile)
        keep = mask.valid & (mask.data != 0)
        return GeoRaster(np.where(keep, self.data, np.nan), self.profile)

# ---------- GeoTransform helpers (afines a GDAL pero sin dependencia) ----------
def geotransform_bounds(gt: GeoTransform, width: int, height: int) -> Bounds:
    x0, px, rx, y0, ry, py = gt
    x_w = x0 + width * px + height * rx
    y_w = y0 + width * ry + height * py
    minx, maxx = (x0, x_w) if x0 <= x_w else (x_w, x0)
    miny, maxy = (y_w, y0) if y_w <= y0 else (y0, y_w)
    return Bounds(minx, miny, maxx, maxy)

def _gt_close(a: GeoTransform, b: GeoTransform, tol: float = 1e-6) -> bool:
    return all(math.isclose(x, y, rel_tol=0.0, abs_tol=tol) for x, y in zip(a, b))

def validate_grid_compat(a: GeoProfile, b: GeoProfile) -> None:
    """Falla rápido si dos perfiles no comparten grilla. Nunca re-muestrea."""
    if not a.crs.equals(b.crs):
        raise MisalignedGridError(f"CRS no coincide: {a.crs} vs {b.crs}")
    if a.width != b.width or a.height != b.height:
        raise MisalignedGridError(
            f"Dimensiones no coinciden: {a.width}x{a.height} vs {b.width}x{b.height}"
        )
    if not _gt_close(a.transform, b.transform):
        raise MisalignedGridError("GeoTransform no coincide (requiere resampling/alineación explícita).")

def pretty_bounds(b: Bounds, ndigits: int = 3) -> str:
    return (f"Bounds(minx={b.minx:.{ndigits}f}, miny={b.miny:.{ndigits}f}, "
            f"maxx={b.maxx:.{ndigits}f}, maxy={b.maxy:.{ndigits}f})")

__all__ = [
    "GeoTransform","Bounds","CRSRef","GeoProfile","GeoRaster","geotransform_bounds",
    "validate_grid_compat","pretty_bounds",
]
