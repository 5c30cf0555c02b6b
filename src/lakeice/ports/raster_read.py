# src/lakeice/ports/raster_read.py
from __future__ import annotations

from typing import Protocol, runtime_checkable
from ..contracts.geo import GeoRaster, GeoProfile

URI = str

@runtime_checkable
class RasterReaderPort(Protocol):
    """
    Lector de raster genérico (GeoTIFF/COG, etc.).
    Reglas: devuelve SIEMPRE una banda como GeoRaster float64, nodata -> NaN.
    """
    def read(self, uri: URI, band_index: int | None = None) -> GeoRaster: ...
    def profile(self, uri: URI) -> GeoProfile: ...
    def exists(self, uri: URI) -> bool: ...

__all__ = ["RasterReaderPort", "URI"]
