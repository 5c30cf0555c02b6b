# src/lakeice/ports/raster_write.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Mapping, Any, Optional
from ..contracts.geo import GeoRaster

URI = str

@runtime_checkable
class RasterWriterPort(Protocol):
    """
    Escritor de rasters (GeoTIFF). NaN se escribe con nodata=NaN.
    """
    def write(self, uri: URI, raster: GeoRaster, *, compress: Optional[str] = None,
              tags: Optional[Mapping[str, Any]] = None) -> URI: ...

__all__ = ["RasterWriterPort", "URI"]
