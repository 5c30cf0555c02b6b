## `src/lakeice/adapters/rasterio_writer.py`
from __future__ import annotations

import os
from typing import Mapping, Any, Optional

import rasterio
from rasterio.transform import Affine

from ..contracts.geo import GeoRaster
from ..ports.raster_write import RasterWriterPort


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


class RasterioWriter(RasterWriterPort):
    def write(self, uri: str, raster: GeoRaster, *, compress: Optional[str] = None,
              tags: Optional[Mapping[str, Any]] = None) -> str:
        _ensure_dir(uri)
        p = raster.profile
        compress = (compress or "DEFLATE").upper()
        x0, px, rx, y0, ry, py = p.transform
        profile = {
            "driver": "GTiff",
            "height": p.height,
            "width": p.width,
            "count": 1,
            "dtype": "float64",
            "transform": Affine(px, rx, x0, ry, py, y0),
            "compress": compress,
            "nodata": float("nan"),
        }
        if p.crs.epsg is not None:
            profile["crs"] = f"EPSG:{p.crs.epsg}"
        elif p.crs.wkt:
            profile["crs"] = p.crs.wkt
        with rasterio.open(uri, "w", **profile) as dst:
            dst.write(raster.data, 1)
            if tags:
                dst.update_tags(**{str(k): str(v) for k, v in tags.items()})
        return uri


__all__ = ["RasterioWriter"]
