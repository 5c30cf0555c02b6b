# src/lakeice/adapters/rasterio_reader.py
from __future__ import annotations

import os
from dataclasses import dataclass

import numpy as np
import rasterio
from rasterio.transform import Affine

from ..contracts.geo import GeoRaster, GeoProfile, CRSRef, GeoTransform
from ..ports.raster_read import RasterReaderPort


def _affine_to_gt(a: Affine) -> GeoTransform:
    return (a.c, a.a, a.b, a.f, a.d, a.e)


def _rasterio_crs_to_crsref(crs_obj) -> CRSRef:
    """Convierte rasterio CRS → CRSRef (intenta EPSG, si no WKT, si no vacío)."""
    if not crs_obj:
        return CRSRef()
    epsg = crs_obj.to_epsg()
    if epsg is not None:
        return CRSRef.from_epsg(int(epsg))
    wkt = crs_obj.to_wkt()
    return CRSRef.from_wkt(wkt) if wkt else CRSRef()


@dataclass(frozen=True)
class RasterioReader(RasterReaderPort):
    """Lector GeoTIFF vía rasterio.

    Regla: `read()` devuelve una banda (1-based, por defecto la 1) como float64;
    nodata y píxeles enmascarados del dataset pasan a NaN.
    """

    def _profile_of(self, ds) -> GeoProfile:
        return GeoProfile(
            width=ds.width,
            height=ds.height,
            transform=_affine_to_gt(ds.transform),
            crs=_rasterio_crs_to_crsref(ds.crs),
        )

    def read(self, uri: str, band_index: int | None = None) -> GeoRaster:
        with rasterio.open(uri) as ds:
            idx = 1 if band_index is None else int(band_index)
            arr = ds.read(idx, masked=True)
            data = np.ma.filled(arr.astype(np.float64), np.nan)
            return GeoRaster(data, self._profile_of(ds))

    def profile(self, uri: str) -> GeoProfile:
        with rasterio.open(uri) as ds:
            return self._profile_of(ds)

    def exists(self, uri: str) -> bool:
        return os.path.exists(uri)


__all__ = ["RasterioReader"]
