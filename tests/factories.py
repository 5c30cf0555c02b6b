from datetime import datetime, timezone

import numpy as np
from lakeice.contracts.geo import GeoProfile, CRSRef, GeoRaster
from lakeice.contracts.scenes import Scene

S1_META = {"transmitterReceiverPolarisation": ("VV", "VH"), "orbitProperties_pass": "ASCENDING"}

def make_profile(w=8, h=8, px=30.0, epsg=32615, x0=500000.0, y0=5000000.0):
    return GeoProfile(
        width=w, height=h,
        transform=(x0, px, 0.0, y0, 0.0, -px),
        crs=CRSRef.from_epsg(epsg),
    )

def make_raster(w=8, h=8, value=0.0, **kw):
    prof = make_profile(w, h, **kw)
    return GeoRaster(np.full((h, w), value, dtype=np.float64), prof)

def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)

def make_scene(when, value=1.0, *, band="VV", data=None, scene_id=None, metadata=None, w=8, h=8):
    prof = make_profile(w, h)
    arr = np.full((h, w), value, dtype=np.float64) if data is None else np.asarray(data, dtype=np.float64)
    return Scene(
        scene_id=scene_id or f"S1_{when:%Y%m%dT%H%M%S}",
        timestamp=when,
        bands={band: GeoRaster(arr, prof)},
        metadata=S1_META if metadata is None else metadata,
    )
