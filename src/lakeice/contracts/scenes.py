from __future__ import annotations

from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import MissingDataError
from .geo import GeoProfile, GeoRaster, validate_grid_compat

DATE_ID_FORMAT = "%Y-%m-%d"


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def millis_to_datetime(ms: float) -> datetime:
    return datetime.fromtimestamp(float(ms) / 1000.0, tz=timezone.utc)


class Scene(BaseModel):
    """
    Adquisición fechada (TimestampedRaster).
    - Bandas con nombre, todas sobre la misma grilla.
    - Inmutable: `with_band` / `select` devuelven copias.
    - Grillas incompatibles: al construir, pydantic envuelve la
      MisalignedGridError en un ValidationError (queda en errors()[0]["ctx"]["error"]);
      `with_band` la levanta directamente.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    scene_id: str
    timestamp: datetime
    bands: Mapping[str, GeoRaster]
    metadata: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, dt: datetime) -> datetime:
        return to_utc(dt)

    @field_validator("bands")
    @classmethod
    def _freeze_and_validate_grids(cls, v: Mapping[str, GeoRaster]) -> Mapping[str, GeoRaster]:
        d = dict(v)
        if not d:
            raise ValueError("Scene requiere al menos una banda")
        it = iter(d.values())
        first = next(it)
        for r in it:
            validate_grid_compat(first.profile, r.profile)
        return MappingProxyType(d)

    @field_validator("metadata")
    @classmethod
    def _freeze_metadata(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @property
    def profile(self) -> GeoProfile:
        return next(iter(self.bands.values())).profile

    @property
    def millis(self) -> int:
        return int(round(self.timestamp.timestamp() * 1000))

    @property
    def acq_date(self) -> date:
        return self.timestamp.date()

    def band_names(self) -> Tuple[str, ...]:
        return tuple(self.bands.keys())

    def band(self, name: str) -> GeoRaster:
        try:
            return self.bands[name]
        except KeyError:
            raise KeyError(f"La escena {self.scene_id} no tiene la banda '{name}' (hay {list(self.bands)})") from None

    def with_band(self, name: str, raster: GeoRaster) -> "Scene":
        d = dict(self.bands)
        d[name] = raster
        return self.model_copy(update={"bands": Scene._freeze_and_validate_grids(d)})

    def select(self, *names: str) -> "Scene":
        sub = {n: self.band(n) for n in names}
        return self.model_copy(update={"bands": MappingProxyType(sub)})


class SceneStack(BaseModel):
    """
    Secuencia ordenada de escenas (RasterSequence).
    Antes del mosaico puede haber varias escenas por fecha; después, a lo sumo una.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    scenes: Tuple[Scene, ...] = ()

    @field_validator("scenes", mode="before")
    @classmethod
    def _as_tuple(cls, v: Sequence[Scene]) -> Tuple[Scene, ...]:
        return tuple(v)

    def __len__(self) -> int:
        return len(self.scenes)

    def __iter__(self) -> Iterator[Scene]:  # type: ignore[override]
        return iter(self.scenes)

    def __getitem__(self, i: int) -> Scene:
        return self.scenes[i]

    @property
    def is_empty(self) -> bool:
        return not self.scenes

    def first(self) -> Scene:
        if not self.scenes:
            raise MissingDataError("SceneStack vacío: no hay escenas en la ventana pedida")
        return self.scenes[0]

    def sort(self, ascending: bool = True) -> "SceneStack":
        # sorted() es estable: escenas con el mismo instante conservan su orden relativo
        ordered = sorted(self.scenes, key=lambda s: s.timestamp, reverse=not ascending)
        return SceneStack(scenes=tuple(ordered))

    def filter_date(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> "SceneStack":
        """Filtra por ventana semiabierta [start, end)."""
        lo = to_utc(start) if start is not None else None
        hi = to_utc(end) if end is not None else None
        keep = tuple(
            s for s in self.scenes
            if (lo is None or s.timestamp >= lo) and (hi is None or s.timestamp < hi)
        )
        return SceneStack(scenes=keep)

    def select(self, *names: str) -> "SceneStack":
        return SceneStack(scenes=tuple(s.select(*names) for s in self.scenes))

    def map(self, fn: Callable[[Scene], Scene]) -> "SceneStack":
        return SceneStack(scenes=tuple(fn(s) for s in self.scenes))

    def dates(self) -> Tuple[date, ...]:
        return tuple(s.acq_date for s in self.scenes)


__all__ = ["Scene", "SceneStack", "DATE_ID_FORMAT", "to_utc", "millis_to_datetime"]
