# =============================
# FILE: src/lakeice/ports/catalog.py
# =============================
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..contracts.geo import Bounds
from ..contracts.scenes import SceneStack, to_utc


def metadata_matches(metadata: Mapping[str, Any], predicates: Mapping[str, Any]) -> bool:
    """
    Igualdad por clave; si el valor de la escena es una lista/tupla/set,
    basta con que contenga el valor pedido (p.ej. polarizaciones ['VV','VH']).
    """
    for key, want in predicates.items():
        if key not in metadata:
            return False
        have = metadata[key]
        if isinstance(have, (list, tuple, set, frozenset)):
            if want not in have:
                return False
        elif have != want:
            return False
    return True


class SceneQuery(BaseModel):
    """Consulta al catálogo de imágenes: bounds, ventana [start, end), predicados y banda.
    Con `latest=N` el catálogo entrega sólo las N escenas más recientes (sin leer el resto).
    """
    model_config = ConfigDict(frozen=True)

    bounds: Optional[Bounds] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    predicates: Mapping[str, Any] = {}
    band: Optional[str] = None
    latest: Optional[int] = Field(None, ge=1)

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else None

    def newest(self, n: int = 1) -> "SceneQuery":
        if int(n) < 1:
            raise ValueError(f"latest debe ser >= 1: {n}")
        return self.model_copy(update={"latest": int(n)})

    def with_window(self, start: Optional[datetime], end: Optional[datetime]) -> "SceneQuery":
        return self.model_copy(update={
            "start": to_utc(start) if start is not None else None,
            "end": to_utc(end) if end is not None else None,
        })


@runtime_checkable
class SceneCatalogPort(Protocol):
    """Puerto del catálogo de escenas SAR. Detrás puede haber CSV, memoria, API, etc.
    Una ventana sin escenas devuelve un SceneStack vacío (nunca excepción).
    """

    def search(self, query: SceneQuery) -> SceneStack:
        ...


__all__ = ["SceneQuery", "SceneCatalogPort", "metadata_matches"]
