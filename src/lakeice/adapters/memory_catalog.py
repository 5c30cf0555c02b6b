# src/lakeice/adapters/memory_catalog.py
from __future__ import annotations

from typing import Iterable, List

from ..contracts.scenes import Scene, SceneStack
from ..ports.catalog import SceneCatalogPort, SceneQuery, metadata_matches


class MemorySceneCatalog(SceneCatalogPort):
    """Catálogo en memoria (datos sintéticos, tests, escenas ya cargadas)."""

    def __init__(self, scenes: Iterable[Scene] = ()) -> None:
        self._scenes: List[Scene] = list(scenes)

    def add(self, scene: Scene) -> None:
        self._scenes.append(scene)

    def __len__(self) -> int:
        return len(self._scenes)

    def search(self, query: SceneQuery) -> SceneStack:
        out: List[Scene] = []
        for s in self._scenes:
            if query.bounds is not None and not s.profile.bounds.intersects(query.bounds):
                continue
            if query.start is not None and s.timestamp < query.start:
                continue
            if query.end is not None and s.timestamp >= query.end:
                continue
            if not metadata_matches(s.metadata, query.predicates):
                continue
            if query.band is not None and query.band not in s.bands:
                continue
            out.append(s)
        if query.latest is not None:
            # sorted() es estable: empates conservan el orden del catálogo
            out = sorted(out, key=lambda s: s.timestamp, reverse=True)[: query.latest]
        if query.band:
            out = [s.select(query.band) for s in out]
        return SceneStack(scenes=tuple(out))


__all__ = ["MemorySceneCatalog"]
