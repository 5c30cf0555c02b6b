# src/lakeice/services/ice_event_pipeline.py
from __future__ import annotations

"""
Orquestación ice-on / ice-off y condiciones actuales.

Estados (por año Y y modo):
  IDLE → FILTERING(Y) → MOSAICKED(Y) → DATED(modo) → RENDERED

  select_year(Y):  catálogo [season_start Y-1, season_end Y) → Frost por escena
                   → mosaico por fecha → máscara de agua (ya recortada a la ROI)
                   → sólo banda `smooth`
  select_mode(m):  sub-ventana ice-on / ice-off → fechado por diferencia máxima
  render():        IceEventResult = raster `date` + VisualizationParams (stretch)

No hay caché entre años/modos: cada selección recalcula. El pipeline no
guarda estado de despliegue; IceDashboardSession (del llamador) conserva la
capa mostrada y sólo acepta resultados de la selección vigente.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from ..config import Settings, get_settings
from ..contracts.geo import GeoRaster, pretty_bounds
from ..contracts.scenes import SceneStack
from ..contracts.season import IceMode
from ..contracts.stats import Histogram, VisualizationParams
from ..errors import LakeIceError, MissingDataError
from ..ports.catalog import SceneCatalogPort, SceneQuery
from .change_date_service import max_difference_date
from .frost_filter_service import SMOOTH_BAND, FrostFilterService
from .mosaic_service import mosaic_by_date
from .otsu_service import classify_below, otsu_threshold
from .stretch_service import format_image_date, stretch_params

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    FILTERING = "filtering"
    MOSAICKED = "mosaicked"
    DATED = "dated"
    RENDERED = "rendered"


class SupersededError(LakeIceError):
    """La selección fue reemplazada por otra más reciente; el cálculo se abandona."""


# ----------------------
# DTOs de salida
# ----------------------

@dataclass(frozen=True)
class IceEventResult:
    year: int
    mode: IceMode
    raster: GeoRaster
    vis: VisualizationParams
    scene_dates: Tuple[date, ...] = ()
    empty: bool = False

    @property
    def legend_labels(self) -> Tuple[str, str]:
        return self.vis.date_labels()


@dataclass(frozen=True)
class CurrentIceResult:
    ice: GeoRaster
    threshold: float
    vis: VisualizationParams
    timestamp_ms: Optional[int] = None
    image_date: str = ""
    histogram: Optional[Histogram] = None
    empty: bool = False


@dataclass(frozen=True)
class PendingRun:
    generation: int
    year: int
    mode: IceMode
    future: "Future[IceEventResult]"


# ----------------------
# Pipeline
# ----------------------

@dataclass
class IceEventPipeline:
    catalog: SceneCatalogPort
    water_mask: GeoRaster
    settings: Settings = field(default_factory=get_settings)

    def __post_init__(self):
        s = self.settings
        self.frost = FrostFilterService(
            kernel_size=s.frost_kernel_size,
            damping=s.frost_damping,
            band=s.band,
            max_workers=s.max_workers,
        )
        self.windows = s.season_windows()
        self.state = PipelineState.IDLE
        self.year: Optional[int] = None
        self.mode: Optional[IceMode] = None
        self.season: SceneStack = SceneStack()
        self.dated: Optional[GeoRaster] = None
        self._lock = threading.Lock()
        self._run_lock = threading.RLock()
        self._generation = 0
        self._executor: Optional[ThreadPoolExecutor] = None

    # ---------- helpers ----------
    def base_query(self) -> SceneQuery:
        return SceneQuery(
            bounds=self.water_mask.profile.bounds,
            predicates=self.settings.catalog_predicates(),
            band=self.settings.band,
        )

    def _check_year(self, year: int) -> int:
        year = int(year)
        if year not in self.settings.years:
            raise ValueError(f"año {year} fuera de los años disponibles {self.settings.years}")
        return year

    def _set_state(self, st: PipelineState) -> None:
        logger.debug(f"estado {self.state.value} -> {st.value}")
        self.state = st

    def _ensure_current(self, generation: Optional[int]) -> None:
        if generation is not None and not self.is_current(generation):
            raise SupersededError(f"selección {generation} reemplazada por {self._generation}")

    def season_stack(self, year: int) -> SceneStack:
        """Temporada del año: Frost → mosaico por fecha → máscara de agua → `smooth`. Sin efectos de estado."""
        year = self._check_year(year)
        start, end = self.windows.season(year)
        raw = self.catalog.search(self.base_query().with_window(start, end))
        if raw.is_empty:
            logger.warning(f"sin escenas para la temporada {year} [{start:%Y-%m-%d}, {end:%Y-%m-%d})")
            return SceneStack()
        logger.info(f"temporada {year}: {len(raw)} escenas en {pretty_bounds(self.water_mask.profile.bounds)}")
        smoothed = self.frost.apply(raw)
        mosaicked = mosaic_by_date(smoothed, max_workers=self.settings.max_workers)
        return mosaicked.select(SMOOTH_BAND).map(
            lambda s: s.with_band(SMOOTH_BAND, s.band(SMOOTH_BAND).update_mask(self.water_mask))
        )

    # ---------- transiciones ----------
    def select_year(self, year: int) -> SceneStack:
        with self._run_lock:
            year = self._check_year(year)
            self._set_state(PipelineState.FILTERING)
            self.year, self.mode, self.dated = year, None, None
            try:
                self.season = self.season_stack(year)
            except Exception:
                self._set_state(PipelineState.IDLE)
                raise
            self._set_state(PipelineState.MOSAICKED)
            logger.info(f"año {year}: {len(self.season)} fechas en mosaico")
            return self.season

    def select_mode(self, mode: IceMode | str) -> GeoRaster:
        with self._run_lock:
            mode = IceMode(mode)
            if self.year is None or self.state in (PipelineState.IDLE, PipelineState.FILTERING):
                self.select_year(self.settings.default_year)
            if self.year is None:
                raise RuntimeError("select_mode() sin año seleccionado")
            start, end = self.windows.window(self.year, mode)
            window = self.season.filter_date(start, end)
            logger.info(f"{mode.value} {self.year}: {len(window)} fechas en [{start:%Y-%m-%d}, {end:%Y-%m-%d})")
            self.dated = max_difference_date(window, SMOOTH_BAND, template=self.water_mask.profile)
            self.mode = mode
            self._set_state(PipelineState.DATED)
            return self.dated

    def render(self) -> IceEventResult:
        with self._run_lock:
            if self.state not in (PipelineState.DATED, PipelineState.RENDERED) or self.dated is None:
                raise RuntimeError(f"render() requiere un raster fechado; estado actual: {self.state.value}")
            if self.year is None or self.mode is None:
                raise RuntimeError(f"render() sin año/modo seleccionados; estado actual: {self.state.value}")
            start, end = self.windows.window(self.year, self.mode)
            dates = self.season.filter_date(start, end).sort(ascending=True).dates()
            vis = stretch_params(self.dated, self.settings.stretch_percent, self.settings.palette_for(self.mode))
            result = IceEventResult(
                year=self.year,
                mode=self.mode,
                raster=self.dated,
                vis=vis,
                scene_dates=dates,
                empty=not bool(np.any(self.dated.valid)),
            )
            self._set_state(PipelineState.RENDERED)
            return result

    def run(self, year: int, mode: IceMode | str, *, generation: Optional[int] = None) -> IceEventResult:
        """Cadena completa año → modo → render. Con `generation`, abandona si queda obsoleta."""
        with self._run_lock:
            self._ensure_current(generation)
            self.select_year(year)
            self._ensure_current(generation)
            self.select_mode(mode)
            self._ensure_current(generation)
            return self.render()

    # ---------- ejecución asíncrona / cancelación cooperativa ----------
    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def submit(self, year: int, mode: IceMode | str) -> PendingRun:
        year = self._check_year(year)
        mode = IceMode(mode)
        with self._lock:
            self._generation += 1
            gen = self._generation
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lakeice-pipeline")
            executor = self._executor
        fut = executor.submit(self.run, year, mode, generation=gen)
        return PendingRun(generation=gen, year=year, mode=mode, future=fut)

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> "IceEventPipeline":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- condiciones actuales ----------
    def current_conditions(self) -> CurrentIceResult:
        """Escena más reciente → Frost → histograma → Otsu → hielo (1) / agua abierta (0)."""
        s = self.settings
        vis = VisualizationParams(min=0.0, max=1.0, palette=s.current_palette)
        latest = self.catalog.search(self.base_query().newest(1)).sort(ascending=False)
        try:
            scene = latest.first()
        except MissingDataError:
            logger.warning("sin escenas para condiciones actuales")
            return CurrentIceResult(
                ice=GeoRaster.full(self.water_mask.profile), threshold=float("nan"), vis=vis, empty=True
            )
        smooth = self.frost.filter_scene(scene).band(SMOOTH_BAND)
        mask = self.water_mask if s.histogram_region == "water" else None
        hist = Histogram.from_raster(smooth, max_buckets=s.histogram_buckets, mask=mask)
        threshold = otsu_threshold(hist)
        ice = classify_below(smooth, threshold, self.water_mask)
        label = format_image_date(scene.millis)
        logger.info(f"condiciones actuales {label}: umbral Otsu={threshold:.6g}")
        return CurrentIceResult(
            ice=ice,
            threshold=threshold,
            vis=vis,
            timestamp_ms=scene.millis,
            image_date=label,
            histogram=hist,
        )


# ----------------------
# Sesión (estado de presentación del llamador)
# ----------------------

@dataclass
class IceDashboardSession:
    """
    Estado de presentación que el pipeline NO guarda: la capa mostrada, la
    superposición de condiciones actuales y el último error. Un fallo deja la
    capa anterior intacta.
    """
    pipeline: IceEventPipeline
    layer: Optional[IceEventResult] = None
    current: Optional[CurrentIceResult] = None
    show_current: bool = False
    last_error: Optional[Exception] = None

    def request(self, year: int, mode: IceMode | str) -> PendingRun:
        return self.pipeline.submit(year, mode)

    def collect(self, pending: PendingRun, timeout: Optional[float] = None) -> bool:
        """Espera el resultado; lo aplica sólo si la selección sigue vigente."""
        try:
            result = pending.future.result(timeout)
        except SupersededError as ex:
            logger.info(f"selección {pending.generation} abandonada: {ex}")
            return False
        except LakeIceError as ex:
            logger.error(f"falló {pending.mode.value} {pending.year}; se mantiene la capa anterior: {ex}")
            self.last_error = ex
            return False
        except Exception as ex:
            logger.exception(f"error inesperado en {pending.mode.value} {pending.year}; se mantiene la capa anterior")
            self.last_error = ex
            return False
        if not self.pipeline.is_current(pending.generation):
            logger.warning(f"resultado obsoleto descartado ({pending.mode.value} {pending.year})")
            return False
        self.layer = result
        self.last_error = None
        return True

    def update(self, year: int, mode: IceMode | str) -> bool:
        return self.collect(self.request(year, mode))

    def refresh_current(self) -> CurrentIceResult:
        self.current = self.pipeline.current_conditions()
        return self.current

    def toggle_current(self, visible: bool) -> None:
        self.show_current = bool(visible)

    def visible_layers(self) -> Tuple[object, ...]:
        out: Tuple[object, ...] = ()
        if self.layer is not None:
            out += (self.layer,)
        if self.show_current and self.current is not None:
            out += (self.current,)
        return out


__all__ = [
    "IceEventPipeline",
    "IceDashboardSession",
    "IceEventResult",
    "CurrentIceResult",
    "PendingRun",
    "PipelineState",
    "SupersededError",
]
