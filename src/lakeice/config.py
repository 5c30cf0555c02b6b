# src/lakeice/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Literal, Mapping, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .contracts.geo import CRSRef
from .contracts.season import IceMode, SeasonWindows, parse_month_day

# Placeholders permitidos por clave
OUTPUT_PLACEHOLDERS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "ice_event": ("mode", "year"),
    "current_ice": ("date",),
    "series": ("year",),
})

class Settings(BaseSettings):
    """
    Config unificada del proyecto. No toca disco.
    Debe ser construida y provista por composition/di.py (CLI/adapters).
    """
    # --- básicos ---
    project_root: Path = Path(".")
    # declarado como str para que pydantic-settings NO intente json.loads
    roi_crs: str = "EPSG:4326"

    # --- entradas (relativas a project_root) ---
    roi_file: Path = Path("config/roi.geojson")
    landcover_file: Path = Path("data/landcover/nlcd_2013.tif")
    catalog_index: Path = Path("data/s1/index.csv")

    # --- máscara de agua (NLCD) ---
    water_class: int = 11
    water_kernel_radius: int = Field(1, ge=1)
    water_iterations: int = Field(3, ge=0)

    # --- filtro Frost ---
    frost_kernel_size: int = 5
    frost_damping: float = -1.0

    # --- catálogo Sentinel-1 ---
    band: str = "VV"
    polarisation: str = "VV"
    orbit_pass: Optional[str] = "ASCENDING"

    # --- temporada ---
    years: Tuple[int, ...] = (2018, 2019, 2020)
    default_year: int = 2020
    season_start: str = "11-01"
    ice_split: str = "02-15"
    season_end: str = "04-15"

    # --- estadísticas / despliegue ---
    stretch_percent: float = Field(98.0, gt=0.0, le=100.0)
    histogram_buckets: int = Field(255, ge=2)
    histogram_region: Literal["scene", "water"] = "scene"
    ice_on_palette: Tuple[str, ...] = ("aqua", "blue")
    ice_off_palette: Tuple[str, ...] = ("blue", "aqua")
    current_palette: Tuple[str, ...] = ("blue", "white")

    # --- ejecución ---
    max_workers: int = Field(4, ge=1)

    output_patterns: Dict[str, str] = Field(default_factory=lambda: {
        "ice_event": "outputs/{mode}/{year}/ice_{mode}_{year}.tif",
        "current_ice": "outputs/current/{date}/ice_cover.tif",
        "series": "outputs/series/{year}/smooth_median.csv",
    })

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LAKEICE_",
        env_nested_delimiter="__",
        extra="forbid",
        frozen=True,
        validate_default=True,
    )

    # ----------------------------
    # Normalizadores / validadores
    # ----------------------------
    @field_validator("project_root", mode="before")
    @classmethod
    def _abs_root(cls, v: Path | str) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("roi_crs", mode="before")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = str(v).strip()
        if not v2:
            raise ValueError("roi_crs no puede ser vacío")
        return v2

    @field_validator("roi_file", "landcover_file", "catalog_index", mode="after")
    @classmethod
    def _rel_to_root(cls, p: Path, info) -> Path:
        root: Path = info.data.get("project_root")
        return p if p.is_absolute() else (root / p)

    @field_validator("frost_kernel_size")
    @classmethod
    def _odd_kernel(cls, v: int) -> int:
        if v < 3 or v % 2 == 0:
            raise ValueError(f"frost_kernel_size debe ser impar y >= 3: {v}")
        return v

    @field_validator("season_start", "ice_split", "season_end")
    @classmethod
    def _month_day(cls, v: str) -> str:
        parse_month_day(v)
        return v.strip()

    @field_validator("output_patterns")
    @classmethod
    def _check_out(cls, d: Dict[str, str]) -> Dict[str, str]:
        for k, pat in d.items():
            allowed = set(OUTPUT_PLACEHOLDERS.get(k, ()))
            used = {frag[1] for frag in _iter_placeholders(pat)}
            unknown = used - allowed
            if unknown:
                raise ValueError(f"output_patterns[{k}] usa placeholders no permitidos: {sorted(unknown)}")
        return d

    @model_validator(mode="after")
    def _default_year_in_years(self) -> "Settings":
        if not self.years:
            raise ValueError("years no puede ser vacío")
        if self.default_year not in self.years:
            raise ValueError(f"default_year={self.default_year} no está en years={self.years}")
        return self

    # ----------------------------
    # Helpers puros (sin side-effects)
    # ----------------------------
    def roi_crs_ref(self) -> CRSRef:
        return CRSRef.parse(self.roi_crs)

    def season_windows(self) -> SeasonWindows:
        return SeasonWindows(self.season_start, self.ice_split, self.season_end)

    def palette_for(self, mode: IceMode | str) -> Tuple[str, ...]:
        return self.ice_on_palette if IceMode(mode) is IceMode.ICE_ON else self.ice_off_palette

    def catalog_predicates(self) -> Dict[str, str]:
        preds = {"transmitterReceiverPolarisation": self.polarisation}
        if self.orbit_pass:
            preds["orbitProperties_pass"] = self.orbit_pass
        return preds

    def in_path(self, key: str) -> Path:
        """Entradas ya resueltas contra project_root: roi, landcover, catalog_index."""
        paths = {"roi": self.roi_file, "landcover": self.landcover_file, "catalog_index": self.catalog_index}
        if key not in paths:
            raise KeyError(f"entrada desconocida: {key} (hay {sorted(paths)})")
        return paths[key]

    def out_path(self, key: str, **fmt) -> Path:
        """Resuelve patrón de salida (no crea carpetas)."""
        pat = self.output_patterns[key]
        return (self.project_root / pat.format(**fmt)).resolve()


# Utilidad interna: detectar {placeholders}
def _iter_placeholders(fmt: str):
    # Busca {name} muy simple; evita formatear para no explotar
    start = 0
    while True:
        i = fmt.find("{", start)
        if i == -1:
            break
        j = fmt.find("}", i + 1)
        if j == -1:
            break
        name = fmt[i + 1 : j].strip()
        if name:
            yield (i, name)
        start = j + 1


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Instancia cacheada. Úsala desde composition/di.py, la CLI o como default
    del pipeline; las funciones puras de services/ reciben valores explícitos.
    Para tests, recuerda limpiar:
        get_settings.cache_clear()
    """
    return Settings()
