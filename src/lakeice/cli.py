# src/lakeice/cli.py
from __future__ import annotations

"""
CLI del monitor de hielo lacustre (Sentinel-1 VV, temporadas 2018-2020).

Comandos:
  - ice-event:   raster de fecha de ice-on / ice-off para un año (GeoTIFF + params de despliegue).
  - current-ice: hielo (1) / agua abierta (0) en la imagen más reciente (umbral de Otsu).
  - series:      mediana regional de la banda `smooth` por fecha (CSV).

Ejemplos rápidos:
  python -m lakeice.cli --root ./proyecto ice-event --year 2020 --mode ice-on
  python -m lakeice.cli --root ./proyecto current-ice
  python -m lakeice.cli --root ./proyecto series --year 2019
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from .adapters.rasterio_writer import RasterioWriter
from .composition.di import build_pipeline, build_settings
from .config import Settings
from .contracts.scenes import DATE_ID_FORMAT, millis_to_datetime
from .contracts.season import IceMode
from .services.timeseries_service import median_series

logger = logging.getLogger("lakeice")

# ----------------------
# Utilidades locales
# ----------------------

def _settings(args: argparse.Namespace) -> Settings:
    return build_settings(Path(args.root) if args.root else None)


def _print_json(obj: Dict[str, Any]) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


# ----------------------
# Comandos
# ----------------------

def cmd_ice_event(args: argparse.Namespace) -> int:
    s = _settings(args)
    year = args.year if args.year is not None else s.default_year
    mode = IceMode(args.mode)
    with build_pipeline(s) as pipeline:
        result = pipeline.run(year, mode)

    out_tif = Path(args.out if args.out else s.out_path("ice_event", mode=mode.value, year=year))
    lo, hi = result.legend_labels
    RasterioWriter().write(str(out_tif), result.raster, tags={
        "mode": mode.value,
        "year": year,
        "min": result.vis.min,
        "max": result.vis.max,
        "palette": result.vis.palette_string(),
    })
    _print_json({
        "output": str(out_tif),
        "empty": result.empty,
        "scene_dates": [d.isoformat() for d in result.scene_dates],
        "vis": result.vis.as_dict(),
        "legend": {"min": lo, "max": hi},
    })
    return 0


def cmd_current_ice(args: argparse.Namespace) -> int:
    s = _settings(args)
    with build_pipeline(s) as pipeline:
        cur = pipeline.current_conditions()
    if cur.empty or cur.timestamp_ms is None:
        print("[WARN] no hay escenas disponibles para condiciones actuales", file=sys.stderr)
        return 1

    day = millis_to_datetime(cur.timestamp_ms).strftime(DATE_ID_FORMAT)
    out_tif = Path(args.out if args.out else s.out_path("current_ice", date=day))
    RasterioWriter().write(str(out_tif), cur.ice, tags={
        "image_date": cur.image_date,
        "threshold": cur.threshold,
        "palette": cur.vis.palette_string(),
    })
    _print_json({
        "output": str(out_tif),
        "image_date": cur.image_date,
        "threshold": cur.threshold,
        "vis": cur.vis.as_dict(),
    })
    return 0


def cmd_series(args: argparse.Namespace) -> int:
    s = _settings(args)
    year = args.year if args.year is not None else s.default_year
    with build_pipeline(s) as pipeline:
        df = median_series(pipeline.season_stack(year))

    out_csv = Path(args.out if args.out else s.out_path("series", year=year))
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_csv, index=False, date_format="%Y-%m-%dT%H:%M:%SZ")
    print(str(out_csv))
    return 0


# ----------------------
# Parser
# ----------------------

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lakeice", description="Detección de ice-on / ice-off con Sentinel-1")
    p.add_argument("--root", help="project_root (lee <root>/config/settings.yaml si existe)")
    p.add_argument("--log-level", default="INFO", choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    sub = p.add_subparsers(dest="cmd", required=True)

    pe = sub.add_parser("ice-event", help="raster de fecha de ice-on / ice-off")
    pe.add_argument("--year", type=int, default=None, help="año de la temporada (por defecto Settings.default_year)")
    pe.add_argument("--mode", choices=[m.value for m in IceMode], default=IceMode.ICE_ON.value)
    pe.add_argument("--out", help="ruta de salida TIFF (si no, usa Settings.output_patterns['ice_event'])")
    pe.set_defaults(func=cmd_ice_event)

    pc = sub.add_parser("current-ice", help="hielo / agua abierta en la imagen más reciente")
    pc.add_argument("--out", help="ruta de salida TIFF (si no, usa Settings.output_patterns['current_ice'])")
    pc.set_defaults(func=cmd_current_ice)

    pm = sub.add_parser("series", help="mediana regional por fecha de la temporada (CSV)")
    pm.add_argument("--year", type=int, default=None)
    pm.add_argument("--out", help="ruta de salida CSV")
    pm.set_defaults(func=cmd_series)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        return 130
    except Exception as ex:
        logger.debug("fallo en CLI", exc_info=True)
        print(f"[ERROR] {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
