# src/lakeice/errors.py
from __future__ import annotations


class LakeIceError(Exception):
    """Base de errores del núcleo (recuperables en el borde del pipeline)."""


class MissingDataError(LakeIceError, LookupError):
    """El catálogo no entregó escenas para la ventana pedida, o falta el land-cover."""


class MisalignedGridError(LakeIceError, ValueError):
    """Combinación píxel a píxel de rasters con grillas/CRS incompatibles."""


class NumericDegeneracyWarning(RuntimeWarning):
    """Degeneración numérica (división por cero) resuelta como NaN, nunca como excepción."""


__all__ = ["LakeIceError", "MissingDataError", "MisalignedGridError", "NumericDegeneracyWarning"]
