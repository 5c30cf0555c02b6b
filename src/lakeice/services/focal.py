# src/lakeice/services/focal.py
from __future__ import annotations

"""
Álgebra de vecindario sobre arreglos con NaN (NaN = inválido).

Kernels:
  • square_kernel(K): pesos uniformes K×K.
  • circle_kernel(r): disco binario de radio r (morfología).
  • euclidean_kernel(r): pesos = distancia euclidiana al centro, dentro del disco.

Reductores ponderados (focal_sum / focal_mean / focal_variance) ignoran
vecinos inválidos y devuelven NaN donde no hay ninguno válido. Fuera del
borde de la imagen todo cuenta como inválido.

focal_min / focal_max (morfología) esperan entradas sin NaN y replican el
borde ("nearest").
"""

import numpy as np
from scipy import ndimage


# ----------------------
# Kernels
# ----------------------

def square_kernel(size: int) -> np.ndarray:
    if size < 1 or size % 2 == 0:
        raise ValueError(f"tamaño de kernel debe ser impar y positivo: {size}")
    return np.ones((size, size), dtype=np.float64)


def _offsets(radius: int) -> np.ndarray:
    ax = np.arange(-radius, radius + 1, dtype=np.float64)
    yy, xx = np.meshgrid(ax, ax, indexing="ij")
    return np.hypot(yy, xx)


def circle_kernel(radius: int) -> np.ndarray:
    if radius < 0:
        raise ValueError(f"radio negativo: {radius}")
    return (_offsets(radius) <= radius + 1e-9).astype(np.float64)


def euclidean_kernel(radius: int) -> np.ndarray:
    if radius < 0:
        raise ValueError(f"radio negativo: {radius}")
    d = _offsets(radius)
    return np.where(d <= radius + 1e-9, d, 0.0)


# ----------------------
# Reductores
# ----------------------

def _split(arr: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    a = np.asarray(arr, dtype=np.float64)
    valid = np.isfinite(a)
    return np.where(valid, a, 0.0), valid.astype(np.float64)


def _correlate(a: np.ndarray, weights: np.ndarray) -> np.ndarray:
    return ndimage.correlate(a, weights, mode="constant", cval=0.0)


def focal_sum(arr: np.ndarray, weights: np.ndarray) -> np.ndarray:
    vals, valid = _split(arr)
    s = _correlate(vals, weights)
    n = _correlate(valid, np.abs(weights))
    return np.where(n > 0, s, np.nan)


def focal_mean(arr: np.ndarray, weights: np.ndarray) -> np.ndarray:
    vals, valid = _split(arr)
    s = _correlate(vals, weights)
    w = _correlate(valid, weights)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(w > 0, s / w, np.nan)


def focal_variance(arr: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Varianza poblacional ponderada: E[x²] - E[x]², recortada a >= 0."""
    vals, valid = _split(arr)
    w = _correlate(valid, weights)
    s1 = _correlate(vals, weights)
    s2 = _correlate(vals * vals, weights)
    with np.errstate(invalid="ignore", divide="ignore"):
        m = s1 / w
        var = s2 / w - m * m
    return np.where(w > 0, np.maximum(var, 0.0), np.nan)


def focal_min(arr: np.ndarray, footprint: np.ndarray, iterations: int = 1) -> np.ndarray:
    out = np.asarray(arr, dtype=np.float64)
    fp = np.asarray(footprint) > 0
    for _ in range(iterations):
        out = ndimage.minimum_filter(out, footprint=fp, mode="nearest")
    return out


def focal_max(arr: np.ndarray, footprint: np.ndarray, iterations: int = 1) -> np.ndarray:
    out = np.asarray(arr, dtype=np.float64)
    fp = np.asarray(footprint) > 0
    for _ in range(iterations):
        out = ndimage.maximum_filter(out, footprint=fp, mode="nearest")
    return out


__all__ = [
    "square_kernel", "circle_kernel", "euclidean_kernel",
    "focal_sum", "focal_mean", "focal_variance", "focal_min", "focal_max",
]
