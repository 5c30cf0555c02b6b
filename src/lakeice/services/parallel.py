# src/lakeice/services/parallel.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(
    fn: Callable[[T], R],
    items: Iterable[T],
    *,
    max_workers: int = 4,
    executor: Optional[ThreadPoolExecutor] = None,
) -> List[R]:
    """
    Aplica `fn` a cada item en un pool acotado y devuelve los resultados
    en el orden de entrada. Una excepción en cualquier tarea se propaga.
    """
    seq = list(items)
    if not seq:
        return []
    if executor is not None:
        return list(executor.map(fn, seq))
    if max_workers <= 1 or len(seq) == 1:
        return [fn(x) for x in seq]
    workers = min(max_workers, len(seq))
    logger.debug(f"parallel_map: {len(seq)} tareas en {workers} workers")
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lakeice") as pool:
        return list(pool.map(fn, seq))


__all__ = ["parallel_map"]
