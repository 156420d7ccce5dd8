"""Reusable pool of temporary rasters checked out under named scopes."""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
import logging
from typing import Callable, Iterator

import numpy as np

from tectonics.grid import Grid
from tectonics.raster import Raster, mask_raster, scalar_raster, vector_raster

logger = logging.getLogger(__name__)


class ScratchScopeError(RuntimeError):
    """Raised when scratch scopes are opened, used or closed out of order."""


_PoolKey = tuple[Grid, str, np.dtype]


class ScratchArena:
    """Stack of named checkout scopes over a pool of per-grid rasters.

    Rasters handed out keep whatever values their previous user left behind.
    Every raster checked out inside a scope goes back to the pool when that
    scope is deallocated, so callers must not hold on to them afterwards.
    """

    def __init__(self) -> None:
        self._pool: dict[_PoolKey, list[Raster]] = defaultdict(list)
        self._scopes: list[tuple[str, int]] = []
        self._checked_out: list[tuple[_PoolKey, Raster]] = []

    @property
    def open_scopes(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self._scopes)

    @property
    def pooled_count(self) -> int:
        return sum(len(rasters) for rasters in self._pool.values())

    def allocate(self, name: str) -> None:
        if not name:
            raise ScratchScopeError("scope name must be non-empty")
        if name in self.open_scopes:
            raise ScratchScopeError(f"scratch scope {name!r} is already open")
        self._scopes.append((name, len(self._checked_out)))

    def deallocate(self, name: str) -> None:
        if not self._scopes:
            raise ScratchScopeError(f"scratch scope {name!r} is not open")
        top, marker = self._scopes[-1]
        if top != name:
            raise ScratchScopeError(f"cannot close scratch scope {name!r} while {top!r} is innermost")
        self._scopes.pop()
        released = self._checked_out[marker:]
        del self._checked_out[marker:]
        for key, raster in released:
            self._pool[key].append(raster)
        logger.debug("scratch scope %s released %d rasters", name, len(released))

    @contextmanager
    def scope(self, name: str) -> Iterator["ScratchArena"]:
        self.allocate(name)
        try:
            yield self
        finally:
            self.deallocate(name)

    def scalar(self, grid: Grid, *, dtype: np.dtype | type = np.float32) -> Raster:
        return self._checkout(grid, "scalar", np.dtype(dtype), lambda: scalar_raster(grid, dtype=dtype))

    def vector(self, grid: Grid, *, dtype: np.dtype | type = np.float32) -> Raster:
        return self._checkout(grid, "vector", np.dtype(dtype), lambda: vector_raster(grid, dtype=dtype))

    def mask(self, grid: Grid) -> Raster:
        return self._checkout(grid, "mask", np.dtype(bool), lambda: mask_raster(grid))

    def _checkout(self, grid: Grid, kind: str, dtype: np.dtype, factory: Callable[[], Raster]) -> Raster:
        if not self._scopes:
            raise ScratchScopeError("scratch rasters may only be checked out inside an open scope")
        key = (grid, kind, dtype)
        free = self._pool[key]
        raster = free.pop() if free else factory()
        self._checked_out.append((key, raster))
        return raster
