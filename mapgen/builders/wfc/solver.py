# mapgen/builders/wfc/solver.py
"""Wave function collapse solver over a grid of chunk-sized cells.

Every cell holds a boolean candidate row over the pattern library. A cell
with one candidate is resolved; a cell with none is a contradiction, which
ends the attempt. Each step collapses one of the lowest-entropy unresolved
cells and propagates the reduction breadth-first from it.
"""
from collections import deque
from typing import Iterable, Optional

import numpy as np
import structlog

from game_rng import GameRNG
from mapgen.builders.wfc.patterns import OFFSETS, PatternLibrary

log = structlog.get_logger()

ENTROPY_TOLERANCE = 1e-9


class Solver:
    def __init__(self, library: PatternLibrary, chunks_x: int, chunks_y: int):
        self.library = library
        self.chunks_x = chunks_x
        self.chunks_y = chunks_y
        self.possible = np.ones((chunks_x * chunks_y, len(library)), dtype=bool)
        self.contradiction = False

    def _neighbours(self, cell: int) -> Iterable[tuple[int, int]]:
        x, y = cell % self.chunks_x, cell // self.chunks_x
        for direction, (dx, dy) in enumerate(OFFSETS):
            nx, ny = x + dx, y + dy
            if 0 <= nx < self.chunks_x and 0 <= ny < self.chunks_y:
                yield direction, ny * self.chunks_x + nx

    def propagate(self, start_cells: Iterable[int]) -> bool:
        """Removes candidates no neighbour can support. False on contradiction."""
        compatible = self.library.compatible
        queue = deque(start_cells)
        queued = set(queue)
        while queue:
            cell = queue.popleft()
            queued.discard(cell)
            candidates = self.possible[cell]
            for direction, neighbour in self._neighbours(cell):
                allowed = compatible[direction][candidates].any(axis=0)
                reduced = self.possible[neighbour] & allowed
                if np.array_equal(reduced, self.possible[neighbour]):
                    continue
                self.possible[neighbour] = reduced
                if not reduced.any():
                    log.debug("WFC contradiction", cell=neighbour)
                    self.contradiction = True
                    return False
                if neighbour not in queued:
                    queue.append(neighbour)
                    queued.add(neighbour)
        return True

    def entropy(self) -> np.ndarray:
        """Shannon entropy per cell, weighted by pattern frequency."""
        weights = self.possible * self.library.weights
        totals = weights.sum(axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            log_weights = np.log(np.where(weights > 0, weights, 1.0))
            entropy = np.log(totals) - (weights * log_weights).sum(axis=1) / totals
        return entropy

    def _lowest_entropy_cell(self, rng: GameRNG) -> Optional[int]:
        counts = self.possible.sum(axis=1)
        unresolved = np.flatnonzero(counts > 1)
        if unresolved.size == 0:
            return None
        entropy = self.entropy()[unresolved]
        lowest = unresolved[entropy <= entropy.min() + ENTROPY_TOLERANCE]
        return int(lowest[rng.range(0, len(lowest))])

    def _choose_pattern(self, rng: GameRNG, cell: int) -> int:
        candidates = np.flatnonzero(self.possible[cell])
        weights = self.library.weights[candidates]
        cumulative = np.cumsum(weights)
        roll = rng.get_float(0.0, float(cumulative[-1]))
        pick = min(int(np.searchsorted(cumulative, roll, side="right")), len(candidates) - 1)
        return int(candidates[pick])

    def solve(self, rng: GameRNG) -> bool:
        """Runs to full resolution. Returns False if a contradiction occurred."""
        if not self.propagate(range(self.possible.shape[0])):
            return False
        while True:
            cell = self._lowest_entropy_cell(rng)
            if cell is None:
                return True
            pattern = self._choose_pattern(rng, cell)
            self.possible[cell] = False
            self.possible[cell, pattern] = True
            if not self.propagate([cell]):
                return False

    def resolved_patterns(self) -> np.ndarray:
        """Pattern index per cell; only meaningful after a successful solve."""
        return np.argmax(self.possible, axis=1)
