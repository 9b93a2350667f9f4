# mapgen/builders/wfc/patterns.py
"""Pattern library and edge constraints for wave function collapse."""
from typing import Dict, Final, List, NamedTuple, Tuple

import numpy as np
import structlog

from mapgen.world.game_map import TILE_ID_FLOOR, TILE_ID_WALL

log = structlog.get_logger()

NORTH: Final[int] = 0
SOUTH: Final[int] = 1
WEST: Final[int] = 2
EAST: Final[int] = 3
OPPOSITE: Final[Tuple[int, int, int, int]] = (SOUTH, NORTH, EAST, WEST)
# (dx, dy) of the neighbouring chunk in each direction.
OFFSETS: Final[Tuple[Tuple[int, int], ...]] = ((0, -1), (0, 1), (-1, 0), (1, 0))


class PatternLibrary(NamedTuple):
    patterns: np.ndarray  # (P, chunk, chunk) uint8
    weights: np.ndarray  # (P,) observed frequency
    compatible: np.ndarray  # (4, P, P) bool, [d, a, b]: b may sit in direction d of a

    @property
    def chunk_size(self) -> int:
        return int(self.patterns.shape[1])

    def __len__(self) -> int:
        return int(self.patterns.shape[0])


def _variants(chunk: np.ndarray) -> List[np.ndarray]:
    variants = [chunk, np.fliplr(chunk), np.flipud(chunk), np.flipud(np.fliplr(chunk))]
    variants += [np.rot90(chunk, k) for k in (1, 3)]
    variants += [np.fliplr(np.rot90(chunk)), np.flipud(np.rot90(chunk))]
    return variants


def build_patterns(
    grid: np.ndarray, chunk_size: int, include_variants: bool = True
) -> Tuple[np.ndarray, np.ndarray]:
    """Cuts ``grid`` into ``chunk_size`` tiles and deduplicates them.

    Returns ``(patterns, weights)`` in first-seen order; the weight counts how
    often each pattern (or one of its variants) was observed. Tiles other than
    floor are treated as wall.
    """
    height, width = grid.shape
    binary = np.where(grid == TILE_ID_FLOOR, TILE_ID_FLOOR, TILE_ID_WALL).astype(np.uint8)
    counts: Dict[bytes, int] = {}
    order: List[np.ndarray] = []
    for cy in range(height // chunk_size):
        for cx in range(width // chunk_size):
            chunk = binary[
                cy * chunk_size:(cy + 1) * chunk_size,
                cx * chunk_size:(cx + 1) * chunk_size,
            ]
            candidates = _variants(chunk) if include_variants else [chunk]
            for candidate in candidates:
                key = np.ascontiguousarray(candidate).tobytes()
                if key not in counts:
                    counts[key] = 0
                    order.append(np.array(candidate, dtype=np.uint8))
                counts[key] += 1

    if not order:
        raise ValueError(f"Sample of {width}x{height} is smaller than one {chunk_size} chunk")
    patterns = np.stack(order)
    weights = np.array([counts[p.tobytes()] for p in patterns], dtype=np.float64)
    log.debug("Patterns extracted", count=len(patterns), chunk_size=chunk_size)
    return patterns, weights


def edge_exits(patterns: np.ndarray) -> np.ndarray:
    """``(4, P, chunk)`` bool: open (floor) cells along each edge."""
    floor = patterns == TILE_ID_FLOOR
    return np.stack(
        [floor[:, 0, :], floor[:, -1, :], floor[:, :, 0], floor[:, :, -1]]
    )


def build_constraints(patterns: np.ndarray) -> np.ndarray:
    """Edge compatibility between every ordered pair of patterns.

    Two facing edges fit if both are closed or they share an open slot. A
    pattern with no exits at all fits against anything.
    """
    exits = edge_exits(patterns)
    has_exits = exits.any(axis=(0, 2))
    unconstrained = ~has_exits[:, None] | ~has_exits[None, :]
    compatible = np.zeros((4, len(patterns), len(patterns)), dtype=bool)
    for direction in range(4):
        mine = exits[direction]
        theirs = exits[OPPOSITE[direction]]
        closed = ~mine.any(axis=1)[:, None] & ~theirs.any(axis=1)[None, :]
        shared = (mine.astype(np.int32) @ theirs.T.astype(np.int32)) > 0
        compatible[direction] = unconstrained | closed | shared
    return compatible


def build_library(grid: np.ndarray, chunk_size: int, include_variants: bool = True) -> PatternLibrary:
    patterns, weights = build_patterns(grid, chunk_size, include_variants)
    return PatternLibrary(patterns, weights, build_constraints(patterns))
