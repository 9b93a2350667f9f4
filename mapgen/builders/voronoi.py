# mapgen/builders/voronoi.py
from typing import Dict, Final, List, Sequence, Set, Tuple

import numpy as np
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.builders.meta.cull import cull_from_start, start_near
from mapgen.world.game_map import TILE_ID_FLOOR, GameMap
from mapgen.world.geometry import DistanceAlg
from mapgen.world.paint import draw_corridor

log = structlog.get_logger()

DEFAULT_SEEDS: Final[int] = 64


def voronoi_membership(
    width: int,
    height: int,
    seeds: Sequence[Tuple[int, int]],
    metric: DistanceAlg = DistanceAlg.PYTHAGORAS,
) -> np.ndarray:
    """Index of the nearest seed for every cell, flat and ``y*width+x`` ordered.

    Equal distances resolve to the seed that comes first in ``seeds``.
    """
    if not seeds:
        raise ValueError("voronoi_membership needs at least one seed")
    ys, xs = np.divmod(np.arange(width * height), width)
    seed_xy = np.asarray(seeds, dtype=np.int64)
    dx = np.abs(xs[None, :] - seed_xy[:, 0:1])
    dy = np.abs(ys[None, :] - seed_xy[:, 1:2])
    if metric is DistanceAlg.MANHATTAN:
        distances = dx + dy
    elif metric is DistanceAlg.CHEBYSHEV:
        distances = np.maximum(dx, dy)
    else:
        # Squared distance orders cells exactly like the Euclidean one.
        distances = dx * dx + dy * dy
    # argmin returns the first minimum, which is the insertion-order tie break.
    return np.argmin(distances, axis=0).astype(np.int32)


def region_adjacency(membership: np.ndarray, width: int, height: int) -> List[Tuple[int, int]]:
    """Sorted pairs of regions that touch horizontally or vertically."""
    grid = membership.reshape(height, width)
    pairs: Set[Tuple[int, int]] = set()
    for a, b in (
        (grid[:, :-1], grid[:, 1:]),
        (grid[:-1, :], grid[1:, :]),
    ):
        differs = a != b
        for left, right in zip(a[differs].tolist(), b[differs].tolist()):
            pairs.add((min(left, right), max(left, right)))
    return sorted(pairs)


class VoronoiCellBuilder(InitialMapBuilder):
    def __init__(self, n_seeds: int = DEFAULT_SEEDS, metric: DistanceAlg = DistanceAlg.PYTHAGORAS):
        self.n_seeds = n_seeds
        self.metric = metric

    @classmethod
    def pythagoras(cls) -> "VoronoiCellBuilder":
        return cls(metric=DistanceAlg.PYTHAGORAS)

    @classmethod
    def manhattan(cls) -> "VoronoiCellBuilder":
        return cls(metric=DistanceAlg.MANHATTAN)

    @classmethod
    def chebyshev(cls) -> "VoronoiCellBuilder":
        return cls(metric=DistanceAlg.CHEBYSHEV)

    def _scatter_seeds(self, rng: GameRNG, game_map: GameMap) -> List[Tuple[int, int]]:
        interior = (game_map.width - 2) * (game_map.height - 2)
        target = min(self.n_seeds, interior)
        seeds: List[Tuple[int, int]] = []
        seen: Set[Tuple[int, int]] = set()
        while len(seeds) < target:
            seed = (
                rng.roll_dice(1, game_map.width - 2),
                rng.roll_dice(1, game_map.height - 2),
            )
            if seed not in seen:
                seen.add(seed)
                seeds.append(seed)
        return seeds

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        width, height = game_map.width, game_map.height
        seeds = self._scatter_seeds(rng, game_map)
        membership = voronoi_membership(width, height, seeds, self.metric)

        # A cell stays open unless it borders two or more foreign regions.
        grid = membership.reshape(height, width)
        centre = grid[1:-1, 1:-1]
        neighbours = (
            (grid[:-2, 1:-1] != centre).astype(np.int8)
            + (grid[2:, 1:-1] != centre)
            + (grid[1:-1, :-2] != centre)
            + (grid[1:-1, 2:] != centre)
        )
        game_map.grid[1:-1, 1:-1][neighbours < 2] = TILE_ID_FLOOR
        for sx, sy in seeds:
            game_map.tiles[game_map.xy_idx(sx, sy)] = TILE_ID_FLOOR
        build_data.take_snapshot()

        corridors: List[List[int]] = []
        for a, b in region_adjacency(membership, width, height):
            (ax, ay), (bx, by) = seeds[a], seeds[b]
            corridor = draw_corridor(game_map, ax, ay, bx, by)
            if corridor:
                corridors.append(corridor)
        build_data.corridors = corridors
        build_data.take_snapshot()

        floor_cells = np.flatnonzero(game_map.tiles == TILE_ID_FLOOR)
        noise_areas: Dict[int, List[int]] = {}
        for idx, region in zip(floor_cells.tolist(), membership[floor_cells].tolist()):
            noise_areas.setdefault(region, []).append(idx)

        start = start_near(build_data, width // 2, height // 2)
        cull_from_start(build_data, type(self).__name__)
        walkable = game_map.walkable()
        build_data.noise_areas = {
            region: [idx for idx in cells if walkable[idx]]
            for region, cells in noise_areas.items()
        }
        log.info(
            "Voronoi cells carved",
            seeds=len(seeds),
            metric=self.metric.name,
            corridors=len(corridors),
            start=start,
        )
