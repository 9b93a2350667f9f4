# mapgen/builders/meta/region_spawning.py
from typing import Dict, Final, List

import numpy as np
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.builders.voronoi import voronoi_membership
from mapgen.spawning.spawner import spawn_region
from mapgen.world.geometry import DistanceAlg

log = structlog.get_logger()

# Map cells per noise region; roughly a 12x12 patch.
CELLS_PER_REGION: Final[int] = 144


def noise_regions(build_data: BuilderMap, rng: GameRNG) -> Dict[int, List[int]]:
    """Partitions the walkable cells into Voronoi regions around random seeds."""
    game_map = build_data.map
    walkable = np.flatnonzero(game_map.walkable())
    if walkable.size == 0:
        return {}
    n_seeds = min(int(walkable.size), max(1, game_map.size // CELLS_PER_REGION))
    pool = walkable.tolist()
    seeds = []
    for _ in range(n_seeds):
        idx = pool.pop(rng.range(0, len(pool)))
        seeds.append(game_map.idx_xy(idx))
    membership = voronoi_membership(game_map.width, game_map.height, seeds, DistanceAlg.PYTHAGORAS)

    regions: Dict[int, List[int]] = {}
    for idx, region in zip(walkable.tolist(), membership[walkable].tolist()):
        regions.setdefault(region, []).append(idx)
    return regions


class VoronoiSpawning(MetaMapBuilder):
    """Spawns per noise region: the builder's own regions, else fresh ones."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        if build_data.noise_areas:
            walkable = game_map.walkable()
            regions = {
                region: [idx for idx in cells if walkable[idx]]
                for region, cells in build_data.noise_areas.items()
            }
        else:
            regions = noise_regions(build_data, rng)
            build_data.noise_areas = regions

        before = len(build_data.spawn_list)
        for region in sorted(regions):
            spawn_region(rng, regions[region], game_map.depth, build_data.spawn_list)
        log.debug("Regions populated", regions=len(regions), spawns=len(build_data.spawn_list) - before)


class CorridorSpawner(MetaMapBuilder):
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        corridors = build_data.require_corridors(type(self).__name__)
        for corridor in corridors:
            spawn_region(rng, corridor, build_data.map.depth, build_data.spawn_list)
