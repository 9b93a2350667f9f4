# mapgen/builders/cellular_automata.py
from typing import Final

import numpy as np
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.builders.meta.cull import cull_from_start, start_near
from mapgen.world.game_map import TILE_ID_FLOOR, TILE_ID_WALL, GameMap

log = structlog.get_logger()

WALL_ROLL_THRESHOLD: Final[int] = 55
GENERATIONS: Final[int] = 15


def wall_neighbour_counts(walls: np.ndarray) -> np.ndarray:
    """8-neighbourhood wall count for every interior cell of a 2-D wall mask."""
    w = walls.astype(np.int8)
    return (
        w[:-2, :-2] + w[:-2, 1:-1] + w[:-2, 2:]
        + w[1:-1, :-2] + w[1:-1, 2:]
        + w[2:, :-2] + w[2:, 1:-1] + w[2:, 2:]
    )


def iterate_cells(game_map: GameMap) -> None:
    """One automaton generation over the map interior."""
    grid = game_map.grid
    neighbours = wall_neighbour_counts(grid == TILE_ID_WALL)
    becomes_wall = (neighbours > 4) | (neighbours == 0)
    grid[1:-1, 1:-1] = np.where(becomes_wall, TILE_ID_WALL, TILE_ID_FLOOR)


class CellularAutomataBuilder(InitialMapBuilder):
    """Organic caverns grown from noise, culled to the region around the center."""

    def __init__(self, generations: int = GENERATIONS):
        self.generations = generations

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        grid = game_map.grid
        for y in range(1, game_map.height - 1):
            for x in range(1, game_map.width - 1):
                roll = rng.roll_dice(1, 100)
                grid[y, x] = TILE_ID_FLOOR if roll > WALL_ROLL_THRESHOLD else TILE_ID_WALL
        build_data.take_snapshot()

        for _ in range(self.generations):
            iterate_cells(game_map)
            build_data.take_snapshot()

        start = start_near(build_data, game_map.width // 2, game_map.height // 2)
        cull_from_start(build_data, type(self).__name__)
        log.info(
            "Cavern generated",
            generations=self.generations,
            start=start,
            floor=game_map.floor_count(),
        )
