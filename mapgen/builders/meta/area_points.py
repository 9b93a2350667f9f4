# mapgen/builders/meta/area_points.py
from enum import Enum, auto

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.builders.meta.cull import start_near
from mapgen.world.game_map import TILE_ID_DOWN_STAIRS
from mapgen.world.reachability import nearest_walkable

log = structlog.get_logger()


class XStart(Enum):
    LEFT = auto()
    CENTER = auto()
    RIGHT = auto()


class YStart(Enum):
    TOP = auto()
    CENTER = auto()
    BOTTOM = auto()


def _seed_point(width: int, height: int, x_start: XStart, y_start: YStart) -> tuple[int, int]:
    if x_start is XStart.LEFT:
        seed_x = 1
    elif x_start is XStart.CENTER:
        seed_x = width // 2
    else:
        seed_x = width - 2

    if y_start is YStart.TOP:
        seed_y = 1
    elif y_start is YStart.CENTER:
        seed_y = height // 2
    else:
        seed_y = height - 2
    return seed_x, seed_y


class AreaStartingPosition(MetaMapBuilder):
    """Starts on the walkable cell closest to a corner, edge midpoint or centre."""

    def __init__(self, x_start: XStart, y_start: YStart):
        self.x_start = x_start
        self.y_start = y_start

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        seed = _seed_point(build_data.width, build_data.height, self.x_start, self.y_start)
        start = start_near(build_data, *seed)
        log.debug("Area start placed", seed=seed, start=start)


class AreaEndingPosition(MetaMapBuilder):
    """Down stairs on the walkable cell closest to the chosen area."""

    def __init__(self, x_end: XStart, y_end: YStart):
        self.x_end = x_end
        self.y_end = y_end

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        seed = _seed_point(game_map.width, game_map.height, self.x_end, self.y_end)
        idx = nearest_walkable(game_map, *seed)
        game_map.tiles[idx] = TILE_ID_DOWN_STAIRS
        log.debug("Area exit placed", seed=seed, exit=game_map.idx_xy(idx))
        build_data.take_snapshot()
