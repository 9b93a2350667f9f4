# mapgen/builders/meta/cull.py
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.errors import GenerationFailedError
from mapgen.world.geometry import Position
from mapgen.world.reachability import cull_unreachable, nearest_walkable

log = structlog.get_logger()


def start_near(build_data: BuilderMap, x: int, y: int) -> Position:
    """Sets the starting position to the walkable cell nearest ``(x, y)``."""
    game_map = build_data.map
    start = Position(*game_map.idx_xy(nearest_walkable(game_map, x, y)))
    build_data.starting_position = start
    return start


def cull_from_start(build_data: BuilderMap, stage: str) -> None:
    """Walls off every floor cell unreachable from the starting position."""
    start = build_data.require_start(stage)
    game_map = build_data.map
    if not game_map.is_walkable(start.x, start.y):
        log.error("Starting position is not walkable", stage=stage, start=start)
        raise GenerationFailedError(f"{stage}: starting position {start} is not walkable")
    build_data.exit_candidate = cull_unreachable(game_map, game_map.xy_idx(*start))
    walkable = game_map.walkable()
    build_data.spawn_list[:] = [spawn for spawn in build_data.spawn_list if walkable[spawn[0]]]
    build_data.take_snapshot()


class CullUnreachable(MetaMapBuilder):
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        cull_from_start(build_data, type(self).__name__)
