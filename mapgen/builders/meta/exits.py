# mapgen/builders/meta/exits.py
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, MetaMapBuilder
from mapgen.errors import BuilderOrderingError, GenerationFailedError
from mapgen.world.game_map import TILE_ID_DOWN_STAIRS
from mapgen.world.reachability import distance_map, most_distant

log = structlog.get_logger()


class DistantExit(MetaMapBuilder):
    """Down stairs on the reachable cell furthest from the start."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        start = build_data.require_start(type(self).__name__)
        game_map = build_data.map
        distances = distance_map(game_map, [game_map.xy_idx(*start)])
        exit_idx = most_distant(distances)
        if exit_idx is None:
            log.error("No reachable cell to place an exit on", start=start)
            raise GenerationFailedError("Nothing is reachable from the starting position")
        game_map.tiles[exit_idx] = TILE_ID_DOWN_STAIRS
        log.debug("Distant exit placed", exit=game_map.idx_xy(exit_idx), distance=int(distances[exit_idx]))
        build_data.take_snapshot()


class CandidateExit(MetaMapBuilder):
    """Down stairs on the exit candidate left by culling or a digger."""

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        if build_data.exit_candidate is None:
            log.error("No exit candidate recorded", stage=type(self).__name__)
            raise BuilderOrderingError("CandidateExit requires a builder that records an exit candidate")
        build_data.map.tiles[build_data.exit_candidate] = TILE_ID_DOWN_STAIRS
        build_data.take_snapshot()
