# mapgen/builders/wfc/builder.py
from typing import Final, Optional

import numpy as np
import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder, MetaMapBuilder
from mapgen.builders.meta.cull import cull_from_start, start_near
from mapgen.builders.wfc.patterns import PatternLibrary, build_library
from mapgen.builders.wfc.solver import Solver
from mapgen.errors import GenerationFailedError, WfcContradictionError
from mapgen.world.game_map import TILE_ID_WALL, GameMap

log = structlog.get_logger()

DEFAULT_CHUNK_SIZE: Final[int] = 8
DEFAULT_MAX_RETRIES: Final[int] = 10


def render_patterns(
    game_map: GameMap, library: PatternLibrary, assignment: np.ndarray, chunks_x: int, chunks_y: int
) -> None:
    """Stamps solved patterns onto ``game_map``; leftover margin stays wall."""
    chunk = library.chunk_size
    grid = game_map.grid
    grid[:, :] = TILE_ID_WALL
    tiles = library.patterns[assignment].reshape(chunks_y, chunks_x, chunk, chunk)
    grid[: chunks_y * chunk, : chunks_x * chunk] = tiles.transpose(0, 2, 1, 3).reshape(
        chunks_y * chunk, chunks_x * chunk
    )
    grid[0, :] = TILE_ID_WALL
    grid[-1, :] = TILE_ID_WALL
    grid[:, 0] = TILE_ID_WALL
    grid[:, -1] = TILE_ID_WALL


class WaveFunctionCollapseBuilder(InitialMapBuilder, MetaMapBuilder):
    """Resynthesizes a map from the chunk patterns of a sample map.

    As a meta-builder the sample is whatever the chain has built so far.
    ``derived_map`` instead runs another initial builder first and samples
    its output. A contradiction discards the attempt and solves again,
    drawing on from the same random stream, up to ``max_retries`` attempts.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        source: Optional[InitialMapBuilder] = None,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.chunk_size = chunk_size
        self.max_retries = max_retries
        self.source = source

    @classmethod
    def derived_map(cls, source: InitialMapBuilder, **kwargs) -> "WaveFunctionCollapseBuilder":
        return cls(source=source, **kwargs)

    def _sample(self, rng: GameRNG, build_data: BuilderMap) -> np.ndarray:
        if self.source is None:
            return build_data.map.grid.copy()
        game_map = build_data.map
        scratch = BuilderMap(
            map=GameMap(game_map.width, game_map.height, game_map.depth, game_map.name),
            record_history=build_data.record_history,
        )
        self.source.build_map(rng, scratch)
        build_data.history.extend(scratch.history)
        return scratch.map.grid.copy()

    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        chunks_x = game_map.width // self.chunk_size
        chunks_y = game_map.height // self.chunk_size
        if chunks_x < 1 or chunks_y < 1:
            log.error("Map smaller than one WFC chunk", chunk_size=self.chunk_size)
            raise GenerationFailedError("Map is smaller than a single wave function chunk")

        library = build_library(self._sample(rng, build_data), self.chunk_size)
        build_data.take_snapshot()

        for attempt in range(1, self.max_retries + 1):
            solver = Solver(library, chunks_x, chunks_y)
            if solver.solve(rng):
                render_patterns(game_map, library, solver.resolved_patterns(), chunks_x, chunks_y)
                log.info("WFC solved", attempt=attempt, patterns=len(library))
                break
            log.warning("WFC contradiction, restarting", attempt=attempt, max_retries=self.max_retries)
        else:
            log.error("WFC retry budget exhausted", attempts=self.max_retries)
            raise WfcContradictionError(self.max_retries)
        build_data.take_snapshot()

        # The old layout is gone; anything keyed to it is stale.
        build_data.rooms = None
        build_data.corridors = None
        build_data.noise_areas = None
        build_data.spawn_list.clear()
        game_map.rooms = None
        start_near(build_data, game_map.width // 2, game_map.height // 2)
        cull_from_start(build_data, type(self).__name__)
