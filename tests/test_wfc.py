import numpy as np
import pytest

from game_rng import GameRNG
from mapgen.builders.chain import BuilderChain
from mapgen.builders.simple_map import SimpleMapBuilder
from mapgen.builders.wfc.builder import WaveFunctionCollapseBuilder
from mapgen.builders.wfc.patterns import (
    EAST,
    NORTH,
    SOUTH,
    WEST,
    PatternLibrary,
    build_library,
    build_patterns,
)
from mapgen.builders.wfc.solver import Solver
from mapgen.errors import GenerationFailedError, WfcContradictionError
from mapgen.world.game_map import TILE_ID_DOWN_STAIRS, TILE_ID_FLOOR, TILE_ID_WALL
from mapgen.world.reachability import UNREACHABLE, distance_map


def sample_grid():
    """24x24 walls with a floor cross through the middle chunk."""
    grid = np.full((24, 24), TILE_ID_WALL, dtype=np.uint8)
    grid[11:13, 4:20] = TILE_ID_FLOOR
    grid[4:20, 11:13] = TILE_ID_FLOOR
    return grid


def test_patterns_are_deduplicated_and_weighted():
    grid = np.full((16, 16), TILE_ID_WALL, dtype=np.uint8)
    patterns, weights = build_patterns(grid, 8, include_variants=False)
    assert patterns.shape == (1, 8, 8)
    assert weights.tolist() == [4.0]


def test_non_floor_tiles_are_sampled_as_wall():
    grid = np.full((8, 8), TILE_ID_DOWN_STAIRS, dtype=np.uint8)
    patterns, _ = build_patterns(grid, 8, include_variants=False)
    assert np.all(patterns == TILE_ID_WALL)


def test_sample_smaller_than_chunk_rejected():
    with pytest.raises(ValueError):
        build_patterns(np.zeros((4, 4), dtype=np.uint8), 8)


def test_constraints_are_symmetric():
    library = build_library(sample_grid(), 8)
    compatible = library.compatible
    assert np.array_equal(compatible[EAST], compatible[WEST].T)
    assert np.array_equal(compatible[SOUTH], compatible[NORTH].T)


def test_solved_neighbours_respect_constraints():
    library = build_library(sample_grid(), 8)
    solver = Solver(library, 5, 4)
    assert solver.solve(GameRNG(17))
    assignment = solver.resolved_patterns().reshape(4, 5)
    assert np.all(solver.possible.sum(axis=1) == 1)
    for y in range(4):
        for x in range(5):
            here = assignment[y, x]
            if x + 1 < 5:
                assert library.compatible[EAST][here, assignment[y, x + 1]]
            if y + 1 < 4:
                assert library.compatible[SOUTH][here, assignment[y + 1, x]]


def test_wfc_meta_pass_is_connected_and_walled():
    chain = (
        BuilderChain(1, 80, 48)
        .start_with(SimpleMapBuilder(max_rooms=4))
        .with_meta(WaveFunctionCollapseBuilder())
    )
    build_data = chain.build_map(GameRNG(31))
    game_map = build_data.map
    assert build_data.rooms is None
    assert build_data.corridors is None
    assert build_data.spawn_list == []
    grid = game_map.grid
    assert np.all(grid[0, :] == TILE_ID_WALL) and np.all(grid[:, -1] == TILE_ID_WALL)
    distances = distance_map(game_map, [game_map.xy_idx(*build_data.starting_position)])
    assert not (game_map.walkable() & (distances == UNREACHABLE)).any()


def test_derived_map_samples_source_builder():
    builder = WaveFunctionCollapseBuilder.derived_map(SimpleMapBuilder(max_rooms=4))
    chain = BuilderChain(1, 80, 48, record_history=True).start_with(builder)
    build_data = chain.build_map(GameRNG(8))
    assert build_data.map.floor_count() > 0
    assert len(build_data.history) > 2


def test_contradiction_restarts(monkeypatch):
    original_solve = Solver.solve
    calls = []

    def flaky_solve(self, rng):
        calls.append(1)
        if len(calls) == 1:
            return False
        return original_solve(self, rng)

    monkeypatch.setattr(Solver, "solve", flaky_solve)
    chain = (
        BuilderChain(1, 80, 48)
        .start_with(SimpleMapBuilder(max_rooms=4))
        .with_meta(WaveFunctionCollapseBuilder(max_retries=3))
    )
    build_data = chain.build_map(GameRNG(5))
    assert len(calls) == 2
    assert build_data.map.floor_count() > 0


def test_retry_budget_exhausted(monkeypatch):
    calls = []

    def always_fails(self, rng):
        calls.append(1)
        return False

    monkeypatch.setattr(Solver, "solve", always_fails)
    chain = (
        BuilderChain(1, 80, 48)
        .start_with(SimpleMapBuilder(max_rooms=4))
        .with_meta(WaveFunctionCollapseBuilder(max_retries=4))
    )
    with pytest.raises(WfcContradictionError) as excinfo:
        chain.build_map(GameRNG(5))
    assert excinfo.value.attempts == 4
    assert len(calls) == 4
    assert isinstance(excinfo.value, GenerationFailedError)


def test_map_smaller_than_chunk_fails():
    builder = WaveFunctionCollapseBuilder.derived_map(SimpleMapBuilder(max_rooms=4))
    chain = BuilderChain(1, 6, 6).start_with(builder)
    with pytest.raises(GenerationFailedError):
        chain.build_map(GameRNG(1))


def contradicting_library():
    """One open pattern that may not sit beside itself east or west."""
    patterns = np.full((1, 8, 8), TILE_ID_FLOOR, dtype=np.uint8)
    compatible = np.ones((4, 1, 1), dtype=bool)
    compatible[EAST] = False
    compatible[WEST] = False
    return PatternLibrary(patterns, np.array([1.0]), compatible)


def test_solver_detects_contradiction():
    solver = Solver(contradicting_library(), 2, 1)
    assert not solver.solve(GameRNG(1))
    assert solver.contradiction
    assert not solver.possible.any(axis=1).all()


def test_single_column_of_self_hating_pattern_solves():
    solver = Solver(contradicting_library(), 1, 3)
    assert solver.solve(GameRNG(1))
    assert solver.resolved_patterns().tolist() == [0, 0, 0]


def test_real_contradiction_exhausts_retries(monkeypatch):
    monkeypatch.setattr(
        "mapgen.builders.wfc.builder.build_library", lambda grid, chunk_size: contradicting_library()
    )
    original_propagate = Solver.propagate
    outcomes = []

    def recording_propagate(self, start_cells):
        result = original_propagate(self, start_cells)
        outcomes.append(result)
        return result

    monkeypatch.setattr(Solver, "propagate", recording_propagate)
    chain = (
        BuilderChain(1, 16, 16)
        .start_with(SimpleMapBuilder(max_rooms=1))
        .with_meta(WaveFunctionCollapseBuilder(max_retries=3))
    )
    with pytest.raises(WfcContradictionError) as excinfo:
        chain.build_map(GameRNG(2))
    assert excinfo.value.attempts == 3
    assert outcomes == [False, False, False]
