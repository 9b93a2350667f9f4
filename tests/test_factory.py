import numpy as np
import pytest

from game_rng import GameRNG
from main import main
from mapgen.builders.chain import BuilderChain
from mapgen.builders.factory import INITIAL_BUILDERS, named_builder, random_builder, random_shape_builder
from mapgen.builders.meta.exits import DistantExit
from mapgen.builders.prefab.builder import PrefabBuilder
from mapgen.builders.prefab.rex import XpFile
from mapgen.errors import BuilderConfigurationError, WfcContradictionError
from mapgen.world.game_map import TILE_ID_DOWN_STAIRS, TILE_ID_FLOOR
from mapgen.world.reachability import UNREACHABLE, distance_map

LEVEL_ROWS = [
    "##########",
    "#@       #",
    "#        #",
    "#    >   #",
    "##########",
]


class TopRollRNG:
    """Every die comes up on its highest face."""

    def roll_dice(self, num_dice, sides):
        return num_dice * sides


@pytest.mark.parametrize("seed", range(8))
def test_random_builder_makes_playable_maps(seed):
    rng = GameRNG(seed)
    chain = random_builder(2, rng, 80, 50)
    assert chain.starter is not None
    assert isinstance(chain.builders[-1], PrefabBuilder)
    try:
        build_data = chain.build_map(rng)
    except WfcContradictionError:
        pytest.skip("wave function collapse ran out of retries")
    game_map = build_data.map
    start = build_data.starting_position
    assert game_map.is_walkable(start.x, start.y)
    distances = distance_map(game_map, [game_map.xy_idx(*start)])
    assert not ((game_map.tiles == TILE_ID_FLOOR) & (distances == UNREACHABLE)).any()
    walkable = game_map.walkable()
    assert all(walkable[idx] for idx, _ in build_data.spawn_list)


def test_random_builder_is_reproducible():
    first_rng, second_rng = GameRNG(12), GameRNG(12)
    first = random_builder(1, first_rng, 80, 50)
    second = random_builder(1, second_rng, 80, 50)
    assert type(first.starter) is type(second.starter)
    assert [type(b) for b in first.builders] == [type(b) for b in second.builders]


def test_unknown_algorithm():
    with pytest.raises(BuilderConfigurationError):
        named_builder("labyrinth", 1, 80, 50)


def test_rex_level_needs_a_path():
    with pytest.raises(BuilderConfigurationError):
        named_builder("rex_level", 1, 80, 50)


def test_rex_level_from_path(tmp_path):
    path = tmp_path / "level.xp"
    path.write_bytes(XpFile.from_rows(LEVEL_ROWS).to_bytes())
    build_data = named_builder("rex_level", 1, 10, 5, prefab_path=path).build_map(GameRNG(1))
    assert build_data.starting_position == (1, 1)
    assert build_data.map.floor_count() == 23


def test_wfc_entry_gets_retry_budget():
    chain = named_builder("wfc", 1, 80, 50, wfc_max_retries=3)
    assert chain.starter.max_retries == 3
    assert "wfc" in INITIAL_BUILDERS


def test_main_prints_map(capsys):
    assert main(["--algorithm", "simple_map", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "Start: Position(" in out
    assert ">" in out


def test_main_reports_config_errors(tmp_path):
    assert main(["--config", str(tmp_path / "missing.yaml")]) == 2
    assert main(["--algorithm", "labyrinth", "--seed", "1"]) == 1


def test_barracks_shape_chain_keeps_a_single_exit():
    chain = BuilderChain(2, 80, 50)
    random_shape_builder(TopRollRNG(), chain)
    assert isinstance(chain.starter, PrefabBuilder)
    assert not any(isinstance(stage, DistantExit) for stage in chain.builders)
    build_data = chain.build_map(GameRNG(6))
    assert np.count_nonzero(build_data.map.tiles == TILE_ID_DOWN_STAIRS) == 1


def test_generated_shape_chain_places_distant_exit():
    chain = BuilderChain(2, 80, 50)
    random_shape_builder(GameRNG(3), chain)
    if isinstance(chain.starter, PrefabBuilder):
        pytest.skip("rolled the barracks template")
    assert isinstance(chain.builders[-1], DistantExit)
