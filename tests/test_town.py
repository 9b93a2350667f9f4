import numpy as np
import pytest

from game_rng import GameRNG
from main import main
from mapgen.builders.chain import BuilderChain, BuilderMap
from mapgen.builders.factory import level_builder, named_builder
from mapgen.builders.town import (
    FURNISHINGS,
    Building,
    BuildingRole,
    TownBuilder,
    assign_roles,
)
from mapgen.errors import GenerationFailedError
from mapgen.world.game_map import (
    TILE_ID_BRIDGE,
    TILE_ID_DEEP_WATER,
    TILE_ID_DOWN_STAIRS,
    TILE_ID_ROAD,
    TILE_ID_WALL,
    TILE_ID_WOOD_FLOOR,
    GameMap,
)
from mapgen.world.geometry import Position
from mapgen.world.reachability import shortest_path


class AlwaysOneRNG:
    def roll_dice(self, num_dice, sides):
        return 1


def test_roles_go_to_the_biggest_buildings_first():
    sizes = [5, 12, 6, 11, 7, 10, 9, 8]
    buildings = [Building(31 + i, 3, size, size) for i, size in enumerate(sizes)]
    assert assign_roles(buildings) == [
        BuildingRole.ABANDONED,
        BuildingRole.PUB,
        BuildingRole.HOVEL,
        BuildingRole.TEMPLE,
        BuildingRole.PLAYER_HOUSE,
        BuildingRole.BLACKSMITH,
        BuildingRole.CLOTHIER,
        BuildingRole.ALCHEMIST,
    ]


def test_small_town_has_no_abandoned_house():
    buildings = [Building(31, 3, 5, 5), Building(40, 3, 8, 8), Building(50, 3, 6, 6)]
    assert assign_roles(buildings) == [
        BuildingRole.BLACKSMITH,
        BuildingRole.PUB,
        BuildingRole.TEMPLE,
    ]


def test_furnishing_follows_the_role_list_and_skips_the_player():
    game_map = GameMap(50, 20)
    game_map.grid[3:9, 31:37] = TILE_ID_WOOD_FLOOR
    build_data = BuilderMap(map=game_map, starting_position=Position(31, 3))
    TownBuilder()._furnish(AlwaysOneRNG(), build_data, Building(31, 3, 6, 6), BuildingRole.HOVEL)
    assert build_data.spawn_list == [
        (game_map.xy_idx(x, 3), name)
        for x, name in zip(range(32, 36), FURNISHINGS[BuildingRole.HOVEL])
    ]


def test_abandoned_house_fills_with_rats():
    game_map = GameMap(50, 20)
    game_map.grid[3:8, 31:36] = TILE_ID_WOOD_FLOOR
    game_map.grid[3, 31] = TILE_ID_WALL
    build_data = BuilderMap(map=game_map)
    TownBuilder()._furnish(AlwaysOneRNG(), build_data, Building(31, 3, 5, 5), BuildingRole.ABANDONED)
    assert len(build_data.spawn_list) == 24
    assert {name for _, name in build_data.spawn_list} == {"Rat"}


@pytest.mark.parametrize("seed", [3, 8])
def test_town_level(seed):
    chain = level_builder(1, GameRNG(seed), 80, 50)
    assert isinstance(chain.starter, TownBuilder)
    build_data = chain.build_map(GameRNG(seed))
    game_map = build_data.map
    grid = game_map.grid

    stairs = np.argwhere(grid == TILE_ID_DOWN_STAIRS)
    assert len(stairs) == 1
    stairs_y, stairs_x = stairs[0]
    assert stairs_x == 75
    assert grid[stairs_y, 30] == TILE_ID_ROAD

    assert np.all(grid[:, 0] == TILE_ID_DEEP_WATER)
    assert np.any(grid == TILE_ID_BRIDGE)

    start = build_data.starting_position
    assert game_map.is_walkable(start.x, start.y)
    assert any(r.x1 <= start.x <= r.x2 and r.y1 <= start.y <= r.y2 for r in build_data.rooms)

    doors = [idx for idx, name in build_data.spawn_list if name == "Door"]
    assert len(doors) == len(build_data.rooms)
    cells = [idx for idx, _ in build_data.spawn_list]
    assert len(cells) == len(set(cells))
    walkable = game_map.walkable()
    assert all(walkable[idx] for idx in cells)
    known = {name for names in FURNISHINGS.values() for name in names} | {"Door", "Rat"}
    assert {name for _, name in build_data.spawn_list} <= known


def test_town_needs_room_for_its_walls():
    chain = BuilderChain(1, 40, 30).start_with(TownBuilder())
    with pytest.raises(GenerationFailedError):
        chain.build_map(GameRNG(1))


def test_deeper_levels_are_rolled():
    chain = level_builder(2, GameRNG(5), 80, 50)
    assert not isinstance(chain.starter, TownBuilder)
    assert chain.builders


def test_town_by_name():
    chain = named_builder("town", 1, 80, 50)
    assert isinstance(chain.starter, TownBuilder)


def test_main_builds_town_for_first_level(capsys):
    assert main(["--algorithm", "level", "--depth", "1", "--seed", "2"]) == 0
    out = capsys.readouterr().out
    assert "Door x" in out
    assert ">" in out


def test_shortest_path_walks_around_walls():
    game_map = GameMap(7, 5)
    game_map.grid[1:4, 1:6] = TILE_ID_ROAD
    game_map.grid[1:3, 3] = TILE_ID_WALL
    start, goal = game_map.xy_idx(1, 1), game_map.xy_idx(5, 1)
    path = shortest_path(game_map, start, goal)
    assert path[0] == start and path[-1] == goal
    assert len(path) == 9
    assert all(game_map.walkable()[idx] for idx in path)
    for a, b in zip(path, path[1:]):
        ax, ay = game_map.idx_xy(a)
        bx, by = game_map.idx_xy(b)
        assert abs(ax - bx) + abs(ay - by) == 1


def test_shortest_path_unreachable_is_empty():
    game_map = GameMap(5, 3)
    game_map.grid[1, 1] = TILE_ID_ROAD
    game_map.grid[1, 3] = TILE_ID_ROAD
    assert shortest_path(game_map, game_map.xy_idx(1, 1), game_map.xy_idx(3, 1)) == []
