import numpy as np
import pytest

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap
from mapgen.builders.meta.area_points import (
    AreaEndingPosition,
    AreaStartingPosition,
    XStart,
    YStart,
)
from mapgen.builders.meta.corridors import (
    BspCorridors,
    DoglegCorridors,
    NearestCorridors,
    StraightLineCorridors,
)
from mapgen.builders.meta.doors import DOOR, DoorPlacement
from mapgen.builders.meta.exits import CandidateExit, DistantExit
from mapgen.builders.meta.region_spawning import CorridorSpawner, VoronoiSpawning
from mapgen.builders.meta.rooms import (
    RoomCornerRounder,
    RoomDrawer,
    RoomExploder,
    RoomSort,
    RoomSorter,
)
from mapgen.world.game_map import TILE_ID_DOWN_STAIRS, TILE_ID_FLOOR, TILE_ID_WALL, GameMap
from mapgen.world.geometry import Position, Rect
from mapgen.world.paint import apply_horizontal_tunnel, apply_room_to_map
from mapgen.world.reachability import UNREACHABLE, distance_map


class ConstantRNG:
    def __init__(self, value):
        self.value = value

    def roll_dice(self, num_dice, sides):
        return self.value


def open_build_data(width=20, height=20, depth=1):
    game_map = GameMap(width, height, depth)
    game_map.grid[1:-1, 1:-1] = TILE_ID_FLOOR
    return BuilderMap(map=game_map)


def two_rooms_and_hall():
    """Rooms joined by a hall along y=5 from x=7 to x=12."""
    build_data = BuilderMap(map=GameMap(20, 12))
    apply_room_to_map(build_data.map, Rect(2, 2, 6, 6))
    apply_room_to_map(build_data.map, Rect(12, 2, 16, 8))
    hall = apply_horizontal_tunnel(build_data.map, 7, 12, 5)
    return build_data, hall


SCATTERED_ROOMS = [Rect(2, 2, 10, 8), Rect(30, 5, 38, 12), Rect(60, 30, 70, 40), Rect(10, 35, 20, 45)]


def test_room_sorter_is_stable():
    rooms = [Rect(30, 5, 40, 10), Rect(5, 20, 12, 25), Rect(15, 1, 20, 6), Rect(5, 5, 10, 10)]
    build_data = BuilderMap(map=GameMap(50, 40), rooms=list(rooms))
    RoomSorter(RoomSort.LEFTMOST).build_map(GameRNG(1), build_data)
    assert build_data.rooms == [rooms[1], rooms[3], rooms[2], rooms[0]]


@pytest.mark.parametrize(
    "sort_by, expected",
    [
        (RoomSort.RIGHTMOST, [0, 2, 1]),
        (RoomSort.TOPMOST, [2, 0, 1]),
        (RoomSort.BOTTOMMOST, [1, 0, 2]),
        (RoomSort.CENTRAL, [0, 2, 1]),
    ],
)
def test_room_sorter_orders(sort_by, expected):
    rooms = [Rect(20, 15, 30, 25), Rect(2, 20, 10, 30), Rect(15, 1, 22, 6)]
    build_data = BuilderMap(map=GameMap(50, 40), rooms=list(rooms))
    RoomSorter(sort_by).build_map(GameRNG(1), build_data)
    assert build_data.rooms == [rooms[i] for i in expected]


def test_room_drawer_rectangles():
    room = Rect(2, 2, 8, 8)
    build_data = BuilderMap(map=GameMap(20, 20), rooms=[room])
    RoomDrawer().build_map(ConstantRNG(2), build_data)
    grid = build_data.map.grid
    assert np.all(grid[3:9, 3:9] == TILE_ID_FLOOR)
    assert build_data.map.floor_count() == 36
    assert build_data.map.rooms == [room]


def test_room_drawer_circles():
    build_data = BuilderMap(map=GameMap(30, 30), rooms=[Rect(10, 10, 20, 20)])
    RoomDrawer().build_map(ConstantRNG(1), build_data)
    grid = build_data.map.grid
    assert grid[15, 15] == TILE_ID_FLOOR
    assert grid[15, 10] == TILE_ID_FLOOR
    assert grid[11, 11] == TILE_ID_WALL


@pytest.mark.parametrize(
    "corridor_builder", [DoglegCorridors, BspCorridors, NearestCorridors, StraightLineCorridors]
)
def test_corridors_join_every_room(corridor_builder):
    game_map = GameMap(80, 50)
    for room in SCATTERED_ROOMS:
        apply_room_to_map(game_map, room)
    build_data = BuilderMap(map=game_map, rooms=list(SCATTERED_ROOMS))
    corridor_builder().build_map(GameRNG(3), build_data)
    assert len(build_data.corridors) == len(SCATTERED_ROOMS) - 1
    distances = distance_map(game_map, [game_map.xy_idx(*SCATTERED_ROOMS[0].center)])
    for room in SCATTERED_ROOMS:
        assert distances[game_map.xy_idx(*room.center)] != UNREACHABLE
    for corridor in build_data.corridors:
        assert all(game_map.tiles[idx] == TILE_ID_FLOOR for idx in corridor)


def test_doors_at_corridor_mouths():
    build_data, hall = two_rooms_and_hall()
    game_map = build_data.map
    build_data.corridors = [hall, hall[:2]]
    DoorPlacement().build_map(GameRNG(1), build_data)
    assert build_data.spawn_list == [(game_map.xy_idx(7, 5), DOOR)]


def test_door_skips_occupied_cell():
    build_data, hall = two_rooms_and_hall()
    build_data.corridors = [hall]
    build_data.spawn_list.append((hall[0], "Goblin"))
    DoorPlacement().build_map(GameRNG(1), build_data)
    assert build_data.spawn_list == [(hall[0], "Goblin")]


def test_doors_without_corridors_use_chokepoints():
    build_data, _ = two_rooms_and_hall()
    game_map = build_data.map
    DoorPlacement().build_map(ConstantRNG(1), build_data)
    doors = {idx for idx, name in build_data.spawn_list if name == DOOR}
    assert doors == {game_map.xy_idx(x, 5) for x in range(7, 13)}

    build_data, _ = two_rooms_and_hall()
    DoorPlacement().build_map(ConstantRNG(2), build_data)
    assert build_data.spawn_list == []


@pytest.mark.parametrize(
    "x_start, y_start, expected",
    [
        (XStart.LEFT, YStart.TOP, (1, 1)),
        (XStart.CENTER, YStart.CENTER, (10, 10)),
        (XStart.RIGHT, YStart.BOTTOM, (18, 18)),
    ],
)
def test_area_starting_position(x_start, y_start, expected):
    build_data = open_build_data()
    AreaStartingPosition(x_start, y_start).build_map(GameRNG(1), build_data)
    assert build_data.starting_position == Position(*expected)


def test_area_start_snaps_to_nearest_floor():
    build_data = BuilderMap(map=GameMap(20, 20))
    build_data.map.grid[10, 5] = TILE_ID_FLOOR
    AreaStartingPosition(XStart.LEFT, YStart.CENTER).build_map(GameRNG(1), build_data)
    assert build_data.starting_position == Position(5, 10)


def test_area_ending_position():
    build_data = open_build_data()
    AreaEndingPosition(XStart.RIGHT, YStart.BOTTOM).build_map(GameRNG(1), build_data)
    assert build_data.map.grid[18, 18] == TILE_ID_DOWN_STAIRS
    assert np.count_nonzero(build_data.map.tiles == TILE_ID_DOWN_STAIRS) == 1


def test_distant_exit_is_furthest_cell():
    build_data = BuilderMap(map=GameMap(20, 10), starting_position=Position(1, 5))
    apply_horizontal_tunnel(build_data.map, 1, 18, 5)
    DistantExit().build_map(GameRNG(1), build_data)
    assert build_data.map.grid[5, 18] == TILE_ID_DOWN_STAIRS


def test_candidate_exit_uses_recorded_cell():
    build_data = open_build_data()
    build_data.exit_candidate = build_data.map.xy_idx(4, 7)
    CandidateExit().build_map(GameRNG(1), build_data)
    assert build_data.map.grid[7, 4] == TILE_ID_DOWN_STAIRS


def test_voronoi_spawning_uses_existing_regions():
    build_data = open_build_data(depth=10)
    wall_idx = build_data.map.xy_idx(0, 0)
    region = [build_data.map.xy_idx(x, 3) for x in range(1, 6)]
    build_data.noise_areas = {0: region + [wall_idx]}
    VoronoiSpawning().build_map(GameRNG(4), build_data)
    assert build_data.spawn_list
    assert all(idx in region for idx, _ in build_data.spawn_list)


def test_voronoi_spawning_partitions_walkable_cells():
    build_data = open_build_data(40, 30)
    VoronoiSpawning().build_map(GameRNG(4), build_data)
    regions = build_data.noise_areas
    assert len(regions) > 1
    covered = sorted(idx for cells in regions.values() for idx in cells)
    assert covered == np.flatnonzero(build_data.map.walkable()).tolist()
    walkable = build_data.map.walkable()
    assert all(walkable[idx] for idx, _ in build_data.spawn_list)


def test_corridor_spawner_stays_in_corridors():
    build_data, hall = two_rooms_and_hall()
    build_data.map.depth = 10
    build_data.corridors = [hall]
    CorridorSpawner().build_map(GameRNG(2), build_data)
    assert build_data.spawn_list
    assert all(idx in hall for idx, _ in build_data.spawn_list)


def test_corner_rounder_fills_room_corners():
    room = Rect(2, 2, 8, 8)
    game_map = GameMap(12, 12)
    apply_room_to_map(game_map, room)
    build_data = BuilderMap(map=game_map, rooms=[room])
    RoomCornerRounder().build_map(GameRNG(1), build_data)
    grid = game_map.grid
    for x, y in ((3, 3), (8, 3), (3, 8), (8, 8)):
        assert grid[y, x] == TILE_ID_WALL
    assert grid[4, 4] == TILE_ID_FLOOR
    assert game_map.floor_count() == 32


def test_room_exploder_digs_from_centres():
    room = Rect(20, 10, 26, 16)
    game_map = GameMap(40, 30)
    apply_room_to_map(game_map, room)
    build_data = BuilderMap(map=game_map, rooms=[room])
    before = game_map.floor_count()
    RoomExploder().build_map(ConstantRNG(10), build_data)
    assert game_map.floor_count() >= before
    grid = game_map.grid
    for edge in (grid[0, :], grid[-1, :], grid[:, 0], grid[:, -1]):
        assert np.all(edge == TILE_ID_WALL)
    distances = distance_map(game_map, [game_map.xy_idx(*room.center)])
    assert not (game_map.walkable() & (distances == UNREACHABLE)).any()
