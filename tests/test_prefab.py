import gzip

import numpy as np
import pytest

from game_rng import GameRNG
from mapgen.builders.chain import BuilderChain, BuilderMap
from mapgen.builders.prefab.builder import PrefabBuilder
from mapgen.builders.prefab.levels import (
    GUARD_BARRACKS,
    GUARD_POST,
    MASTER_VAULT_LIST,
    PrefabLevel,
    read_ascii,
)
from mapgen.builders.prefab.rex import XP_CELL_DTYPE, XpFile, XpLayer
from mapgen.errors import GenerationFailedError, RexFormatError
from mapgen.world.game_map import (
    TILE_ID_BRIDGE,
    TILE_ID_DOWN_STAIRS,
    TILE_ID_FLOOR,
    TILE_ID_WALL,
    GameMap,
)
from mapgen.world.geometry import Position
from mapgen.world.reachability import UNREACHABLE, distance_map

REX_ROWS = [
    "####################",
    "#                  #",
    "#  @               #",
    "#                  #",
    "#    g    Z        #",
    "#                  #",
    "#      ~~~         #",
    "#              >   #",
    "#                  #",
    "####################",
]


class LowRollRNG:
    def roll_dice(self, num_dice, sides):
        return 1


def open_level(width, height, start=None):
    rows = ["#" * width] + ["#" + " " * (width - 2) + "#" for _ in range(height - 2)] + ["#" * width]
    if start is not None:
        x, y = start
        rows[y] = rows[y][:x] + "@" + rows[y][x + 1:]
    return PrefabLevel("\n".join(rows), width, height)


def assert_connected(build_data):
    game_map = build_data.map
    distances = distance_map(game_map, [game_map.xy_idx(*build_data.starting_position)])
    assert not (game_map.walkable() & (distances == UNREACHABLE)).any()


def test_xp_round_trip():
    image = XpFile.from_rows(REX_ROWS)
    decoded = XpFile.from_bytes(image.to_bytes())
    assert decoded.version == -1
    assert len(decoded.layers) == 1
    layer = decoded.layers[0]
    assert (layer.width, layer.height) == (20, 10)
    assert layer.get_glyph(3, 2) == ord("@")
    assert np.array_equal(layer.glyphs(), image.layers[0].glyphs())


def test_xp_layer_is_column_major():
    layer = XpLayer.blank(3, 2)
    layer.set_glyph(1, 0, "x")
    assert layer.cells["glyph"][2] == ord("x")
    assert layer.glyphs()[0, 1] == ord("x")
    assert XP_CELL_DTYPE.itemsize == 10


def test_xp_rejects_garbage():
    with pytest.raises(RexFormatError):
        XpFile.from_bytes(b"not gzip at all")


def test_xp_rejects_truncated_layer():
    data = np.array([-1, 1, 5, 5], dtype="<i4").tobytes() + b"\x00" * 20
    with pytest.raises(RexFormatError):
        XpFile.from_bytes(gzip.compress(data))


def test_xp_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        XpFile.from_path(tmp_path / "missing.xp")


def test_rex_level_loads_tiles_start_and_spawns(tmp_path):
    path = tmp_path / "level.xp"
    path.write_bytes(XpFile.from_rows(REX_ROWS).to_bytes())
    chain = BuilderChain(1, 20, 10).start_with(PrefabBuilder.rex_level(path))
    build_data = chain.build_map(GameRNG(1))
    game_map = build_data.map
    assert build_data.starting_position == Position(3, 2)
    assert game_map.grid[7, 15] == TILE_ID_DOWN_STAIRS
    assert game_map.grid[6, 7] == TILE_ID_BRIDGE
    assert (game_map.xy_idx(5, 4), "Goblin") in build_data.spawn_list
    # Unknown glyphs leave the previous tile alone.
    assert game_map.grid[4, 10] == TILE_ID_WALL


@pytest.mark.parametrize("code", [-5, 0x7FFFFFFF])
def test_rex_level_ignores_out_of_range_glyph_codes(code):
    image = XpFile.from_rows(REX_ROWS)
    image.layers[0].set_glyph(4, 3, code)
    build_data = BuilderChain(1, 20, 10).start_with(PrefabBuilder.rex_level(image)).build_map(GameRNG(1))
    game_map = build_data.map
    assert game_map.grid[3, 4] == TILE_ID_WALL
    assert game_map.grid[3, 5] == TILE_ID_FLOOR
    assert build_data.starting_position == Position(3, 2)


def test_rex_upper_layers_skip_transparent_cells():
    base = XpFile.from_rows(REX_ROWS)
    overlay = XpLayer.blank(20, 10)
    overlay.set_glyph(8, 8, "#")
    overlay.cells["bg"][overlay._offset(8, 8)] = (0, 0, 0)
    image = XpFile(base.layers + [overlay])
    build_data = BuilderChain(1, 20, 10).start_with(PrefabBuilder.rex_level(image)).build_map(GameRNG(1))
    assert build_data.map.grid[8, 8] == TILE_ID_WALL
    assert build_data.map.grid[8, 9] == TILE_ID_FLOOR


def test_constant_level_without_start_scans_left():
    rows = ["##########", "##########", "#  #######", "##########", "##########"]
    level = PrefabLevel("\n".join(rows), 10, 5)
    build_data = BuilderChain(1, 10, 5).start_with(PrefabBuilder.constant(level)).build_map(GameRNG(1))
    assert build_data.starting_position == Position(2, 2)


def test_start_scan_off_the_edge_fails():
    rows = ["##########", "##########", "######   #", "##########", "##########"]
    level = PrefabLevel("\n".join(rows), 10, 5)
    chain = BuilderChain(1, 10, 5).start_with(PrefabBuilder.constant(level))
    with pytest.raises(GenerationFailedError):
        chain.build_map(GameRNG(1))


def test_guard_barracks_level():
    build_data = BuilderChain(1, 80, 50).start_with(PrefabBuilder.constant(GUARD_BARRACKS)).build_map(GameRNG(2))
    game_map = build_data.map
    assert build_data.starting_position == Position(4, 6)
    assert np.count_nonzero(game_map.tiles == TILE_ID_DOWN_STAIRS) == 1
    assert {name for _, name in build_data.spawn_list} >= {"Goblin", "Orc", "Rations"}
    assert_connected(build_data)


def test_read_ascii_pads_and_rejects_wide_rows():
    assert read_ascii("\n#\n##", 3, 3) == ["#  ", "## ", "   "]
    with pytest.raises(ValueError):
        read_ascii("####", 3, 1)


def test_sectional_stamps_into_corner():
    chain = (
        BuilderChain(1, 30, 20)
        .start_with(PrefabBuilder.constant(open_level(30, 20, start=(2, 10))))
        .with_meta(PrefabBuilder.sectional(GUARD_POST))
    )
    build_data = chain.build_map(GameRNG(3))
    game_map = build_data.map
    # Right edge placement: x offset is (30 - 1) - 12 = 17.
    assert game_map.grid[1, 20] == TILE_ID_WALL
    assert (game_map.xy_idx(23, 3), "Goblin") in build_data.spawn_list
    assert np.all(game_map.grid[0, :] == TILE_ID_WALL)
    assert_connected(build_data)


def test_vaults_stamped_on_open_floor():
    chain = (
        BuilderChain(5, 40, 30)
        .start_with(PrefabBuilder.constant(open_level(40, 30, start=(20, 15))))
        .with_meta(PrefabBuilder.vaults())
    )
    build_data = chain.build_map(GameRNG(4))
    vault_spawns = {"Bear Trap", "Health Potion", "Goblin", "Rations"}
    assert build_data.spawn_list
    assert all(name in vault_spawns for _, name in build_data.spawn_list)
    assert build_data.map.grid[15, 20] == TILE_ID_FLOOR
    for idx, _ in build_data.spawn_list:
        assert build_data.map.walkable()[idx]
    assert_connected(build_data)


def test_low_vault_roll_places_nothing():
    game_map = GameMap(40, 30, depth=1)
    game_map.grid[1:-1, 1:-1] = TILE_ID_FLOOR
    build_data = BuilderMap(map=game_map)
    before = game_map.tiles.copy()
    PrefabBuilder.vaults(MASTER_VAULT_LIST).build_map(LowRollRNG(), build_data)
    assert np.array_equal(game_map.tiles, before)
    assert build_data.spawn_list == []
