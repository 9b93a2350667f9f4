# mapgen/builders/maze.py
"""Perfect maze carved by a recursive backtracker with an explicit stack."""
from typing import Final, List, Optional

import structlog

from game_rng import GameRNG
from mapgen.builders.chain import BuilderMap, InitialMapBuilder
from mapgen.builders.meta.cull import cull_from_start
from mapgen.errors import GenerationFailedError
from mapgen.world.game_map import TILE_ID_FLOOR, TILE_ID_WALL, GameMap
from mapgen.world.geometry import Position

log = structlog.get_logger()

TOP: Final[int] = 0
RIGHT: Final[int] = 1
BOTTOM: Final[int] = 2
LEFT: Final[int] = 3
SNAPSHOT_INTERVAL: Final[int] = 50


class Cell:
    __slots__ = ("row", "column", "walls", "visited")

    def __init__(self, row: int, column: int):
        self.row = row
        self.column = column
        self.walls = [True, True, True, True]
        self.visited = False

    def remove_walls(self, nxt: "Cell") -> None:
        x = self.column - nxt.column
        y = self.row - nxt.row
        if x == 1:
            self.walls[LEFT] = False
            nxt.walls[RIGHT] = False
        elif x == -1:
            self.walls[RIGHT] = False
            nxt.walls[LEFT] = False
        elif y == 1:
            self.walls[TOP] = False
            nxt.walls[BOTTOM] = False
        elif y == -1:
            self.walls[BOTTOM] = False
            nxt.walls[TOP] = False


class MazeGrid:
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.cells: List[Cell] = [
            Cell(row, column) for row in range(height) for column in range(width)
        ]
        self.backtrace: List[int] = []
        self.current = 0

    def _index(self, row: int, column: int) -> int:
        if row < 0 or column < 0 or column >= self.width or row >= self.height:
            return -1
        return column + row * self.width

    def _available_neighbours(self) -> List[int]:
        cell = self.cells[self.current]
        neighbours = []
        for row, column in (
            (cell.row - 1, cell.column),
            (cell.row + 1, cell.column),
            (cell.row, cell.column - 1),
            (cell.row, cell.column + 1),
        ):
            idx = self._index(row, column)
            if idx != -1 and not self.cells[idx].visited:
                neighbours.append(idx)
        return neighbours

    def _find_next_cell(self, rng: GameRNG) -> Optional[int]:
        neighbours = self._available_neighbours()
        if not neighbours:
            return None
        if len(neighbours) == 1:
            return neighbours[0]
        return neighbours[rng.roll_dice(1, len(neighbours)) - 1]

    def generate(self, rng: GameRNG, build_data: BuilderMap) -> None:
        steps = 0
        while True:
            self.cells[self.current].visited = True
            nxt = self._find_next_cell(rng)
            if nxt is not None:
                self.backtrace.append(self.current)
                self.cells[self.current].remove_walls(self.cells[nxt])
                self.current = nxt
            elif self.backtrace:
                self.current = self.backtrace.pop()
            else:
                break

            steps += 1
            if build_data.record_history and steps % SNAPSHOT_INTERVAL == 0:
                self.copy_to_map(build_data.map)
                build_data.take_snapshot()
        self.copy_to_map(build_data.map)

    def copy_to_map(self, game_map: GameMap) -> None:
        game_map.tiles[:] = TILE_ID_WALL
        for cell in self.cells:
            x = cell.column + 1
            y = cell.row + 1
            idx = game_map.xy_idx(x * 2, y * 2)
            game_map.tiles[idx] = TILE_ID_FLOOR
            if not cell.walls[TOP]:
                game_map.tiles[idx - game_map.width] = TILE_ID_FLOOR
            if not cell.walls[RIGHT]:
                game_map.tiles[idx + 1] = TILE_ID_FLOOR
            if not cell.walls[BOTTOM]:
                game_map.tiles[idx + game_map.width] = TILE_ID_FLOOR
            if not cell.walls[LEFT]:
                game_map.tiles[idx - 1] = TILE_ID_FLOOR


class MazeBuilder(InitialMapBuilder):
    def build_map(self, rng: GameRNG, build_data: BuilderMap) -> None:
        game_map = build_data.map
        cells_w = game_map.width // 2 - 2
        cells_h = game_map.height // 2 - 2
        if cells_w < 1 or cells_h < 1:
            log.error("Map too small for a maze", width=game_map.width, height=game_map.height)
            raise GenerationFailedError("Map too small for a maze")

        MazeGrid(cells_w, cells_h).generate(rng, build_data)
        build_data.take_snapshot()

        build_data.starting_position = Position(2, 2)
        cull_from_start(build_data, type(self).__name__)
        log.info("Maze carved", cells=cells_w * cells_h, exit_candidate=build_data.exit_candidate)
