# mapgen/spawning/random_table.py
from typing import List, NamedTuple

import structlog

from game_rng import GameRNG
from mapgen.errors import EmptyTableError

log = structlog.get_logger()


class RandomEntry(NamedTuple):
    name: str
    weight: int


class RandomTable:
    """Weighted chooser over named entries.

    Entries with a non-positive weight are never stored, so every stored entry
    can be drawn.
    """

    def __init__(self) -> None:
        self.entries: List[RandomEntry] = []
        self.total_weight: int = 0

    def add(self, name: str, weight: int) -> "RandomTable":
        weight = int(weight)
        if weight > 0:
            self.total_weight += weight
            self.entries.append(RandomEntry(name, weight))
        else:
            log.debug("Skipping table entry without weight", name=name, weight=weight)
        return self

    def __len__(self) -> int:
        return len(self.entries)

    def roll(self, rng: GameRNG) -> str:
        if self.total_weight <= 0:
            log.error("Attempted to roll an empty random table")
            raise EmptyTableError("Cannot roll a random table with zero total weight")

        roll = rng.roll_dice(1, self.total_weight) - 1
        for entry in self.entries:
            if roll < entry.weight:
                return entry.name
            roll -= entry.weight
        # Unreachable while total_weight matches the stored entries.
        raise AssertionError("random table roll exceeded total weight")
