from __future__ import annotations

"""Deterministic random number generator shared by every map builder.

A single ``GameRNG`` is created per generation run and handed by reference
to each builder in the chain.  Builders must never construct their own
generator: a given seed only reproduces a level if every draw comes from the
same stream in the same order.
"""

import random
from typing import Any, Dict, Optional

import numpy as np


class GameRNG:
    def __init__(self, seed: Optional[int] = None) -> None:
        self.initial_seed = seed if seed is not None else random.randint(0, 2**32 - 1)
        self.rng = np.random.default_rng(self.initial_seed)

    # ------------------------------------------------------------------
    # basic random helpers
    # ------------------------------------------------------------------
    def get_int(self, a: int, b: int) -> int:
        """Integer in the inclusive range ``[a, b]``."""
        if a > b:
            raise ValueError("a <= b")
        return int(self.rng.integers(a, b + 1))

    def range(self, minimum: int, maximum: int) -> int:
        """Integer in the half-open range ``[minimum, maximum)``."""
        if minimum >= maximum:
            raise ValueError(f"empty range [{minimum}, {maximum})")
        return int(self.rng.integers(minimum, maximum))

    def get_float(self, a: float = 0.0, b: float = 1.0) -> float:
        if a > b:
            raise ValueError("a <= b")
        return a + (b - a) * float(self.rng.random())

    def roll_dice(self, num_dice: int = 1, sides: int = 6) -> int:
        """Sum of ``num_dice`` rolls of a ``sides``-sided die (1..sides each)."""
        if sides < 1 or num_dice < 0:
            raise ValueError(f"invalid dice {num_dice}d{sides}")
        total = 0
        for _ in range(num_dice):
            total += self.get_int(1, sides)
        return total

    def coin_flip(self, heads_probability: float = 0.5) -> bool:
        if not 0.0 <= heads_probability <= 1.0:
            raise ValueError("probability out of range")
        return self.get_float() < heads_probability

    # ------------------------------------------------------------------
    # state management
    # ------------------------------------------------------------------
    def get_state(self) -> Dict[str, Any]:
        return {
            "initial_seed": self.initial_seed,
            "bit_generator": self.rng.bit_generator.state,
        }

    def set_state(self, state: Dict[str, Any]) -> None:
        self.initial_seed = state["initial_seed"]
        self.rng.bit_generator.state = state["bit_generator"]
