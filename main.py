# main.py
import argparse
import sys
import time
from collections import Counter
from pathlib import Path
from typing import List, Optional

import structlog

from game_rng import GameRNG
from mapgen.builders.factory import level_builder, named_builder, random_builder
from mapgen.config import GenerationSettings, load_yaml_config
from mapgen.errors import MapGenError
from mapgen.world.game_map import TILE_ID_DOWN_STAIRS
from utils.logging_utils import setup_logging

# --- Paths relative to this script's location ---
SCRIPT_DIR = Path(__file__).parent.resolve()
CONFIG_DIR = SCRIPT_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

log = structlog.get_logger()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate one dungeon level and print it.")
    parser.add_argument("--config", type=Path, default=CONFIG_FILE, help="YAML settings file")
    parser.add_argument("--algorithm", help="override the configured algorithm")
    parser.add_argument("--seed", type=int, help="override the configured seed")
    parser.add_argument("--depth", type=int, help="override the configured depth")
    parser.add_argument(
        "--history", action="store_true", help="record snapshots and print every one"
    )
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> GenerationSettings:
    data = load_yaml_config(args.config, "Main")
    if args.algorithm is not None:
        data["algorithm"] = args.algorithm
    if args.seed is not None:
        data["seed"] = args.seed
    if args.depth is not None:
        data["depth"] = args.depth
    if args.history:
        data["record_history"] = True
    return GenerationSettings.from_dict(data)


def render_summary(build_data) -> str:
    game_map = build_data.map
    spawns = Counter(name for _, name in build_data.spawn_list)
    stairs = [game_map.idx_xy(int(i)) for i in (game_map.tiles == TILE_ID_DOWN_STAIRS).nonzero()[0]]
    lines = [
        f"Map {game_map.width}x{game_map.height}, depth {game_map.depth}",
        f"Start: {build_data.starting_position}",
        f"Stairs: {stairs}",
        f"Floor cells: {game_map.floor_count()}",
        f"Spawns ({len(build_data.spawn_list)}): "
        + ", ".join(f"{name} x{count}" for name, count in sorted(spawns.items())),
    ]
    if build_data.record_history:
        lines.append(f"Snapshots: {len(build_data.history)}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging()
    try:
        settings = load_settings(args)
    except (FileNotFoundError, ValueError) as e:
        log.critical("Configuration failed", error=str(e))
        return 2
    setup_logging(settings.log_level)

    seed = int(time.time() * 1000) if settings.seed is None else settings.seed
    log.info("Using dungeon seed", seed=seed, algorithm=settings.algorithm)
    rng = GameRNG(seed)

    try:
        if settings.algorithm == "level":
            chain = level_builder(
                settings.depth,
                rng,
                settings.map_width,
                settings.map_height,
                settings.record_history,
                settings.wfc_max_retries,
            )
        elif settings.algorithm == "random":
            chain = random_builder(
                settings.depth,
                rng,
                settings.map_width,
                settings.map_height,
                settings.record_history,
                settings.wfc_max_retries,
            )
        else:
            chain = named_builder(
                settings.algorithm,
                settings.depth,
                settings.map_width,
                settings.map_height,
                settings.record_history,
                settings.wfc_max_retries,
                settings.prefab_path,
            )
        build_data = chain.build_map(rng)
    except (MapGenError, FileNotFoundError) as e:
        log.critical("Map generation failed", error=str(e), error_type=type(e).__name__)
        return 1

    if settings.record_history:
        for step, snapshot in enumerate(build_data.history):
            print(f"--- step {step} ---")
            print(snapshot.to_ascii())
    print(chain.map.to_ascii())
    print(render_summary(build_data))
    return 0


if __name__ == "__main__":
    sys.exit(main())
