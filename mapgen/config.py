# mapgen/config.py
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

log = structlog.get_logger()

MIN_MAP_SIZE = 10


def load_yaml_config(config_path: Path, config_name: str) -> Dict[str, Any]:
    """Loads a generic YAML configuration file."""
    if not config_path.is_file():
        log.error(f"{config_name} config file not found", path=str(config_path))
        raise FileNotFoundError(f"{config_name} configuration file not found: {config_path}")
    try:
        with config_path.open("r") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        log.error(f"Error parsing YAML for {config_name}", path=str(config_path), error=str(e))
        raise
    if config_data is None:
        log.warning(f"{config_name} config file is empty.", path=str(config_path))
        return {}
    if not isinstance(config_data, dict):
        log.error(f"{config_name} config is not a mapping", path=str(config_path))
        raise ValueError(f"{config_name} configuration must be a mapping: {config_path}")
    log.info(f"{config_name} config loaded", path=str(config_path))
    return config_data


@dataclass
class GenerationSettings:
    map_width: int = 80
    map_height: int = 50
    depth: int = 1
    seed: Optional[int] = None
    algorithm: str = "random"
    record_history: bool = False
    log_level: str = "INFO"
    wfc_max_retries: int = 10
    prefab_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationSettings":
        """Builds settings from a config mapping; missing keys keep defaults."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            log.warning("Ignoring unknown config keys", keys=unknown)
        settings = cls(**{k: v for k, v in data.items() if k in known})
        settings.validate()
        return settings

    def validate(self) -> None:
        for name in ("map_width", "map_height", "depth", "wfc_max_retries"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if self.map_width < MIN_MAP_SIZE or self.map_height < MIN_MAP_SIZE:
            raise ValueError(
                f"Map must be at least {MIN_MAP_SIZE}x{MIN_MAP_SIZE}, "
                f"got {self.map_width}x{self.map_height}"
            )
        if self.depth < 1:
            raise ValueError(f"depth must be at least 1, got {self.depth}")
        if self.wfc_max_retries < 1:
            raise ValueError(f"wfc_max_retries must be at least 1, got {self.wfc_max_retries}")
        if self.seed is not None and (not isinstance(self.seed, int) or isinstance(self.seed, bool)):
            raise ValueError(f"seed must be an integer or empty, got {self.seed!r}")
        if not isinstance(self.algorithm, str) or not self.algorithm:
            raise ValueError(f"algorithm must be a name, got {self.algorithm!r}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"Unknown log level {self.log_level!r}")

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(str(self.log_level).upper())
