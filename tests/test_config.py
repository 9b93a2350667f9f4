import logging
from pathlib import Path

import pytest
import yaml

from mapgen.config import GenerationSettings, load_yaml_config

SHIPPED_CONFIG = Path(__file__).resolve().parent.parent / "config" / "config.yaml"


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_yaml_config(tmp_path / "nope.yaml", "Main")


def test_empty_config_file_is_empty_mapping(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_yaml_config(path, "Main") == {}


def test_bad_yaml_propagates(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("map_width: [80\n")
    with pytest.raises(yaml.YAMLError):
        load_yaml_config(path, "Main")


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_yaml_config(path, "Main")


def test_shipped_config_loads():
    settings = GenerationSettings.from_dict(load_yaml_config(SHIPPED_CONFIG, "Main"))
    assert settings == GenerationSettings()
    assert settings.numeric_log_level == logging.INFO


def test_missing_keys_keep_defaults():
    settings = GenerationSettings.from_dict({"map_width": 60, "seed": 3, "extra": True})
    assert settings.map_width == 60
    assert settings.map_height == 50
    assert settings.seed == 3


@pytest.mark.parametrize(
    "overrides",
    [
        {"map_width": 5},
        {"map_height": "fifty"},
        {"depth": 0},
        {"wfc_max_retries": 0},
        {"seed": "abc"},
        {"seed": True},
        {"algorithm": ""},
        {"log_level": "CHATTY"},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValueError):
        GenerationSettings.from_dict(overrides)
