"""
Tests for the engine configuration struct and its file loader.
"""

import json

import pytest
import yaml

from backend.common.config import (
    ConfigLoader,
    EngineConfig,
    DEFAULT_WEIGHTS_COG,
    DEFAULT_WEIGHTS_DIFF,
    reload_engine_config,
)
from backend.common.exceptions import ConfigurationError


def test_defaults():
    config = EngineConfig()
    assert config.lambda_val == 5
    assert config.prior == 50
    assert config.win_es == 5
    assert config.delta_thr == 2.0
    assert config.min_ratio == 0.5
    assert config.weights_cog == DEFAULT_WEIGHTS_COG
    assert config.weights_diff == DEFAULT_WEIGHTS_DIFF
    assert config.target_mastery == ["C1", "C2", "C3", "C4", "C5", "C6"]
    assert config.pool_limit == 300
    assert config.random_seed is None


def test_default_tables_are_not_shared():
    first = EngineConfig()
    first.weights_cog["C1"] = 9.0
    assert EngineConfig().weights_cog["C1"] == 1.0


def test_target_mastery_is_uppercased():
    assert EngineConfig(target_mastery=["c1", "c2"]).target_mastery == ["C1", "C2"]


@pytest.mark.parametrize("data,key", [
    ({"lambda_val": 0}, "lambda_val"),
    ({"prior": 120}, "prior"),
    ({"win_es": 0}, "win_es"),
    ({"delta_thr": -1}, "delta_thr"),
    ({"min_ratio": 0}, "min_ratio"),
    ({"min_ratio": 1.5}, "min_ratio"),
    ({"weights_cog": {"C1": -1.0}}, "weights_cog"),
    ({"weights_diff": {1: 0}}, "weights_diff"),
    ({"target_mastery": []}, "target_mastery"),
])
def test_invalid_values(data, key):
    with pytest.raises(ConfigurationError) as exc_info:
        EngineConfig.from_mapping(data)
    assert exc_info.value.config_key.startswith(key)


def test_from_mapping_accepts_none():
    assert EngineConfig.from_mapping(None) == EngineConfig()


def test_load_yaml(tmp_path):
    path = tmp_path / "exam.yaml"
    path.write_text(yaml.safe_dump({
        "lambda_val": 8,
        "win_es": 4,
        "weights_diff": {1: 1.0, 2: 1.5, 3: 2.0},
        "random_seed": 5,
    }))

    config = ConfigLoader(str(path)).load()

    assert config.lambda_val == 8
    assert config.win_es == 4
    assert config.weights_diff[2] == 1.5
    assert config.random_seed == 5
    assert config.prior == 50


def test_load_json(tmp_path):
    path = tmp_path / "exam.json"
    path.write_text(json.dumps({"prior": 40, "weights_diff": {"1": 1.0, "2": 2.0}}))

    config = ConfigLoader(str(path)).load()

    assert config.prior == 40
    assert config.weights_diff == {1: 1.0, 2: 2.0}


def test_nested_exam_section(tmp_path):
    path = tmp_path / "settings.yml"
    path.write_text(yaml.safe_dump({"exam": {"min_ratio": 0.3}, "other": {"x": 1}}))

    assert ConfigLoader(str(path)).load().min_ratio == 0.3


def test_missing_file_uses_defaults(tmp_path):
    config = ConfigLoader(str(tmp_path / "missing.yaml")).load()
    assert config == EngineConfig()


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert ConfigLoader(str(path)).load() == EngineConfig()


def test_malformed_file(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("lambda_val: [1, 2\n")
    with pytest.raises(ConfigurationError):
        ConfigLoader(str(path)).load()


def test_non_mapping_file(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text(yaml.safe_dump([1, 2, 3]))
    with pytest.raises(ConfigurationError):
        ConfigLoader(str(path)).load()


def test_invalid_file_values(tmp_path):
    path = tmp_path / "invalid.yaml"
    path.write_text(yaml.safe_dump({"delta_thr": -5}))
    with pytest.raises(ConfigurationError):
        ConfigLoader(str(path)).load()


def test_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text(yaml.safe_dump({"pool_limit": 50}))
    monkeypatch.setenv("EXAM_CONFIG_PATH", str(path))

    assert ConfigLoader().load().pool_limit == 50


def test_reload_engine_config(tmp_path, monkeypatch):
    monkeypatch.delenv("EXAM_CONFIG_PATH", raising=False)
    path = tmp_path / "reload.yaml"
    path.write_text(yaml.safe_dump({"win_es": 7}))

    try:
        assert reload_engine_config(str(path)).win_es == 7
    finally:
        reload_engine_config()
