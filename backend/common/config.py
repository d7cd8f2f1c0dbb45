"""
Exam Engine Configuration

This module defines the configuration struct injected into the exam engine
(smoothing constants, stopping thresholds, weight tables) together with a
loader that reads it from a YAML or JSON file.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from backend.common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

COGNITIVE_LEVELS = ("C1", "C2", "C3", "C4", "C5", "C6")

DEFAULT_WEIGHTS_COG = {"C1": 1.0, "C2": 1.1, "C3": 1.2, "C4": 1.3, "C5": 1.4, "C6": 1.5}
DEFAULT_WEIGHTS_DIFF = {1: 1.0, 2: 1.2, 3: 1.4}


class EngineConfig(BaseModel):
    """
    Constants driving the rule-based engine.

    Attributes:
        lambda_val: Shrinkage strength of the smoothed score towards the prior
        prior: Prior score (0-100) used when little evidence exists
        win_es: Number of trailing smoothed-score snapshots compared for stability
        delta_thr: Maximum spread inside the window that counts as stable
        min_ratio: Fraction of the room's question count that must be answered
            before any stop criterion may end the exam
        weights_cog: Weight per cognitive level
        weights_diff: Weight per difficulty
        target_mastery: Cognitive levels that must each have a correct answer
            for the mastery criterion
        pool_limit: Maximum candidates fetched per rule-based selection
        random_seed: Fixes the random source when set
    """

    lambda_val: float = Field(default=5.0, gt=0)
    prior: float = Field(default=50.0, ge=0, le=100)
    win_es: int = Field(default=5, ge=1)
    delta_thr: float = Field(default=2.0, ge=0)
    min_ratio: float = Field(default=0.5, gt=0, le=1)
    weights_cog: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS_COG))
    weights_diff: Dict[int, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS_DIFF))
    target_mastery: List[str] = Field(default_factory=lambda: list(COGNITIVE_LEVELS))
    pool_limit: int = Field(default=300, ge=1)
    random_seed: Optional[int] = None

    @field_validator('weights_cog', 'weights_diff')
    @classmethod
    def validate_weights(cls, v):
        """Weights must be strictly positive."""
        for key, weight in v.items():
            if weight <= 0:
                raise ValueError(f"Weight for {key} must be positive, got {weight}")
        return v

    @field_validator('target_mastery')
    @classmethod
    def validate_target_mastery(cls, v):
        if not v:
            raise ValueError("target_mastery must name at least one cognitive level")
        return [level.upper() for level in v]

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> 'EngineConfig':
        """
        Build a config from a plain mapping.

        Raises:
            ConfigurationError: If any value fails validation
        """
        try:
            return cls(**(data or {}))
        except PydanticValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigurationError(f"{key}: {first.get('msg')}", config_key=key) from e


class ConfigLoader:
    """
    Configuration loader for the exam engine.

    Loads configuration from:
    1. Default values
    2. Config file (YAML or JSON), path given explicitly or by EXAM_CONFIG_PATH
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get("EXAM_CONFIG_PATH")
        self._config: Optional[EngineConfig] = None

    def load(self) -> EngineConfig:
        """
        Load configuration from all sources.

        Returns:
            Loaded configuration
        """
        if self._config is not None:
            return self._config

        file_config: Dict[str, Any] = {}
        if self.config_path:
            file_config = self._load_from_file(self.config_path)

        # Some deployments nest the engine block under an "exam" key
        if isinstance(file_config.get("exam"), dict):
            file_config = file_config["exam"]

        self._config = EngineConfig.from_mapping(file_config)
        return self._config

    def _load_from_file(self, path: str) -> Dict[str, Any]:
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return {}

        suffix = path.suffix.lower()
        try:
            with open(path, 'r') as f:
                if suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                elif suffix == '.json':
                    data = json.load(f)
                else:
                    logger.warning(f"Unsupported config file format: {path.suffix}")
                    return {}
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not parse {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Top level of {path} must be a mapping")
        return data


_config_loader: Optional[ConfigLoader] = None


def get_engine_config() -> EngineConfig:
    """Get the process-wide engine configuration, loading it on first use."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader.load()


def reload_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Reload the engine configuration.

    Args:
        config_path: Path to config file

    Returns:
        Reloaded configuration
    """
    global _config_loader
    _config_loader = ConfigLoader(config_path)
    return _config_loader.load()
