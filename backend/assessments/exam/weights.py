"""
Weight Table

Maps a (cognitive level, difficulty) pair to the weight used by the smoothed
score and the final rule-based score.
"""

from typing import Any, Mapping, Optional

from backend.common.config import EngineConfig, DEFAULT_WEIGHTS_COG, DEFAULT_WEIGHTS_DIFF

DEFAULT_WEIGHT = 1.0


class WeightTable:
    """
    Product of a cognitive-level weight and a difficulty weight.

    Unknown levels or difficulties contribute a factor of 1.0, so lookups
    never fail.
    """

    def __init__(
        self,
        weights_cog: Optional[Mapping[str, float]] = None,
        weights_diff: Optional[Mapping[int, float]] = None
    ):
        self._weights_cog = {
            str(level).upper(): float(weight)
            for level, weight in (weights_cog or DEFAULT_WEIGHTS_COG).items()
        }
        self._weights_diff = {
            int(difficulty): float(weight)
            for difficulty, weight in (weights_diff or DEFAULT_WEIGHTS_DIFF).items()
        }

    @classmethod
    def from_config(cls, config: EngineConfig) -> 'WeightTable':
        return cls(config.weights_cog, config.weights_diff)

    def cognitive_weight(self, cognitive_level: Any) -> float:
        if cognitive_level is None:
            return DEFAULT_WEIGHT
        return self._weights_cog.get(str(cognitive_level).strip().upper(), DEFAULT_WEIGHT)

    def difficulty_weight(self, difficulty: Any) -> float:
        try:
            return self._weights_diff.get(int(difficulty), DEFAULT_WEIGHT)
        except (TypeError, ValueError):
            return DEFAULT_WEIGHT

    def weight(self, cognitive_level: Any, difficulty: Any) -> float:
        """Weight of one attempt at ``cognitive_level`` / ``difficulty``."""
        return self.cognitive_weight(cognitive_level) * self.difficulty_weight(difficulty)
