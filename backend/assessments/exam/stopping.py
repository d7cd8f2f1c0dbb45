"""
Stopping-Condition Evaluator

Decides whether a rule-based session ends after its latest answer. Any of
the following stops the exam, a later criterion taking over the reason of
an earlier one:

- stability: the last ``win_es`` ES snapshots spread by at most ``delta_thr``
- mastery: every target cognitive level has at least one correct answer
- item cap: the answered count reached the room's question count

A minimum-exposure floor of ``max(floor(max_items * min_ratio), 1)`` answers
is checked last and overrides every stop signal.
"""

import math
from typing import Sequence

from backend.common.config import EngineConfig
from .models import Answer, CompletionReason, StopDecision


class StoppingEvaluator:
    """Multi-criteria stopping rule for rule-based sessions."""

    def __init__(self, config: EngineConfig):
        self.win_es = config.win_es
        self.delta_thr = config.delta_thr
        self.min_ratio = config.min_ratio
        self.target_mastery = frozenset(config.target_mastery)

    def minimum_items(self, max_items: int) -> int:
        return max(math.floor(max_items * self.min_ratio), 1)

    def is_stable(self, history: Sequence[Answer]) -> bool:
        if len(history) < self.win_es:
            return False
        window = [answer.es_value for answer in history[-self.win_es:]]
        if any(value is None for value in window):
            return False
        return max(window) - min(window) <= self.delta_thr

    def mastered_levels(self, history: Sequence[Answer]) -> frozenset:
        return frozenset(
            str(answer.cognitive_level).upper()
            for answer in history
            if answer.is_correct and answer.cognitive_level
        )

    def evaluate(self, history: Sequence[Answer], max_items: int) -> StopDecision:
        """
        Evaluate the stopping rule over a deduplicated, time-ordered history.

        Args:
            history: Ledger answers ordered by time
            max_items: The room's target question count
        """
        answered = len(history)
        reason = None

        if self.is_stable(history):
            reason = CompletionReason.SCORE_STABLE

        if self.target_mastery <= self.mastered_levels(history):
            reason = CompletionReason.ALL_LEVELS_MASTERED

        if answered >= max_items:
            reason = CompletionReason.MAX_ITEMS_REACHED

        if answered < self.minimum_items(max_items):
            return StopDecision(stop=False)

        return StopDecision(stop=reason is not None, reason=reason)
