"""
Score Estimator

Two independent computations over an answer history:

1. The smoothed ability estimate (ES), a shrinkage of the weighted
   correctness towards a prior, recomputed after every rule-based answer::

       ES = (lambda * prior + 100 * sum(correct weights)) / (lambda + sum(weights))

2. The final true-score written when a session finishes. Rule-based rooms
   score the weighted share of correct attempts; static and random rooms
   score correct answers against the room's target count.

Weights always come from the level/difficulty snapshot stored on each
answer. A missing difficulty snapshot counts as difficulty 1.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

from backend.common.config import EngineConfig
from .models import Answer, DeliveryMechanism
from .weights import WeightTable


def _round_score(value: float) -> float:
    # Half-up on the exact binary value: 15.625 -> 15.63
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class ScoreEstimator:
    """Smoothed and final scoring over deduplicated answer histories."""

    def __init__(self, config: EngineConfig, weights: WeightTable = None):
        self.lambda_val = config.lambda_val
        self.prior = config.prior
        self.weights = weights or WeightTable.from_config(config)

    def _answer_weight(self, answer: Answer) -> float:
        return self.weights.weight(answer.cognitive_level, answer.difficulty or 1)

    def weighted_totals(self, history: Iterable[Answer]) -> Tuple[float, float]:
        """Return (sum of correct weights, sum of all weights)."""
        correct_weight = 0.0
        total_weight = 0.0
        for answer in history:
            w = self._answer_weight(answer)
            total_weight += w
            if answer.is_correct:
                correct_weight += w
        return correct_weight, total_weight

    def smoothed_score(self, history: Iterable[Answer]) -> float:
        """ES of ``history``; equals the prior for an empty history."""
        correct_weight, total_weight = self.weighted_totals(history)
        es = (self.lambda_val * self.prior + 100 * correct_weight) / (self.lambda_val + total_weight)
        return _round_score(es)

    def final_score(
        self,
        mechanism: DeliveryMechanism,
        history: Iterable[Answer],
        question_count: int
    ) -> float:
        """
        Final true-score of a finished session, rounded to 2 decimals.

        An early-terminated static or random exam is still scored against
        the room's target count, not against the attempts made.
        """
        if mechanism is DeliveryMechanism.RULE_BASED:
            correct_weight, total_weight = self.weighted_totals(history)
            if total_weight <= 0:
                return 0.0
            return _round_score(100 * correct_weight / total_weight)

        if not question_count or question_count <= 0:
            return 0.0
        total_correct = sum(1 for answer in history if answer.is_correct)
        return _round_score(100 * total_correct / question_count)
