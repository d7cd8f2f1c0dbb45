"""
Level Transition Function

Walks the cognitive level x difficulty lattice one step per answer:
a correct answer raises difficulty, then climbs to the next level at the
top difficulty; an incorrect answer lowers difficulty down to 1 without
ever leaving the current level.
"""

from typing import Optional

from backend.domain.questions import CognitiveLevel, MIN_DIFFICULTY, MAX_DIFFICULTY
from .models import Answer, LevelTarget

COLD_START = LevelTarget(cognitive_level=CognitiveLevel.C1.value, difficulty=MIN_DIFFICULTY)


def next_target(cognitive_level: str, difficulty: Optional[int], is_correct: bool) -> LevelTarget:
    """
    Next (level, difficulty) after an answer at (``cognitive_level``, ``difficulty``).

    An unknown level tag is treated as C1 and a missing difficulty as 1.
    """
    levels = CognitiveLevel.ordered()
    level = CognitiveLevel.parse(cognitive_level) or CognitiveLevel.C1
    difficulty = min(max(int(difficulty or MIN_DIFFICULTY), MIN_DIFFICULTY), MAX_DIFFICULTY)

    if is_correct:
        if difficulty < MAX_DIFFICULTY:
            return LevelTarget(level.value, difficulty + 1)
        if level.rank < len(levels) - 1:
            return LevelTarget(levels[level.rank + 1].value, MAX_DIFFICULTY)
        return LevelTarget(level.value, MAX_DIFFICULTY)

    if difficulty > MIN_DIFFICULTY:
        return LevelTarget(level.value, difficulty - 1)
    return LevelTarget(level.value, MIN_DIFFICULTY)


def target_after(last_answer: Optional[Answer]) -> LevelTarget:
    """Target for the next question given the last ledger answer, or the cold start."""
    if last_answer is None:
        return COLD_START
    return next_target(last_answer.cognitive_level, last_answer.difficulty, last_answer.is_correct)
