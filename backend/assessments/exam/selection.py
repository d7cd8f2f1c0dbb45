"""
Question Selector

Two strategies pick the next question of a session:

- map-based (static / random): a question map is built once per participant
  and every later lookup returns the first map entry not answered yet;
- rule-based: a uniform pick among the pool questions at the exact target
  level and difficulty, excluding questions already served. An empty
  candidate set means the pool is exhausted; the target is never relaxed.

Randomness goes through RandomSource, which derives an independent
generator per decision key. Repeating a decision with the same key (for
example a resubmitted answer or a reloaded page) yields the same pick.
"""

import random
from typing import Collection, Hashable, List, Optional, Sequence

from backend.common.logger import app_logger
from backend.domain.questions import QuestionRepository
from .models import DeliveryMechanism, LevelTarget, Room

logger = app_logger.getChild("exam.selection")


class RandomSource:
    """
    Seedable source of per-decision random generators.

    Args:
        seed: Base seed; a fresh system-random seed is drawn when omitted
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed if seed is not None else random.SystemRandom().getrandbits(64)

    def derive(self, *key: Hashable) -> random.Random:
        """Generator dedicated to the decision identified by ``key``."""
        material = ":".join(str(part) for part in (self.seed,) + key)
        return random.Random(material)

    def shuffled(self, items: Sequence[Hashable], *key: Hashable) -> List[Hashable]:
        result = list(items)
        self.derive(*key).shuffle(result)
        return result

    def sample(self, items: Sequence[Hashable], k: int, *key: Hashable) -> List[Hashable]:
        return self.derive(*key).sample(list(items), min(k, len(items)))

    def choice(self, items: Sequence[Hashable], *key: Hashable) -> Hashable:
        return self.derive(*key).choice(list(items))


def first_unanswered(question_map: Sequence[Hashable], answered_ids: Collection[Hashable]) -> Optional[Hashable]:
    """First map entry not in ``answered_ids``, or None when the map is exhausted."""
    answered = set(answered_ids)
    for question_id in question_map:
        if question_id not in answered:
            return question_id
    return None


class QuestionSelector:
    """Builds question maps and picks rule-based candidates."""

    def __init__(self, questions: QuestionRepository, random_source: RandomSource, pool_limit: int = 300):
        self.questions = questions
        self.random_source = random_source
        self.pool_limit = pool_limit

    async def build_question_map(self, room: Room, student_id: Hashable) -> List[Hashable]:
        """
        Build the question map of a participant.

        Random rooms sample ``question_count`` questions without replacement
        from the eligible pool. Static rooms shuffle the room's preset list.
        """
        mechanism = DeliveryMechanism.parse(room.mechanism)

        if mechanism is DeliveryMechanism.RANDOM:
            pool = await self.questions.find_pool(room.pool_filter)
            pool_ids = sorted((q.question_id for q in pool), key=str)
            question_map = self.random_source.sample(
                pool_ids, room.question_count, "map", room.room_id, student_id
            )
            if len(question_map) < room.question_count:
                logger.warning(
                    f"Room {room.room_id} pool holds {len(pool_ids)} questions, "
                    f"fewer than the {room.question_count} requested"
                )
            return question_map

        if mechanism is DeliveryMechanism.STATIC:
            return self.random_source.shuffled(
                list(room.question_map or []), "map", room.room_id, student_id
            )

        raise ValueError("Rule-based rooms do not use question maps")

    async def pick_rule_based(
        self,
        room: Room,
        student_id: Hashable,
        target: LevelTarget,
        exclude_ids: Collection[Hashable]
    ) -> Optional[Hashable]:
        """
        Pick a question at exactly ``target`` that was not served before.

        Returns:
            The picked question ID, or None when the pool is exhausted
        """
        pool = await self.questions.find_pool(
            room.pool_filter,
            exclude_ids=exclude_ids,
            cognitive_level=target.cognitive_level,
            difficulty=target.difficulty,
            limit=self.pool_limit,
        )
        excluded = set(exclude_ids)
        candidates = sorted(
            (q.question_id for q in pool if q.question_id not in excluded),
            key=str,
        )
        if not candidates:
            return None

        return self.random_source.choice(
            candidates,
            "rule", room.room_id, student_id, len(excluded),
            target.cognitive_level, target.difficulty,
        )
