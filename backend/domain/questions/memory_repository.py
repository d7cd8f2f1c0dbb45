"""
Memory Question Repository Module

This module provides an in-memory implementation of the QuestionRepository
interface for development and testing purposes.
"""

import logging
from typing import Collection, Dict, Hashable, List, Optional

from .model import Question, PoolFilter
from .repository import QuestionRepository

logger = logging.getLogger(__name__)


class MemoryQuestionRepository(QuestionRepository):
    """
    In-memory implementation of the QuestionRepository.

    Besides the read interface it offers ``add`` and ``remove`` so tests can
    seed a bank and simulate questions deleted mid-exam.
    """

    def __init__(self, initial_data: Optional[List[Question]] = None):
        self._questions: Dict[Hashable, Question] = {}

        if initial_data:
            for question in initial_data:
                self.add(question)

    async def get_by_id(self, question_id: Hashable) -> Optional[Question]:
        return self._questions.get(question_id)

    async def find_pool(
        self,
        filters: PoolFilter,
        exclude_ids: Collection[Hashable] = (),
        cognitive_level: Optional[str] = None,
        difficulty: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Question]:
        excluded = set(exclude_ids)
        result = [
            question for question in self._questions.values()
            if filters.matches(question)
            and question.question_id not in excluded
            and (cognitive_level is None or question.cognitive_level == cognitive_level)
            and (difficulty is None or question.difficulty == difficulty)
        ]
        result.sort(key=lambda q: str(q.question_id))
        return result[:limit] if limit is not None else result

    def add(self, question: Question) -> Question:
        """Add or replace a question."""
        self._questions[question.question_id] = question
        return question

    def remove(self, question_id: Hashable) -> bool:
        """Remove a question; returns False if it was absent."""
        return self._questions.pop(question_id, None) is not None
