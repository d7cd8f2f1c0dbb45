"""
Question Repository Module

This module defines the repository interface through which the exam engine
reads the question bank.
"""

import abc
from typing import Collection, Hashable, List, Optional

from .model import Question, PoolFilter


class QuestionRepository(abc.ABC):
    """
    Abstract base class for question repositories.

    The engine only reads questions; authoring lives elsewhere.
    """

    @abc.abstractmethod
    async def get_by_id(self, question_id: Hashable) -> Optional[Question]:
        """
        Get a question by its ID.

        Args:
            question_id: The ID of the question to retrieve

        Returns:
            The Question entity if found, None otherwise
        """
        pass

    @abc.abstractmethod
    async def find_pool(
        self,
        filters: PoolFilter,
        exclude_ids: Collection[Hashable] = (),
        cognitive_level: Optional[str] = None,
        difficulty: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Question]:
        """
        Find the eligible questions of a pool.

        Args:
            filters: Subject / class / topic restriction
            exclude_ids: Question IDs to leave out
            cognitive_level: Optional exact cognitive level
            difficulty: Optional exact difficulty
            limit: Maximum number of questions to return

        Returns:
            Matching questions, ordered by ID
        """
        pass
