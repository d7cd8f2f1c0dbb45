"""
Exam Engine Repositories

This module defines the storage interfaces the exam engine depends on besides
the question bank: the response ledger and the room / participant store.
Implementations must propagate backing-store failures as DataAccessError.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Hashable, List, Optional

from .models import Answer, Participant, Room


class ResponseLedger(ABC):
    """
    Append/upsert store of student answers.

    Rows are unique per (room, student, question); writing an existing key
    replaces the row in place.
    """

    @abstractmethod
    async def upsert(self, answer: Answer) -> Answer:
        """
        Insert the answer or overwrite the row with the same key.

        Args:
            answer: The answer to store

        Returns:
            The stored answer
        """
        pass

    @abstractmethod
    async def list_history(self, room_id: Hashable, student_id: Hashable) -> List[Answer]:
        """
        List a student's answers in a room.

        Returns:
            Answers ordered by ``answered_at`` ascending
        """
        pass


class RoomStore(ABC):
    """Keyed access to rooms and their participants."""

    @abstractmethod
    async def get_room(self, room_id: Hashable) -> Optional[Room]:
        """Get a room, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_participant(self, room_id: Hashable, student_id: Hashable) -> Optional[Participant]:
        """Get a participant, or None if the student never joined the room."""
        pass

    @abstractmethod
    async def update_participant(
        self,
        room_id: Hashable,
        student_id: Hashable,
        patch: Dict[str, Any]
    ) -> Participant:
        """
        Apply ``patch`` to a participant's fields.

        Returns:
            The updated participant

        Raises:
            NotFoundError: If the participant does not exist
        """
        pass

    @abstractmethod
    async def save_question_map(
        self,
        room_id: Hashable,
        student_id: Hashable,
        question_ids: List[Hashable]
    ) -> Participant:
        """Persist the participant's question map."""
        pass
