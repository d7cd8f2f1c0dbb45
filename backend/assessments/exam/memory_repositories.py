"""
Memory Exam Repositories

In-memory implementations of the response ledger and the room store, for
development, embedding and tests. Per-student keys are disjoint, so
concurrent students never touch the same entries.
"""

import dataclasses
from typing import Any, Dict, Hashable, List, Optional, Tuple

from backend.common.exceptions import NotFoundError, ValidationError
from .models import Answer, Participant, Room
from .repositories import ResponseLedger, RoomStore

PARTICIPANT_FIELDS = {f.name for f in dataclasses.fields(Participant)} - {"room_id", "student_id"}


class MemoryResponseLedger(ResponseLedger):
    """Dict-backed ledger keyed by (room, student, question)."""

    def __init__(self):
        self._rows: Dict[Tuple[Hashable, Hashable, Hashable], Answer] = {}
        self._sequence: Dict[Tuple[Hashable, Hashable, Hashable], int] = {}
        self._counter = 0

    async def upsert(self, answer: Answer) -> Answer:
        stored = dataclasses.replace(answer)
        self._counter += 1
        self._rows[answer.key] = stored
        self._sequence[answer.key] = self._counter
        return dataclasses.replace(stored)

    async def list_history(self, room_id: Hashable, student_id: Hashable) -> List[Answer]:
        keys = [key for key in self._rows if key[0] == room_id and key[1] == student_id]
        # Equal timestamps keep write order
        keys.sort(key=lambda key: (self._rows[key].answered_at, self._sequence[key]))
        return [dataclasses.replace(self._rows[key]) for key in keys]

    def count(self, room_id: Hashable, student_id: Hashable) -> int:
        """Number of rows stored for a student in a room."""
        return sum(1 for key in self._rows if key[0] == room_id and key[1] == student_id)


class MemoryRoomStore(RoomStore):
    """Dict-backed rooms and participants."""

    def __init__(self):
        self._rooms: Dict[Hashable, Room] = {}
        self._participants: Dict[Tuple[Hashable, Hashable], Participant] = {}

    def add_room(self, room: Room) -> Room:
        self._rooms[room.room_id] = room
        return room

    def enroll(self, room_id: Hashable, student_id: Hashable) -> Participant:
        """Create the participant row of a student joining a room."""
        if room_id not in self._rooms:
            raise NotFoundError("Room", room_id)
        participant = self._participants.setdefault(
            (room_id, student_id), Participant(room_id=room_id, student_id=student_id)
        )
        return dataclasses.replace(participant)

    def delete_room(self, room_id: Hashable) -> bool:
        """Delete a room together with its participants."""
        removed = self._rooms.pop(room_id, None) is not None
        for key in [key for key in self._participants if key[0] == room_id]:
            del self._participants[key]
        return removed

    async def get_room(self, room_id: Hashable) -> Optional[Room]:
        room = self._rooms.get(room_id)
        return dataclasses.replace(room) if room else None

    async def get_participant(self, room_id: Hashable, student_id: Hashable) -> Optional[Participant]:
        participant = self._participants.get((room_id, student_id))
        return dataclasses.replace(participant) if participant else None

    async def update_participant(
        self,
        room_id: Hashable,
        student_id: Hashable,
        patch: Dict[str, Any]
    ) -> Participant:
        participant = self._participants.get((room_id, student_id))
        if participant is None:
            raise NotFoundError("Participant", f"{room_id}/{student_id}")

        unknown = set(patch) - PARTICIPANT_FIELDS
        if unknown:
            raise ValidationError("Unknown participant fields", {key: "unknown field" for key in unknown})

        updated = dataclasses.replace(participant, **patch)
        self._participants[(room_id, student_id)] = updated
        return dataclasses.replace(updated)

    async def save_question_map(
        self,
        room_id: Hashable,
        student_id: Hashable,
        question_ids: List[Hashable]
    ) -> Participant:
        return await self.update_participant(room_id, student_id, {"question_map": list(question_ids)})
