"""
SQL Exam Repositories

SQLAlchemy (async) implementations of the question repository, the response
ledger and the room store. Every operation runs in its own short
transaction; SQLAlchemy failures surface as DataAccessError and are never
retried here.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Collection, Dict, Hashable, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from backend.common.exceptions import DataAccessError, NotFoundError, ValidationError
from backend.common.logger import app_logger
from backend.domain.questions import PoolFilter, Question, QuestionRepository
from .database_models import AnswerRecord, ParticipantRecord, QuestionRecord, RoomRecord
from .memory_repositories import PARTICIPANT_FIELDS
from .models import Answer, Participant, Room
from .repositories import ResponseLedger, RoomStore

logger = app_logger.getChild("exam.sql")

ANSWER_KEY_COLUMNS = ("room_id", "student_id", "question_id")
ANSWER_VALUE_COLUMNS = (
    "chosen_answer", "is_correct", "time_taken", "cognitive_level",
    "difficulty", "es_value", "answered_at",
)
UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


class SqlRepository:
    """Shared session handling of the SQL adapters."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database operation failed: {e}")
            raise DataAccessError(str(e), original_exception=e) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


class SqlQuestionRepository(SqlRepository, QuestionRepository):
    """Question bank backed by the ``questions`` table."""

    @staticmethod
    def _to_question(record: QuestionRecord) -> Question:
        return Question(
            question_id=record.id,
            cognitive_level=record.cognitive_level,
            difficulty=record.difficulty,
            correct_answer=record.correct_answer,
            subject_id=record.subject_id,
            class_level=record.class_level,
            topic_id=record.topic_id,
            content=dict(record.content or {}),
        )

    async def get_by_id(self, question_id: Hashable) -> Optional[Question]:
        async with self._session() as session:
            record = await session.get(QuestionRecord, question_id)
            return self._to_question(record) if record else None

    async def find_pool(
        self,
        filters: PoolFilter,
        exclude_ids: Collection[Hashable] = (),
        cognitive_level: Optional[str] = None,
        difficulty: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Question]:
        stmt = select(QuestionRecord)
        if filters.subject_id is not None:
            stmt = stmt.where(QuestionRecord.subject_id == filters.subject_id)
        if filters.class_level is not None:
            stmt = stmt.where(QuestionRecord.class_level == filters.class_level)
        if filters.topic_ids:
            stmt = stmt.where(QuestionRecord.topic_id.in_(list(filters.topic_ids)))
        if exclude_ids:
            stmt = stmt.where(QuestionRecord.id.notin_(list(exclude_ids)))
        if cognitive_level is not None:
            stmt = stmt.where(QuestionRecord.cognitive_level == cognitive_level)
        if difficulty is not None:
            stmt = stmt.where(QuestionRecord.difficulty == difficulty)
        stmt = stmt.order_by(QuestionRecord.id)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session() as session:
            result = await session.execute(stmt)
            return [self._to_question(record) for record in result.scalars().all()]

    async def save(self, question: Question) -> Question:
        """Insert or replace a question of the bank."""
        async with self._session() as session:
            record = await session.get(QuestionRecord, question.question_id)
            if record is None:
                record = QuestionRecord(id=question.question_id)
                session.add(record)
            record.update({
                "subject_id": question.subject_id,
                "class_level": question.class_level,
                "topic_id": question.topic_id,
                "cognitive_level": question.cognitive_level,
                "difficulty": question.difficulty,
                "correct_answer": question.correct_answer,
                "content": dict(question.content),
            })
        return question


class SqlResponseLedger(SqlRepository, ResponseLedger):
    """Response ledger backed by the ``student_answers`` table."""

    @staticmethod
    def _to_answer(record: AnswerRecord) -> Answer:
        return Answer(
            room_id=record.room_id,
            student_id=record.student_id,
            question_id=record.question_id,
            chosen_answer=record.chosen_answer,
            is_correct=bool(record.is_correct),
            cognitive_level=record.cognitive_level,
            difficulty=record.difficulty,
            time_taken=record.time_taken,
            es_value=record.es_value,
            answered_at=record.answered_at,
        )

    async def upsert(self, answer: Answer) -> Answer:
        values = {column: getattr(answer, column) for column in ANSWER_KEY_COLUMNS + ANSWER_VALUE_COLUMNS}
        insert = UPSERT_INSERTS.get(self.engine.dialect.name)

        async with self._session() as session:
            if insert is not None:
                stmt = insert(AnswerRecord).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(ANSWER_KEY_COLUMNS),
                    set_={column: getattr(stmt.excluded, column) for column in ANSWER_VALUE_COLUMNS},
                )
                await session.execute(stmt)
            else:
                existing = (await session.execute(
                    select(AnswerRecord).where(
                        AnswerRecord.room_id == answer.room_id,
                        AnswerRecord.student_id == answer.student_id,
                        AnswerRecord.question_id == answer.question_id,
                    )
                )).scalar_one_or_none()
                if existing is None:
                    session.add(AnswerRecord(**values))
                else:
                    existing.update(values)
        return answer

    async def list_history(self, room_id: Hashable, student_id: Hashable) -> List[Answer]:
        stmt = (
            select(AnswerRecord)
            .where(AnswerRecord.room_id == room_id, AnswerRecord.student_id == student_id)
            .order_by(AnswerRecord.answered_at, AnswerRecord.id)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [self._to_answer(record) for record in result.scalars().all()]


class SqlRoomStore(SqlRepository, RoomStore):
    """Rooms and participants backed by ``rooms`` and ``room_participants``."""

    @staticmethod
    def _to_room(record: RoomRecord) -> Room:
        return Room(
            room_id=record.id,
            mechanism=record.mechanism,
            question_count=record.question_count,
            status=record.status,
            subject_id=record.subject_id,
            class_level=record.class_level,
            topic_ids=list(record.topic_ids) if record.topic_ids else None,
            question_map=list(record.question_map) if record.question_map else None,
        )

    @staticmethod
    def _to_participant(record: ParticipantRecord) -> Participant:
        return Participant(
            room_id=record.room_id,
            student_id=record.student_id,
            question_map=list(record.question_map) if record.question_map else None,
            total_answered=record.total_answered,
            total_correct=record.total_correct,
            final_score=record.final_score,
            total_time=record.total_time,
            finished_at=record.finished_at,
        )

    async def _participant_record(
        self,
        session: AsyncSession,
        room_id: Hashable,
        student_id: Hashable
    ) -> Optional[ParticipantRecord]:
        result = await session.execute(
            select(ParticipantRecord).where(
                ParticipantRecord.room_id == room_id,
                ParticipantRecord.student_id == student_id,
            )
        )
        return result.scalar_one_or_none()

    async def create_room(self, room: Room, name: Optional[str] = None) -> Room:
        """Insert a room; the store assigns an ID when ``room.room_id`` is None."""
        async with self._session() as session:
            record = RoomRecord(
                id=room.room_id,
                name=name,
                mechanism=_enum_value(room.mechanism),
                question_count=room.question_count,
                status=_enum_value(room.status),
                subject_id=room.subject_id,
                class_level=room.class_level,
                topic_ids=list(room.topic_ids) if room.topic_ids else None,
                question_map=list(room.question_map) if room.question_map else None,
            )
            session.add(record)
            await session.flush()
            return self._to_room(record)

    async def set_room_status(self, room_id: Hashable, status: Any) -> Room:
        """Change a room's status."""
        async with self._session() as session:
            record = await session.get(RoomRecord, room_id)
            if record is None:
                raise NotFoundError("Room", room_id)
            record.status = _enum_value(status)
            return self._to_room(record)

    async def enroll(self, room_id: Hashable, student_id: Hashable) -> Participant:
        """Create the participant row of a student joining a room."""
        async with self._session() as session:
            if await session.get(RoomRecord, room_id) is None:
                raise NotFoundError("Room", room_id)
            record = await self._participant_record(session, room_id, student_id)
            if record is None:
                record = ParticipantRecord(room_id=room_id, student_id=student_id)
                session.add(record)
                await session.flush()
            return self._to_participant(record)

    async def delete_room(self, room_id: Hashable) -> bool:
        """Delete a room; participants and answers go with it."""
        async with self._session() as session:
            record = await session.get(RoomRecord, room_id)
            if record is None:
                return False
            await session.delete(record)
            return True

    async def get_room(self, room_id: Hashable) -> Optional[Room]:
        async with self._session() as session:
            record = await session.get(RoomRecord, room_id)
            return self._to_room(record) if record else None

    async def get_participant(self, room_id: Hashable, student_id: Hashable) -> Optional[Participant]:
        async with self._session() as session:
            record = await self._participant_record(session, room_id, student_id)
            return self._to_participant(record) if record else None

    async def update_participant(
        self,
        room_id: Hashable,
        student_id: Hashable,
        patch: Dict[str, Any]
    ) -> Participant:
        unknown = set(patch) - PARTICIPANT_FIELDS
        if unknown:
            raise ValidationError("Unknown participant fields", {key: "unknown field" for key in unknown})

        async with self._session() as session:
            record = await self._participant_record(session, room_id, student_id)
            if record is None:
                raise NotFoundError("Participant", f"{room_id}/{student_id}")
            record.update(patch)
            await session.flush()
            await session.refresh(record)
            return self._to_participant(record)

    async def save_question_map(
        self,
        room_id: Hashable,
        student_id: Hashable,
        question_ids: List[Hashable]
    ) -> Participant:
        return await self.update_participant(room_id, student_id, {"question_map": list(question_ids)})
