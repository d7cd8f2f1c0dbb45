"""
Test suite for the SQL adapters.

Each test runs against a fresh SQLite file through aiosqlite, with the
schema created from the ORM models.
"""

import datetime
from contextlib import asynccontextmanager

import pytest
from sqlalchemy import Text

from backend.common.exceptions import DataAccessError, NotFoundError, ValidationError
from backend.database.init_db import initialize_database, create_schema, close_database
from backend.domain.questions import PoolFilter
from backend.assessments.exam.models import (
    Answer,
    CompletionReason,
    Continuing,
    DeliveryMechanism,
    Done,
    Room,
    RoomStatus,
)
from backend.assessments.exam.database_models import AnswerRecord, QuestionRecord
from backend.assessments.exam.selection import RandomSource
from backend.assessments.exam.service import ExamSessionController
from backend.assessments.exam.sql_repositories import (
    SqlQuestionRepository,
    SqlResponseLedger,
    SqlRoomStore,
)
from backend.tests.conftest import CORRECT, WRONG, STUDENT, make_bank


@asynccontextmanager
async def sql_stores(tmp_path):
    """Create a database file with the schema and yield the three adapters."""
    engine = await initialize_database(f"sqlite+aiosqlite:///{tmp_path / 'exam.db'}")
    await create_schema(engine)
    try:
        yield SqlQuestionRepository(engine), SqlResponseLedger(engine), SqlRoomStore(engine)
    finally:
        await close_database()


async def seed_bank(questions):
    for question in make_bank():
        await questions.save(question)


def make_answer(question_id, correct=True, answered_at=None, **kwargs):
    answer = Answer(
        room_id=kwargs.pop("room_id", 1),
        student_id=kwargs.pop("student_id", STUDENT),
        question_id=question_id,
        chosen_answer=CORRECT if correct else WRONG,
        is_correct=correct,
        cognitive_level="C1",
        difficulty=1,
        **kwargs
    )
    if answered_at is not None:
        answer.answered_at = answered_at
    return answer


@pytest.mark.asyncio
async def test_question_round_trip(tmp_path):
    async with sql_stores(tmp_path) as (questions, _, _):
        await seed_bank(questions)

        question = await questions.get_by_id(321)

        assert question.cognitive_level == "C3"
        assert question.difficulty == 2
        assert question.correct_answer == CORRECT
        assert question.content["options"]["B"] == "second"
        assert await questions.get_by_id(99999) is None


@pytest.mark.asyncio
async def test_find_pool_filters(tmp_path):
    async with sql_stores(tmp_path) as (questions, _, _):
        await seed_bank(questions)

        subject_two = await questions.find_pool(PoolFilter(subject_id=2))
        assert [q.question_id for q in subject_two] == [901, 902]

        cell = await questions.find_pool(PoolFilter(subject_id=1), cognitive_level="C2", difficulty=3)
        assert [q.question_id for q in cell] == [231, 232, 233]

        excluded = await questions.find_pool(
            PoolFilter(subject_id=1), exclude_ids=[231], cognitive_level="C2", difficulty=3
        )
        assert [q.question_id for q in excluded] == [232, 233]

        topic = await questions.find_pool(PoolFilter(topic_ids=(2,)), cognitive_level="C1")
        assert [q.question_id for q in topic] == [113, 123, 133]

        limited = await questions.find_pool(PoolFilter(class_level=10), limit=4)
        assert [q.question_id for q in limited] == [111, 112, 113, 121]


@pytest.mark.asyncio
async def test_room_and_participant_lifecycle(tmp_path):
    async with sql_stores(tmp_path) as (_, _, rooms):
        room = await rooms.create_room(
            Room(None, DeliveryMechanism.RANDOM, 5, RoomStatus.PREPARING, subject_id=1, topic_ids=[1, 2]),
            name="Quiz",
        )
        assert room.room_id is not None
        assert room.mechanism == "random"
        assert room.status == "preparing"

        await rooms.set_room_status(room.room_id, RoomStatus.ACTIVE)
        assert (await rooms.get_room(room.room_id)).is_active

        participant = await rooms.enroll(room.room_id, STUDENT)
        assert participant.question_map is None
        assert not participant.has_finished
        assert (await rooms.enroll(room.room_id, STUDENT)).student_id == STUDENT

        saved = await rooms.save_question_map(room.room_id, STUDENT, [5, 3, 9])
        assert saved.question_map == [5, 3, 9]
        assert (await rooms.get_participant(room.room_id, STUDENT)).question_map == [5, 3, 9]

        finished_at = datetime.datetime(2024, 5, 1, 10, 30, 15, 123456)
        updated = await rooms.update_participant(
            room.room_id, STUDENT, {"total_answered": 4, "final_score": 75.5, "finished_at": finished_at}
        )
        assert updated.total_answered == 4
        assert updated.final_score == 75.5
        assert updated.finished_at == finished_at


@pytest.mark.asyncio
async def test_room_store_errors(tmp_path):
    async with sql_stores(tmp_path) as (_, _, rooms):
        room = await rooms.create_room(Room(None, DeliveryMechanism.STATIC, 3, question_map=[1, 2, 3]))

        assert await rooms.get_room(12345) is None
        assert await rooms.get_participant(room.room_id, "nobody") is None

        with pytest.raises(NotFoundError):
            await rooms.enroll(12345, STUDENT)
        with pytest.raises(NotFoundError):
            await rooms.update_participant(room.room_id, "nobody", {"total_answered": 1})

        await rooms.enroll(room.room_id, STUDENT)
        with pytest.raises(ValidationError):
            await rooms.update_participant(room.room_id, STUDENT, {"room_id": 2})


@pytest.mark.asyncio
async def test_upsert_keeps_one_row_per_question(tmp_path):
    async with sql_stores(tmp_path) as (_, ledger, rooms):
        room = await rooms.create_room(Room(None, DeliveryMechanism.RULE_BASED, 10, RoomStatus.ACTIVE))

        await ledger.upsert(make_answer(111, correct=False, room_id=room.room_id, es_value=41.67))
        await ledger.upsert(make_answer(111, correct=True, room_id=room.room_id, es_value=58.33))

        history = await ledger.list_history(room.room_id, STUDENT)
        assert len(history) == 1
        assert history[0].is_correct is True
        assert history[0].chosen_answer == CORRECT
        assert history[0].es_value == 58.33


@pytest.mark.asyncio
async def test_history_ordered_by_time(tmp_path):
    async with sql_stores(tmp_path) as (_, ledger, rooms):
        room = await rooms.create_room(Room(None, DeliveryMechanism.STATIC, 3, RoomStatus.ACTIVE))
        base = datetime.datetime(2024, 1, 1, 12, 0, 0)

        await ledger.upsert(make_answer(3, room_id=room.room_id, answered_at=base + datetime.timedelta(seconds=20)))
        await ledger.upsert(make_answer(1, room_id=room.room_id, answered_at=base))
        await ledger.upsert(make_answer(2, room_id=room.room_id, answered_at=base + datetime.timedelta(seconds=10)))
        await ledger.upsert(make_answer(9, room_id=room.room_id, student_id="someone-else", answered_at=base))

        history = await ledger.list_history(room.room_id, STUDENT)
        assert [answer.question_id for answer in history] == [1, 2, 3]
        assert history[0].answered_at == base


@pytest.mark.asyncio
async def test_storage_failure_surfaces_as_data_access_error(tmp_path):
    async with sql_stores(tmp_path) as (_, ledger, _):
        with pytest.raises(DataAccessError) as exc_info:
            await ledger.upsert(make_answer(111, room_id=4242))
        assert exc_info.value.original_exception is not None


@pytest.mark.asyncio
async def test_deleting_room_cascades(tmp_path):
    async with sql_stores(tmp_path) as (_, ledger, rooms):
        room = await rooms.create_room(Room(None, DeliveryMechanism.STATIC, 3, RoomStatus.ACTIVE))
        await rooms.enroll(room.room_id, STUDENT)
        await ledger.upsert(make_answer(111, room_id=room.room_id))

        assert await rooms.delete_room(room.room_id) is True

        assert await rooms.get_participant(room.room_id, STUDENT) is None
        assert await ledger.list_history(room.room_id, STUDENT) == []
        assert await rooms.delete_room(room.room_id) is False


@pytest.mark.asyncio
async def test_rule_based_session_over_sql(tmp_path, engine_config):
    async with sql_stores(tmp_path) as (questions, ledger, rooms):
        await seed_bank(questions)
        room = await rooms.create_room(
            Room(None, DeliveryMechanism.RULE_BASED, 3, RoomStatus.ACTIVE, subject_id=1)
        )
        await rooms.enroll(room.room_id, STUDENT)
        controller = ExamSessionController(questions, ledger, rooms, engine_config, RandomSource(1))

        outcome = await controller.start(STUDENT, room.room_id)
        assert (outcome.question.cognitive_level, outcome.question.difficulty) == ("C1", 1)

        first_id = outcome.question.question_id
        repeated = await controller.answer(STUDENT, room.room_id, first_id, CORRECT, 12)
        outcome = await controller.answer(STUDENT, room.room_id, first_id, CORRECT, 12)
        assert repeated.question.question_id == outcome.question.question_id
        assert len(await ledger.list_history(room.room_id, STUDENT)) == 1

        while isinstance(outcome, Continuing):
            outcome = await controller.answer(STUDENT, room.room_id, outcome.question.question_id, CORRECT, 12)

        assert isinstance(outcome, Done)
        assert outcome.reason is CompletionReason.MAX_ITEMS_REACHED
        assert outcome.summary.total_answered == 3
        assert outcome.summary.total_time == 36
        assert outcome.summary.final_score == 100.0
        assert await controller.result(STUDENT, room.room_id) == outcome.summary
        assert await controller.finish(STUDENT, room.room_id) == outcome.summary


@pytest.mark.asyncio
async def test_random_session_over_sql(tmp_path, engine_config):
    async with sql_stores(tmp_path) as (questions, ledger, rooms):
        await seed_bank(questions)
        room = await rooms.create_room(
            Room(None, DeliveryMechanism.RANDOM, 4, RoomStatus.ACTIVE, subject_id=1, class_level=10)
        )
        await rooms.enroll(room.room_id, STUDENT)
        controller = ExamSessionController(questions, ledger, rooms, engine_config, RandomSource(1))

        outcome = await controller.start(STUDENT, room.room_id)
        question_map = outcome.question_map
        assert len(question_map) == 4
        assert (await rooms.get_participant(room.room_id, STUDENT)).question_map == question_map

        for expected in question_map:
            assert outcome.question.question_id == expected
            outcome = await controller.answer(STUDENT, room.room_id, expected, CORRECT)

        assert outcome.reason is CompletionReason.MAP_EXHAUSTED
        summary = await controller.finish(STUDENT, room.room_id)
        assert summary.final_score == 100.0
        assert await controller.result(STUDENT, room.room_id) == summary


def test_answer_columns_are_unbounded():
    assert isinstance(AnswerRecord.__table__.c.chosen_answer.type, Text)
    assert isinstance(QuestionRecord.__table__.c.correct_answer.type, Text)


@pytest.mark.asyncio
async def test_long_response_is_stored(tmp_path):
    async with sql_stores(tmp_path) as (_, ledger, rooms):
        room = await rooms.create_room(Room(None, DeliveryMechanism.STATIC, 3, RoomStatus.ACTIVE))
        response = "a free-form response " * 20

        answer = make_answer(111, correct=False, room_id=room.room_id)
        answer.chosen_answer = response
        await ledger.upsert(answer)

        history = await ledger.list_history(room.room_id, STUDENT)
        assert history[0].chosen_answer == response
