"""
Shared fixtures for the exam engine test suite.

The question bank holds three questions for every (cognitive level,
difficulty) cell of subject 1, plus a two-question bank for subject 2.
Question IDs encode their cell: ``100 * level + 10 * difficulty + n``.
"""

import pytest

from backend.common.config import EngineConfig
from backend.domain.questions import Question, MemoryQuestionRepository
from backend.assessments.exam.models import Room, RoomStatus, DeliveryMechanism
from backend.assessments.exam.memory_repositories import MemoryResponseLedger, MemoryRoomStore
from backend.assessments.exam.selection import RandomSource
from backend.assessments.exam.service import ExamSessionController

CORRECT = "A"
WRONG = "B"

STUDENT = "student-1"
OTHER_STUDENT = "student-2"

STATIC_ROOM = 1
RANDOM_ROOM = 2
RULE_ROOM = 3
PREPARING_ROOM = 4
STATIC_TEN_ROOM = 5
SHORT_RULE_ROOM = 6
SMALL_POOL_ROOM = 7
ENDED_ROOM = 8

STATIC_MAP = [111, 221, 331]
STATIC_TEN_MAP = [111, 112, 113, 121, 122, 123, 131, 132, 133, 211]


def question_id(level: int, difficulty: int, n: int) -> int:
    return 100 * level + 10 * difficulty + n


def make_bank():
    questions = []
    for level in range(1, 7):
        for difficulty in range(1, 4):
            for n in range(1, 4):
                questions.append(Question(
                    question_id=question_id(level, difficulty, n),
                    cognitive_level=f"C{level}",
                    difficulty=difficulty,
                    correct_answer=CORRECT,
                    subject_id=1,
                    class_level=10,
                    topic_id=1 if n < 3 else 2,
                    content={
                        "text": f"Question C{level} difficulty {difficulty} #{n}",
                        "options": {"A": "first", "B": "second", "C": "third", "D": "fourth"},
                    },
                ))
    questions.append(Question(901, "C1", 1, CORRECT, subject_id=2, class_level=10, topic_id=9))
    questions.append(Question(902, "C2", 2, CORRECT, subject_id=2, class_level=10, topic_id=9))
    return questions


def make_rooms():
    active = RoomStatus.ACTIVE
    return [
        Room(STATIC_ROOM, DeliveryMechanism.STATIC, 3, active, question_map=list(STATIC_MAP)),
        Room(RANDOM_ROOM, DeliveryMechanism.RANDOM, 5, active, subject_id=1, class_level=10),
        Room(RULE_ROOM, DeliveryMechanism.RULE_BASED, 10, active, subject_id=1, class_level=10),
        Room(PREPARING_ROOM, DeliveryMechanism.STATIC, 3, RoomStatus.PREPARING, question_map=list(STATIC_MAP)),
        Room(STATIC_TEN_ROOM, DeliveryMechanism.STATIC, 10, active, question_map=list(STATIC_TEN_MAP)),
        Room(SHORT_RULE_ROOM, DeliveryMechanism.RULE_BASED, 3, active, subject_id=1),
        Room(SMALL_POOL_ROOM, DeliveryMechanism.RANDOM, 5, active, subject_id=2),
        Room(ENDED_ROOM, "static", 3, "ended", question_map=list(STATIC_MAP)),
    ]


@pytest.fixture
def engine_config():
    """Default engine constants with a fixed random seed."""
    return EngineConfig(random_seed=42)


@pytest.fixture
def question_bank():
    """In-memory question bank."""
    return MemoryQuestionRepository(make_bank())


@pytest.fixture
def ledger():
    """Empty in-memory response ledger."""
    return MemoryResponseLedger()


@pytest.fixture
def room_store():
    """Room store with every test room; STUDENT is enrolled everywhere."""
    store = MemoryRoomStore()
    for room in make_rooms():
        store.add_room(room)
        store.enroll(room.room_id, STUDENT)
    store.enroll(RANDOM_ROOM, OTHER_STUDENT)
    store.enroll(RULE_ROOM, OTHER_STUDENT)
    return store


@pytest.fixture
def controller(question_bank, ledger, room_store, engine_config):
    """Exam session controller over the in-memory stores."""
    return ExamSessionController(
        questions=question_bank,
        ledger=ledger,
        rooms=room_store,
        config=engine_config,
        random_source=RandomSource(engine_config.random_seed),
    )
