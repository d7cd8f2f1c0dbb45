"""
Exam Engine Models

This module defines the data contracts of the exam engine: room and
participant state, ledger answers, stop decisions and the tagged result
variants returned to the service layer.
"""

import enum
import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Sequence, Union

from backend.common.exceptions import InvalidStateError
from backend.domain.questions import Question, PoolFilter


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the form every store keeps."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class DeliveryMechanism(enum.Enum):
    """How a room delivers its questions."""
    STATIC = "static"
    RANDOM = "random"
    RULE_BASED = "rule_based"

    @classmethod
    def parse(cls, value: Union[str, 'DeliveryMechanism']) -> 'DeliveryMechanism':
        """
        Parse a stored mechanism value.

        Raises:
            InvalidStateError: If the mechanism is not recognized
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidStateError(f"Unrecognized delivery mechanism: {value}", state=str(value))

    @property
    def is_map_based(self) -> bool:
        return self is not DeliveryMechanism.RULE_BASED


class RoomStatus(enum.Enum):
    """Lifecycle of a room."""
    PREPARING = "preparing"
    ACTIVE = "active"
    ENDED = "ended"


class CompletionReason(enum.Enum):
    """Why a session reached the done state."""
    SCORE_STABLE = "score stable"
    ALL_LEVELS_MASTERED = "all levels mastered"
    MAX_ITEMS_REACHED = "max items reached"
    POOL_EXHAUSTED = "pool exhausted"
    MAP_EXHAUSTED = "all questions answered"


@dataclass
class Room:
    """
    Exam configuration.

    ``question_map`` holds the preset question list of static rooms.
    """
    room_id: Hashable
    mechanism: Union[DeliveryMechanism, str]
    question_count: int
    status: Union[RoomStatus, str] = RoomStatus.PREPARING
    subject_id: Optional[Hashable] = None
    class_level: Optional[Hashable] = None
    topic_ids: Optional[List[Hashable]] = None
    question_map: Optional[List[Hashable]] = None

    @property
    def pool_filter(self) -> PoolFilter:
        return PoolFilter(
            subject_id=self.subject_id,
            class_level=self.class_level,
            topic_ids=tuple(self.topic_ids) if self.topic_ids else None,
        )

    @property
    def status_value(self) -> str:
        if isinstance(self.status, RoomStatus):
            return self.status.value
        return str(self.status).strip().lower()

    @property
    def is_active(self) -> bool:
        return self.status_value == RoomStatus.ACTIVE.value


@dataclass
class Participant:
    """One student's enrollment in a room, with its terminal summary fields."""
    room_id: Hashable
    student_id: Hashable
    question_map: Optional[List[Hashable]] = None
    total_answered: Optional[int] = None
    total_correct: Optional[int] = None
    final_score: Optional[float] = None
    total_time: Optional[int] = None
    finished_at: Optional[datetime.datetime] = None

    @property
    def has_finished(self) -> bool:
        return self.finished_at is not None


@dataclass
class Answer:
    """
    One ledger row, unique per (room, student, question).

    ``cognitive_level`` and ``difficulty`` are snapshots of the question at
    the moment of the attempt and must not be refreshed from the bank.
    """
    room_id: Hashable
    student_id: Hashable
    question_id: Hashable
    chosen_answer: Optional[str]
    is_correct: bool
    cognitive_level: Optional[str]
    difficulty: Optional[int]
    time_taken: Optional[int] = None
    es_value: Optional[float] = None
    answered_at: datetime.datetime = field(default_factory=utcnow)

    @property
    def key(self) -> tuple:
        return (self.room_id, self.student_id, self.question_id)

    @property
    def is_skipped(self) -> bool:
        return self.chosen_answer is None


@dataclass(frozen=True)
class LevelTarget:
    """A point of the cognitive level x difficulty lattice."""
    cognitive_level: str
    difficulty: int


@dataclass(frozen=True)
class StopDecision:
    """Outcome of the stopping-condition evaluator."""
    stop: bool
    reason: Optional[CompletionReason] = None


@dataclass
class QuestionView:
    """A question as served to a student; never carries the answer key."""
    question_id: Hashable
    cognitive_level: str
    difficulty: int
    content: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_question(cls, question: Question) -> 'QuestionView':
        return cls(
            question_id=question.question_id,
            cognitive_level=question.cognitive_level,
            difficulty=question.difficulty,
            content=dict(question.content),
        )


@dataclass
class ExamSummary:
    """Terminal snapshot of a participant's attempt."""
    room_id: Hashable
    student_id: Hashable
    total_answered: int
    total_correct: int
    final_score: float
    total_time: int
    finished_at: Optional[datetime.datetime]

    @classmethod
    def from_participant(cls, participant: Participant) -> 'ExamSummary':
        return cls(
            room_id=participant.room_id,
            student_id=participant.student_id,
            total_answered=participant.total_answered or 0,
            total_correct=participant.total_correct or 0,
            final_score=participant.final_score or 0.0,
            total_time=participant.total_time or 0,
            finished_at=participant.finished_at,
        )


@dataclass
class Continuing:
    """Result variant: the session goes on with ``question``."""
    question: QuestionView
    mechanism: DeliveryMechanism
    answered_count: int
    is_last_question: bool
    question_map: Optional[List[Hashable]] = None
    answered_ids: Optional[List[Hashable]] = None
    position: Optional[int] = None
    total_questions: Optional[int] = None
    done: bool = field(default=False, init=False)


@dataclass
class Done:
    """Result variant: the session is over."""
    reason: CompletionReason
    summary: Optional[ExamSummary] = None
    message: Optional[str] = None
    done: bool = field(default=True, init=False)


ExamOutcome = Union[Continuing, Done]


@dataclass
class QuestionDetail:
    """A map question fetched for free navigation, with the previous response."""
    question: QuestionView
    chosen_answer: Optional[str] = None


def history_ids(history: Sequence[Answer]) -> List[Hashable]:
    """Question IDs of a history, in ledger order."""
    return [answer.question_id for answer in history]
