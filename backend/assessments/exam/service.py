"""
Exam Session Controller

This module orchestrates one student's exam session for the three delivery
mechanisms. Every operation is a single request/response step:

- ``start`` serves the first unanswered question, resuming where the
  student left off;
- ``answer`` grades and records a response, then serves the next question
  or ends the session;
- ``finish`` writes the terminal summary from the ledger (idempotent);
- ``result`` reads the persisted summary;
- ``get_question`` supports free navigation inside a question map.

Static and random rooms walk a persisted question map. Rule-based rooms walk
the level/difficulty lattice, track the smoothed score and stop through the
stopping-condition evaluator.
"""

from typing import Hashable, List, Optional, Sequence, Tuple

from backend.common.config import EngineConfig, get_engine_config
from backend.common.exceptions import (
    InvalidQuestionError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from backend.common.logger import app_logger, log_execution_time, LoggerAdapter
from backend.domain.questions import QuestionRepository
from .models import (
    Answer,
    CompletionReason,
    Continuing,
    DeliveryMechanism,
    Done,
    ExamOutcome,
    ExamSummary,
    Participant,
    QuestionDetail,
    QuestionView,
    Room,
    RoomStatus,
    history_ids,
    utcnow,
)
from .repositories import ResponseLedger, RoomStore
from .scoring import ScoreEstimator
from .selection import QuestionSelector, RandomSource, first_unanswered
from .stopping import StoppingEvaluator
from .transitions import target_after
from .weights import WeightTable

logger = app_logger.getChild("exam.service")


class ExamSessionController:
    """
    Drives exam sessions over the question bank, the response ledger and
    the room store.

    The controller holds no per-student state; every decision is rebuilt
    from the stores, so students of the same room never interfere.
    """

    def __init__(
        self,
        questions: QuestionRepository,
        ledger: ResponseLedger,
        rooms: RoomStore,
        config: Optional[EngineConfig] = None,
        random_source: Optional[RandomSource] = None
    ):
        """
        Initialize the controller.

        Args:
            questions: Question bank
            ledger: Response ledger
            rooms: Room / participant store
            config: Engine constants; the process-wide config when omitted
            random_source: Randomness for map building and rule-based picks
        """
        self.questions = questions
        self.ledger = ledger
        self.rooms = rooms
        self.config = config or get_engine_config()
        self.weights = WeightTable.from_config(self.config)
        self.scorer = ScoreEstimator(self.config, self.weights)
        self.stopping = StoppingEvaluator(self.config)
        self.random_source = random_source or RandomSource(self.config.random_seed)
        self.selector = QuestionSelector(questions, self.random_source, self.config.pool_limit)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @log_execution_time(logger)
    async def start(self, student_id: Hashable, room_id: Hashable) -> ExamOutcome:
        """
        Start or resume a session.

        Raises:
            NotFoundError: If the room does not exist
            InvalidStateError: If the room is not active, the student is not
                enrolled or the mechanism is unknown
        """
        room, mechanism = await self._load_room(room_id)
        self._require_active(room)
        participant = await self._load_participant(room_id, student_id)
        log = self._session_log(room_id, student_id)

        if mechanism.is_map_based:
            question_map = await self._ensure_question_map(room, participant)
            history = await self.ledger.list_history(room_id, student_id)
            log.info(f"Starting {mechanism.value} session with {len(history)} answers on record")
            return await self._next_from_map(room, mechanism, question_map, history)

        history = await self.ledger.list_history(room_id, student_id)
        log.info(f"Starting rule_based session with {len(history)} answers on record")

        decision = self.stopping.evaluate(history, room.question_count)
        if decision.stop:
            log.info(f"Session already complete: {decision.reason.value}")
            summary = await self._finish(room, mechanism, participant, history)
            return Done(reason=decision.reason, summary=summary)

        return await self._next_rule_based(room, student_id, history, log)

    @log_execution_time(logger)
    async def answer(
        self,
        student_id: Hashable,
        room_id: Hashable,
        question_id: Hashable,
        response: Optional[str] = None,
        time_taken: Optional[int] = None
    ) -> ExamOutcome:
        """
        Grade and record a response, then advance the session.

        Resubmitting the same question overwrites its ledger row, so a double
        submission leaves one row and yields the same outcome.

        Args:
            student_id: Student identity
            room_id: Room identity
            question_id: The question being answered
            response: Chosen answer; blank or None records a skip
            time_taken: Seconds spent on the question

        Raises:
            NotFoundError: If the room does not exist
            InvalidQuestionError: If the question does not exist or is not
                part of the student's question map
            InvalidStateError: If the room is not active or the student is
                not enrolled
            ValidationError: If ``time_taken`` is negative
        """
        if time_taken is not None and time_taken < 0:
            raise ValidationError("time_taken must not be negative", {"time_taken": time_taken})

        room, mechanism = await self._load_room(room_id)
        self._require_active(room)
        participant = await self._load_participant(room_id, student_id)
        log = self._session_log(room_id, student_id)

        question = await self.questions.get_by_id(question_id)
        if question is None:
            raise InvalidQuestionError(question_id)

        question_map: List[Hashable] = []
        if mechanism.is_map_based:
            question_map = await self._ensure_question_map(room, participant)
            if question_id not in question_map:
                raise InvalidQuestionError(question_id, "is not part of this exam")

        chosen = response.strip() if isinstance(response, str) and response.strip() else None
        answer = Answer(
            room_id=room_id,
            student_id=student_id,
            question_id=question_id,
            chosen_answer=chosen,
            is_correct=question.is_correct(chosen),
            cognitive_level=question.cognitive_level,
            difficulty=question.difficulty,
            time_taken=time_taken,
        )

        if mechanism is DeliveryMechanism.RULE_BASED:
            previous = await self.ledger.list_history(room_id, student_id)
            updated = [a for a in previous if a.question_id != question_id] + [answer]
            answer.es_value = self.scorer.smoothed_score(updated)

        await self.ledger.upsert(answer)
        log.info(
            f"Recorded answer to {question_id}: correct={answer.is_correct}"
            + (f" es={answer.es_value}" if answer.es_value is not None else "")
        )

        history = await self.ledger.list_history(room_id, student_id)

        if mechanism.is_map_based:
            return await self._next_from_map(room, mechanism, question_map, history)

        decision = self.stopping.evaluate(history, room.question_count)
        if decision.stop:
            log.info(f"Stopping session: {decision.reason.value}")
            summary = await self._finish(room, mechanism, participant, history)
            return Done(reason=decision.reason, summary=summary)

        return await self._next_rule_based(room, student_id, history, log)

    @log_execution_time(logger)
    async def finish(self, student_id: Hashable, room_id: Hashable) -> ExamSummary:
        """
        Compute and persist the terminal summary of a session.

        Finishing is allowed while the room is active or after it ended.
        Calling it again recomputes the same summary from the same ledger.

        Raises:
            NotFoundError: If the room does not exist
            InvalidStateError: If the room is still being prepared or the
                student is not enrolled
        """
        room, mechanism = await self._load_room(room_id)
        if room.status_value == RoomStatus.PREPARING.value:
            raise InvalidStateError(f"Room {room_id} has not started", state=room.status_value)
        participant = await self._load_participant(room_id, student_id)
        history = await self.ledger.list_history(room_id, student_id)
        return await self._finish(room, mechanism, participant, history)

    async def result(self, student_id: Hashable, room_id: Hashable) -> ExamSummary:
        """
        Read the persisted summary of a finished session.

        Raises:
            NotFoundError: If the student never finished the room
        """
        participant = await self.rooms.get_participant(room_id, student_id)
        if participant is None or not participant.has_finished:
            raise NotFoundError("Result", f"{room_id}/{student_id}")
        return ExamSummary.from_participant(participant)

    async def get_question(
        self,
        student_id: Hashable,
        room_id: Hashable,
        question_id: Hashable
    ) -> QuestionDetail:
        """
        Fetch a question of the student's map together with the response
        already recorded for it, for free navigation.

        Raises:
            NotFoundError: If the room does not exist
            InvalidStateError: If the student is not enrolled or the room is
                rule-based
            InvalidQuestionError: If the question is outside the map or gone
        """
        room, mechanism = await self._load_room(room_id)
        participant = await self._load_participant(room_id, student_id)
        if not mechanism.is_map_based:
            raise InvalidStateError(
                "Free navigation is only available for static and random rooms",
                state=mechanism.value,
            )

        if question_id not in (participant.question_map or []):
            raise InvalidQuestionError(question_id, "is not part of this exam")

        view = await self._view(question_id)
        history = await self.ledger.list_history(room_id, student_id)
        previous = next((a for a in history if a.question_id == question_id), None)
        return QuestionDetail(question=view, chosen_answer=previous.chosen_answer if previous else None)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _session_log(self, room_id: Hashable, student_id: Hashable) -> LoggerAdapter:
        return LoggerAdapter(logger, {"room_id": room_id, "student_id": student_id})

    async def _load_room(self, room_id: Hashable) -> Tuple[Room, DeliveryMechanism]:
        room = await self.rooms.get_room(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room, DeliveryMechanism.parse(room.mechanism)

    def _require_active(self, room: Room) -> None:
        if not room.is_active:
            raise InvalidStateError(
                f"Room {room.room_id} is not active (status: {room.status_value})",
                state=room.status_value,
            )

    async def _load_participant(self, room_id: Hashable, student_id: Hashable) -> Participant:
        participant = await self.rooms.get_participant(room_id, student_id)
        if participant is None:
            raise InvalidStateError(
                f"Student {student_id} is not enrolled in room {room_id}",
                state="not_enrolled",
            )
        return participant

    async def _view(self, question_id: Hashable) -> QuestionView:
        question = await self.questions.get_by_id(question_id)
        if question is None:
            raise InvalidQuestionError(question_id, "no longer exists")
        return QuestionView.from_question(question)

    async def _ensure_question_map(self, room: Room, participant: Participant) -> List[Hashable]:
        if participant.question_map:
            return list(participant.question_map)

        question_map = await self.selector.build_question_map(room, participant.student_id)
        await self.rooms.save_question_map(room.room_id, participant.student_id, question_map)
        logger.info(
            f"Materialized question map of {len(question_map)} questions "
            f"for student {participant.student_id} in room {room.room_id}"
        )
        return question_map

    async def _next_from_map(
        self,
        room: Room,
        mechanism: DeliveryMechanism,
        question_map: List[Hashable],
        history: Sequence[Answer]
    ) -> ExamOutcome:
        answered_ids = history_ids(history)
        answered = set(answered_ids)
        answered_in_map = sum(1 for question_id in question_map if question_id in answered)

        next_id = first_unanswered(question_map, answered)
        if next_id is None:
            return Done(reason=CompletionReason.MAP_EXHAUSTED, message="All questions have been answered.")

        if room.question_count > 0 and answered_in_map >= room.question_count:
            return Done(reason=CompletionReason.MAX_ITEMS_REACHED, message="Target question count reached.")

        remaining = len(question_map) - answered_in_map
        is_last = remaining <= 1 or (0 < room.question_count <= answered_in_map + 1)

        return Continuing(
            question=await self._view(next_id),
            mechanism=mechanism,
            answered_count=answered_in_map,
            is_last_question=is_last,
            question_map=list(question_map),
            answered_ids=answered_ids,
            position=question_map.index(next_id) + 1,
            total_questions=len(question_map),
        )

    async def _next_rule_based(
        self,
        room: Room,
        student_id: Hashable,
        history: Sequence[Answer],
        log: LoggerAdapter
    ) -> ExamOutcome:
        target = target_after(history[-1] if history else None)
        next_id = await self.selector.pick_rule_based(room, student_id, target, history_ids(history))

        if next_id is None:
            log.warning(
                f"Pool exhausted at {target.cognitive_level} difficulty {target.difficulty}"
            )
            return Done(
                reason=CompletionReason.POOL_EXHAUSTED,
                message=f"No question left at {target.cognitive_level} difficulty {target.difficulty}.",
            )

        return Continuing(
            question=await self._view(next_id),
            mechanism=DeliveryMechanism.RULE_BASED,
            answered_count=len(history),
            is_last_question=len(history) + 1 >= room.question_count,
        )

    async def _finish(
        self,
        room: Room,
        mechanism: DeliveryMechanism,
        participant: Participant,
        history: Sequence[Answer]
    ) -> ExamSummary:
        patch = {
            "total_answered": len(history),
            "total_correct": sum(1 for answer in history if answer.is_correct),
            "final_score": self.scorer.final_score(mechanism, history, room.question_count),
            "total_time": sum(answer.time_taken or 0 for answer in history),
            "finished_at": participant.finished_at or utcnow(),
        }
        updated = await self.rooms.update_participant(room.room_id, participant.student_id, patch)
        summary = ExamSummary.from_participant(updated)

        self._session_log(room.room_id, participant.student_id).info(
            f"Finished with score {summary.final_score} "
            f"({summary.total_correct}/{summary.total_answered} correct)"
        )
        return summary
