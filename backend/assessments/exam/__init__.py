"""
Adaptive Exam Engine

This module implements exam sessions for static, random and rule-based
rooms: question selection, correctness grading, the smoothed ability score,
stopping rules and the terminal summary.
"""

from backend.assessments.exam.models import (
    DeliveryMechanism,
    RoomStatus,
    CompletionReason,
    Room,
    Participant,
    Answer,
    LevelTarget,
    StopDecision,
    QuestionView,
    ExamSummary,
    Continuing,
    Done,
    ExamOutcome,
    QuestionDetail,
)
from backend.assessments.exam.weights import WeightTable
from backend.assessments.exam.scoring import ScoreEstimator
from backend.assessments.exam.transitions import COLD_START, next_target, target_after
from backend.assessments.exam.stopping import StoppingEvaluator
from backend.assessments.exam.selection import QuestionSelector, RandomSource, first_unanswered
from backend.assessments.exam.repositories import ResponseLedger, RoomStore
from backend.assessments.exam.memory_repositories import MemoryResponseLedger, MemoryRoomStore
from backend.assessments.exam.service import ExamSessionController

__all__ = [
    'DeliveryMechanism',
    'RoomStatus',
    'CompletionReason',
    'Room',
    'Participant',
    'Answer',
    'LevelTarget',
    'StopDecision',
    'QuestionView',
    'ExamSummary',
    'Continuing',
    'Done',
    'ExamOutcome',
    'QuestionDetail',
    'WeightTable',
    'ScoreEstimator',
    'COLD_START',
    'next_target',
    'target_after',
    'StoppingEvaluator',
    'QuestionSelector',
    'RandomSource',
    'first_unanswered',
    'ResponseLedger',
    'RoomStore',
    'MemoryResponseLedger',
    'MemoryRoomStore',
    'ExamSessionController',
]
