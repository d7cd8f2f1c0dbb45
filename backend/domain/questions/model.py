"""
Question Domain Model Module

This module defines the question entity consumed by the exam engine and the
filters used to carve an eligible pool out of the question bank.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Sequence


class CognitiveLevel(enum.Enum):
    """
    Ordered cognitive taxonomy, C1 lowest to C6 highest.
    """
    C1 = "C1"
    C2 = "C2"
    C3 = "C3"
    C4 = "C4"
    C5 = "C5"
    C6 = "C6"

    @classmethod
    def ordered(cls) -> List['CognitiveLevel']:
        """All levels from lowest to highest."""
        return list(cls)

    @classmethod
    def parse(cls, value: Any) -> Optional['CognitiveLevel']:
        """Parse a level tag such as ``"c3"``; returns None for unknown tags."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None

    @property
    def rank(self) -> int:
        """Zero-based position in the taxonomy."""
        return CognitiveLevel.ordered().index(self)


MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 3


@dataclass
class Question:
    """
    A question as seen by the exam engine.

    Attributes:
        question_id: Unique identifier for the question
        cognitive_level: Cognitive level tag (C1..C6)
        difficulty: Difficulty 1 (easy) to 3 (hard)
        correct_answer: Answer key, compared case-insensitively
        subject_id: Subject used for pool filtering
        class_level: Class level used for pool filtering
        topic_id: Topic used for pool filtering
        content: Stem, options and media; opaque to the engine
    """
    question_id: Hashable
    cognitive_level: str
    difficulty: int
    correct_answer: str
    subject_id: Optional[Hashable] = None
    class_level: Optional[Hashable] = None
    topic_id: Optional[Hashable] = None
    content: Dict[str, Any] = field(default_factory=dict)

    def is_correct(self, response: Optional[str]) -> bool:
        """
        Grade a response against the answer key.

        Blank or missing responses are never correct.
        """
        if response is None or not isinstance(response, str):
            return False
        response = response.strip()
        if not response or self.correct_answer is None:
            return False
        return response.upper() == str(self.correct_answer).strip().upper()


@dataclass(frozen=True)
class PoolFilter:
    """
    Subject / class / topic restriction defining the eligible pool of a room.

    A None field (or an empty topic list) does not restrict.
    """
    subject_id: Optional[Hashable] = None
    class_level: Optional[Hashable] = None
    topic_ids: Optional[Sequence[Hashable]] = None

    def matches(self, question: Question) -> bool:
        if self.subject_id is not None and question.subject_id != self.subject_id:
            return False
        if self.class_level is not None and question.class_level != self.class_level:
            return False
        if self.topic_ids and question.topic_id not in self.topic_ids:
            return False
        return True
