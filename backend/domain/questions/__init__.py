"""
Question domain module.

This module contains the question model, pool filters and repositories
read by the exam engine.
"""

from .model import Question, CognitiveLevel, PoolFilter, MIN_DIFFICULTY, MAX_DIFFICULTY
from .repository import QuestionRepository
from .memory_repository import MemoryQuestionRepository

__all__ = [
    'Question',
    'CognitiveLevel',
    'PoolFilter',
    'MIN_DIFFICULTY',
    'MAX_DIFFICULTY',
    'QuestionRepository',
    'MemoryQuestionRepository',
]
