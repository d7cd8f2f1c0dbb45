"""
SQLAlchemy ORM models for the exam engine.

This module defines the tables behind the SQL adapters:
- QuestionRecord: the question bank
- RoomRecord: exam rooms and their configuration
- ParticipantRecord: one row per (room, student) with the terminal summary
- AnswerRecord: the response ledger, unique per (room, student, question)
"""

import datetime
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text
)
from sqlalchemy.orm import relationship
from sqlalchemy.schema import UniqueConstraint

from backend.database.base import ModelBase


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class QuestionRecord(ModelBase):
    """A question of the bank; content fields are kept as one JSON document."""
    __tablename__ = 'questions'

    id = Column(Integer, primary_key=True)
    subject_id = Column(Integer, nullable=True, index=True)
    class_level = Column(Integer, nullable=True)
    topic_id = Column(Integer, nullable=True, index=True)
    cognitive_level = Column(String(2), nullable=False)
    difficulty = Column(Integer, nullable=False)
    correct_answer = Column(Text, nullable=False)
    content = Column(JSON, nullable=False, default=dict)

    __table_args__ = (
        Index('idx_questions_level_difficulty', cognitive_level, difficulty),
    )


class RoomRecord(ModelBase):
    """An exam room. ``question_map`` stores the preset list of static rooms."""
    __tablename__ = 'rooms'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=True)
    mechanism = Column(String(20), nullable=False)
    question_count = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="preparing", index=True)
    subject_id = Column(Integer, nullable=True)
    class_level = Column(Integer, nullable=True)
    topic_ids = Column(JSON, nullable=True)
    question_map = Column(JSON, nullable=True)

    participants = relationship(
        "ParticipantRecord", back_populates="room", cascade="all, delete-orphan", passive_deletes=True
    )


class ParticipantRecord(ModelBase):
    """A student's enrollment in a room."""
    __tablename__ = 'room_participants'

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False)
    student_id = Column(String(255), nullable=False, index=True)
    question_map = Column(JSON, nullable=True)
    total_answered = Column(Integer, nullable=True)
    total_correct = Column(Integer, nullable=True)
    final_score = Column(Float, nullable=True)
    total_time = Column(Integer, nullable=True)
    finished_at = Column(DateTime, nullable=True)
    joined_at = Column(DateTime, nullable=False, default=_utcnow)

    room = relationship("RoomRecord", back_populates="participants")

    __table_args__ = (
        UniqueConstraint('room_id', 'student_id', name='uq_room_participants_room_student'),
    )


class AnswerRecord(ModelBase):
    """
    One ledger row. ``cognitive_level`` and ``difficulty`` snapshot the
    question at the moment of the attempt.
    """
    __tablename__ = 'student_answers'

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False)
    student_id = Column(String(255), nullable=False)
    question_id = Column(Integer, nullable=False)
    chosen_answer = Column(Text, nullable=True)
    is_correct = Column(Boolean, nullable=False, default=False)
    time_taken = Column(Integer, nullable=True)
    cognitive_level = Column(String(2), nullable=True)
    difficulty = Column(Integer, nullable=True)
    es_value = Column(Float, nullable=True)
    answered_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint('room_id', 'student_id', 'question_id', name='uq_student_answers_room_student_question'),
        Index('idx_student_answers_history', 'room_id', 'student_id', 'answered_at'),
    )
