"""
SQLAlchemy models for Strong Link Bot.
"""
from datetime import datetime

import pytz
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(pytz.UTC)


class GameSessionRecord(Base):
    """Serialized GameSession, one row per chat."""
    __tablename__ = "game_sessions"

    chat_id = Column(BigInteger, primary_key=True, autoincrement=False)
    session_id = Column(String(32), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<GameSessionRecord(chat_id={self.chat_id}, session_id={self.session_id}, status={self.status})>"


class GameResultRecord(Base):
    """Archived GameResult."""
    __tablename__ = "game_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(String(32), nullable=False, unique=True)
    chat_id = Column(BigInteger, nullable=False, index=True)
    final_status = Column(String(32), nullable=False)
    winner_id = Column(BigInteger, nullable=True)
    winner_name = Column(String(255), nullable=True)
    total_questions = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Float, nullable=False, default=0.0)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<GameResultRecord(game_id={self.game_id}, status={self.final_status}, winner={self.winner_name})>"


class PoolQuestion(Base):
    """Question available to (or already used by) games."""
    __tablename__ = "pool_questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic = Column(String(255), nullable=True)
    text = Column(Text, nullable=False)
    answer = Column(String(500), nullable=False)
    source_id = Column(String(255), nullable=True)
    source_name = Column(String(255), nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_pool_questions_topic_archived", "topic", "is_archived"),
    )

    def __repr__(self):
        return f"<PoolQuestion(id={self.id}, topic={self.topic}, archived={self.is_archived})>"
