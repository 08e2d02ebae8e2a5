"""
Database module for Strong Link Bot.
Contains models, database session management, queries and stores.
"""
from database.session import get_db_session, DatabaseSession
from database.models import Base, GameSessionRecord, GameResultRecord, PoolQuestion
from database.stores import (
    InMemorySessionStore,
    SqlSessionStore,
    SqlResultArchive,
    SqlQuestionPool,
)

__all__ = [
    "get_db_session",
    "DatabaseSession",
    "Base",
    "GameSessionRecord",
    "GameResultRecord",
    "PoolQuestion",
    "InMemorySessionStore",
    "SqlSessionStore",
    "SqlResultArchive",
    "SqlQuestionPool",
]
