"""
Stores backing the game engine: sessions, archived results and the question pool.
"""
import json
import threading
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from database.queries import QuestionPoolQueries, ResultQueries, SessionQueries
from database.session import DatabaseSession, get_db_session
from game.models import GameResult, GameSession, Question, utcnow
from game.validation import normalize_answer
from utils.errors import DatabaseError
from utils.logging import get_logger
from utils.retry import database_retry

logger = get_logger(__name__)


class InMemorySessionStore:
    """
    Process-local session store.

    Sessions are kept serialized, so every load returns a fresh copy the same way a
    database round-trip would.
    """

    def __init__(self):
        self._payloads: Dict[int, str] = {}
        self._lock = threading.Lock()

    def save(self, session: GameSession) -> None:
        payload = json.dumps(session.to_dict())
        with self._lock:
            self._payloads[session.chat_id] = payload

    def load(self, chat_id: int) -> Optional[GameSession]:
        with self._lock:
            payload = self._payloads.get(chat_id)
        if payload is None:
            return None
        return GameSession.from_dict(json.loads(payload))

    def remove(self, chat_id: int) -> None:
        with self._lock:
            self._payloads.pop(chat_id, None)

    def chat_ids(self) -> List[int]:
        with self._lock:
            return list(self._payloads)


class SqlSessionStore:
    """Sessions persisted in the game_sessions table."""

    def __init__(self, db: Optional[DatabaseSession] = None):
        self.db = db if db is not None else get_db_session()

    @database_retry
    def _save(self, session: GameSession) -> None:
        with self.db.get_session() as db:
            SessionQueries.upsert(
                db,
                chat_id=session.chat_id,
                session_id=session.id,
                status=session.status.value,
                payload=session.to_dict(),
            )

    @database_retry
    def _load(self, chat_id: int) -> Optional[Dict[str, Any]]:
        with self.db.get_session() as db:
            record = SessionQueries.get_by_chat(db, chat_id)
            return dict(record.payload) if record else None

    def save(self, session: GameSession) -> None:
        try:
            self._save(session)
        except SQLAlchemyError as e:
            logger.error(f"Failed to save session of chat {session.chat_id}: {e}", exc_info=True)
            raise DatabaseError(f"Failed to save session of chat {session.chat_id}", {"error": str(e)})

    def load(self, chat_id: int) -> Optional[GameSession]:
        try:
            payload = self._load(chat_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load session of chat {chat_id}: {e}", exc_info=True)
            raise DatabaseError(f"Failed to load session of chat {chat_id}", {"error": str(e)})
        return GameSession.from_dict(payload) if payload else None

    @database_retry
    def remove(self, chat_id: int) -> None:
        with self.db.get_session() as db:
            SessionQueries.delete(db, chat_id)

    @database_retry
    def chat_ids_in_status(self, statuses: Iterable[str]) -> List[int]:
        with self.db.get_session() as db:
            return SessionQueries.get_chats_in_status(db, statuses)

    @database_retry
    def chat_ids(self) -> List[int]:
        with self.db.get_session() as db:
            return SessionQueries.get_all_chats(db)


class SqlResultArchive:
    """Archived results in the game_results table."""

    def __init__(self, db: Optional[DatabaseSession] = None):
        self.db = db if db is not None else get_db_session()

    @database_retry
    def archive(self, result: GameResult) -> None:
        winner = result.winner
        with self.db.get_session() as db:
            if ResultQueries.get_by_game_id(db, result.game_id) is not None:
                logger.warning(f"Result of game {result.game_id} is already archived")
                return
            ResultQueries.add_result(
                db,
                result.to_dict(),
                game_id=result.game_id,
                chat_id=result.chat_id,
                final_status=result.final_status.value,
                winner_id=winner.id if winner else None,
                winner_name=winner.display_name if winner else None,
                total_questions=result.statistics.total_questions,
                duration_seconds=result.duration_seconds,
                started_at=result.started_at,
                completed_at=result.completed_at,
            )
        logger.info(f"Archived result of game {result.game_id} (chat {result.chat_id})")

    @database_retry
    def recent_results(self, chat_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        with self.db.get_session() as db:
            return [dict(r.payload) for r in ResultQueries.get_recent_for_chat(db, chat_id, limit)]


class SqlQuestionPool:
    """The question pool in the pool_questions table."""

    def __init__(self, db: Optional[DatabaseSession] = None):
        self.db = db if db is not None else get_db_session()

    @database_retry
    def select_questions(
        self,
        topic: Optional[str],
        limit: int,
        exclude: Optional[Set[str]] = None
    ) -> List[Question]:
        """
        Pick unused questions for a topic (None = generic questions).

        Args:
            topic: Topic to match, case-insensitive
            limit: Maximum number of questions
            exclude: Normalized texts that must not be returned

        Returns:
            Up to `limit` questions in random order
        """
        if limit <= 0:
            return []
        exclude = exclude or set()
        with self.db.get_session() as db:
            # Over-fetch so excluded duplicates do not starve the result
            rows = QuestionPoolQueries.get_unused_questions(db, topic, limit + len(exclude))
            picked = []
            for row in rows:
                if normalize_answer(row.text) in exclude:
                    continue
                picked.append(
                    Question(
                        topic=row.topic or topic or "",
                        text=row.text,
                        answer=row.answer,
                        source_id=row.source_id,
                        source_name=row.source_name,
                    )
                )
                if len(picked) >= limit:
                    break
            return picked

    @database_retry
    def add_questions(self, questions: Iterable[Question], skip_duplicates: bool = True) -> int:
        """Add questions to the pool. Returns how many were inserted."""
        added = 0
        with self.db.get_session() as db:
            for question in questions:
                if skip_duplicates and QuestionPoolQueries.question_exists(db, question.text):
                    logger.debug(f"Skipping duplicate question: {question.text[:50]}")
                    continue
                QuestionPoolQueries.add_question(
                    db,
                    text=question.text,
                    answer=question.answer,
                    topic=question.topic,
                    source_id=question.source_id,
                    source_name=question.source_name,
                )
                added += 1
        logger.info(f"Added {added} questions to the pool")
        return added

    @database_retry
    def move_to_archive(self, questions: Iterable[Question]) -> int:
        """Archive used questions so that later games do not repeat them."""
        archived_at = utcnow()
        count = 0
        with self.db.get_session() as db:
            for question in questions:
                count += QuestionPoolQueries.archive_question(
                    db, question.text, question.answer, archived_at
                )
        logger.info(f"Moved {count} questions to the archive")
        return count

    @database_retry
    def stats(self) -> Dict[str, Any]:
        with self.db.get_session() as db:
            return QuestionPoolQueries.get_stats(db)

    @database_retry
    def clear(self, include_archived: bool = False) -> int:
        with self.db.get_session() as db:
            removed = QuestionPoolQueries.delete_all(db, include_archived)
        logger.info(f"Removed {removed} questions from the pool")
        return removed
