"""
Database query helpers - common database operations.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, func, desc
from database.models import GameResultRecord, GameSessionRecord, PoolQuestion


class SessionQueries:
    """Persisted game session queries."""

    @staticmethod
    def get_by_chat(session: Session, chat_id: int) -> Optional[GameSessionRecord]:
        """Get the stored session of a chat."""
        return session.get(GameSessionRecord, chat_id)

    @staticmethod
    def upsert(
        session: Session,
        chat_id: int,
        session_id: str,
        status: str,
        payload: Dict[str, Any]
    ) -> GameSessionRecord:
        """Insert or replace the stored session of a chat."""
        record = session.get(GameSessionRecord, chat_id)
        if record is None:
            record = GameSessionRecord(chat_id=chat_id)
            session.add(record)
        record.session_id = session_id
        record.status = status
        record.payload = payload
        session.flush()
        return record

    @staticmethod
    def delete(session: Session, chat_id: int) -> bool:
        """Delete the stored session of a chat."""
        record = session.get(GameSessionRecord, chat_id)
        if record is None:
            return False
        session.delete(record)
        session.flush()
        return True

    @staticmethod
    def get_chats_in_status(session: Session, statuses: Iterable[str]) -> List[int]:
        """Chat ids whose session is in one of the given statuses."""
        rows = (
            session.query(GameSessionRecord.chat_id)
            .filter(GameSessionRecord.status.in_(list(statuses)))
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_all_chats(session: Session) -> List[int]:
        """Chat ids that have a stored session."""
        return [row[0] for row in session.query(GameSessionRecord.chat_id).all()]


class ResultQueries:
    """Archived result queries."""

    @staticmethod
    def add_result(session: Session, result_data: Dict[str, Any], **summary) -> GameResultRecord:
        """Store an archived result. Summary columns come as keyword arguments."""
        record = GameResultRecord(payload=result_data, **summary)
        session.add(record)
        session.flush()
        return record

    @staticmethod
    def get_by_game_id(session: Session, game_id: str) -> Optional[GameResultRecord]:
        return session.query(GameResultRecord).filter(GameResultRecord.game_id == game_id).first()

    @staticmethod
    def get_recent_for_chat(session: Session, chat_id: int, limit: int = 10) -> List[GameResultRecord]:
        """Latest results of a chat, newest first."""
        return (
            session.query(GameResultRecord)
            .filter(GameResultRecord.chat_id == chat_id)
            .order_by(desc(GameResultRecord.completed_at))
            .limit(limit)
            .all()
        )


class QuestionPoolQueries:
    """Question pool queries."""

    @staticmethod
    def get_unused_questions(
        session: Session,
        topic: Optional[str],
        limit: int = 10
    ) -> List[PoolQuestion]:
        """
        Get questions that were never archived.

        A topic of None selects generic questions (no topic set).
        """
        query = session.query(PoolQuestion).filter(PoolQuestion.is_archived == False)  # noqa: E712
        if topic is None:
            query = query.filter(or_(PoolQuestion.topic.is_(None), PoolQuestion.topic == ""))
        else:
            query = query.filter(func.lower(PoolQuestion.topic) == topic.lower())

        # Random order
        return query.order_by(func.random()).limit(limit).all()

    @staticmethod
    def question_exists(session: Session, text: str) -> bool:
        """Check for a question with the same text, ignoring case and outer spaces."""
        normalized = text.strip().lower()
        return (
            session.query(PoolQuestion.id)
            .filter(func.lower(func.trim(PoolQuestion.text)) == normalized)
            .first()
            is not None
        )

    @staticmethod
    def add_question(
        session: Session,
        text: str,
        answer: str,
        topic: Optional[str] = None,
        source_id: Optional[str] = None,
        source_name: Optional[str] = None
    ) -> PoolQuestion:
        """Add a question to the pool."""
        question = PoolQuestion(
            topic=topic or None,
            text=text.strip(),
            answer=answer.strip(),
            source_id=source_id,
            source_name=source_name,
            is_archived=False,
        )
        session.add(question)
        session.flush()
        return question

    @staticmethod
    def archive_question(session: Session, text: str, answer: str, archived_at: datetime) -> int:
        """Mark every live copy of a question as archived. Returns rows updated."""
        return (
            session.query(PoolQuestion)
            .filter(
                and_(
                    PoolQuestion.is_archived == False,  # noqa: E712
                    PoolQuestion.text == text,
                    PoolQuestion.answer == answer,
                )
            )
            .update(
                {PoolQuestion.is_archived: True, PoolQuestion.archived_at: archived_at},
                synchronize_session=False,
            )
        )

    @staticmethod
    def get_stats(session: Session) -> Dict[str, Any]:
        """Totals of the pool plus available questions per topic."""
        total = session.query(func.count(PoolQuestion.id)).scalar() or 0
        archived = (
            session.query(func.count(PoolQuestion.id))
            .filter(PoolQuestion.is_archived == True)  # noqa: E712
            .scalar()
            or 0
        )
        by_topic_rows = (
            session.query(PoolQuestion.topic, func.count(PoolQuestion.id))
            .filter(PoolQuestion.is_archived == False)  # noqa: E712
            .group_by(PoolQuestion.topic)
            .all()
        )
        return {
            "total": total,
            "archived": archived,
            "available": total - archived,
            "by_topic": {(topic or ""): count for topic, count in by_topic_rows},
        }

    @staticmethod
    def delete_all(session: Session, include_archived: bool = False) -> int:
        """Remove questions from the pool. Archived ones are kept unless asked."""
        query = session.query(PoolQuestion)
        if not include_archived:
            query = query.filter(PoolQuestion.is_archived == False)  # noqa: E712
        return query.delete(synchronize_session=False)
