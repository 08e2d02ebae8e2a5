"""
Question manager - prepares a session's question pool and tops it up during play.
"""
from collections import deque
from typing import Optional

from game.interfaces import SessionStore
from game.models import GameSession, GameStatus
from game.validation import normalize_answer
from questions.providers import PoolQuestionProvider, questions_per_tour
from utils.errors import GameError, QuestionPoolError
from utils.logging import get_logger
import config

logger = get_logger(__name__)

PREPARABLE_STATUSES = (
    GameStatus.NOT_CONFIGURED,
    GameStatus.AWAITING_PLAYERS,
    GameStatus.READY_TO_START,
)


class QuestionManager:
    """Manages question selection for sessions."""

    def __init__(self, store: SessionStore, provider: Optional[PoolQuestionProvider] = None):
        """Initialize question manager."""
        self.config = config.config
        self.store = store
        self.provider = provider if provider is not None else PoolQuestionProvider()

    def prepare_pool(self, session: GameSession) -> int:
        """
        Fill the session's per-tour question queues.

        The session goes through PREPARING_QUESTION_POOL to READY_TO_START. If nothing
        could be prepared it returns to the status it had before.

        Returns:
            Number of questions prepared

        Raises:
            GameError: The game is already running or over
            QuestionPoolError: The pool could not be prepared
        """
        if session.status not in PREPARABLE_STATUSES:
            raise GameError(
                f"Cannot prepare questions in status {session.status.value}",
                {"chat_id": session.chat_id},
            )

        previous_status = session.status
        session.status = GameStatus.PREPARING_QUESTION_POOL
        self.store.save(session)

        logger.info(
            f"Preparing question pool for chat {session.chat_id}: {session.tours} tours, "
            f"{session.rounds_per_tour} rounds, {len(session.players)} players"
        )

        try:
            prepared = self.provider.prepare(
                session.topics,
                session.tours,
                session.rounds_per_tour,
                session.players,
                session.language,
            )
            total = sum(len(bucket) for bucket in prepared.values())
            if total == 0:
                raise QuestionPoolError("No questions available", {"chat_id": session.chat_id})
        except Exception as e:
            logger.error(f"Failed to prepare question pool for chat {session.chat_id}: {e}", exc_info=True)
            session.status = previous_status
            self.store.save(session)
            if isinstance(e, QuestionPoolError):
                raise
            raise QuestionPoolError(str(e), {"chat_id": session.chat_id}) from e

        session.questions_by_tour = {tour: deque(bucket) for tour, bucket in prepared.items()}
        session.status = GameStatus.READY_TO_START
        self.store.save(session)

        logger.info(f"Question pool ready for chat {session.chat_id}: {total} questions")
        return total

    def refill_upcoming_tours(self, chat_id: int, per_tour: Optional[int] = None) -> int:
        """
        Top up the queues of tours that have not started yet.

        Args:
            chat_id: Chat of the running session
            per_tour: Target queue size; by default one question per active player per round

        Returns:
            Number of questions added
        """
        session = self.store.load(chat_id)
        if session is None or not (session.is_playing or session.status == GameStatus.PAUSED):
            logger.debug(f"No running game in chat {chat_id}, skipping refill")
            return 0

        target = per_tour or questions_per_tour(len(session.active_players), session.rounds_per_tour)
        seen = {normalize_answer(q.text) for q in session.asked_questions}
        for bucket in session.questions_by_tour.values():
            seen.update(normalize_answer(q.text) for q in bucket)

        additions = {}
        for tour in range(session.current_tour + 1, session.tours + 1):
            missing = target - len(session.questions_by_tour.get(tour, ()))
            if missing <= 0:
                continue
            picked = self.provider.pick_for_tour(session.topic_for_tour(tour), missing, seen)
            if picked:
                additions[tour] = picked

        if not additions:
            return 0

        # The game may have moved on while the pool was queried
        fresh = self.store.load(chat_id)
        if fresh is None or fresh.id != session.id or fresh.is_finished:
            logger.info(f"Game in chat {chat_id} changed during refill, discarding new questions")
            return 0

        added = 0
        for tour, picked in additions.items():
            if tour <= fresh.current_tour:
                continue
            fresh.questions_by_tour.setdefault(tour, deque()).extend(picked)
            added += len(picked)
        self.store.save(fresh)

        logger.info(f"Added {added} questions to upcoming tours in chat {chat_id}")
        return added
