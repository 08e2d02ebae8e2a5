"""
Answer timeouts running on Celery workers.

The worker does not share memory with the process that asked the question. It
reloads the session and relies on the engine's asked_at check, so a timeout that
outlives its question does nothing.
"""
from datetime import datetime
from typing import Callable, Optional

from tasks.celery_app import celery_app
from utils.logging import get_logger

logger = get_logger(__name__)

_engine = None


def get_worker_engine():
    """Engine shared by all tasks of a worker process."""
    global _engine
    if _engine is None:
        from game.factory import build_game_engine
        _engine = build_game_engine(timer_backend="celery")
    return _engine


@celery_app.task(name="tasks.answer_timeout.fire_answer_timeout")
def fire_answer_timeout(chat_id: int, asked_at_iso: str) -> bool:
    """
    Apply an answer timeout.

    Args:
        chat_id: Chat of the session
        asked_at_iso: ISO timestamp of the question the timer was armed for

    Returns:
        True if the timeout was applied, False for a stale timer
    """
    asked_at = datetime.fromisoformat(asked_at_iso)
    logger.info(f"Answer timeout fired for chat {chat_id}, question asked at {asked_at_iso}")
    try:
        return get_worker_engine().on_timeout(chat_id, asked_at)
    except Exception as e:
        logger.error(f"Error handling answer timeout for chat {chat_id}: {e}", exc_info=True)
        raise


class CeleryTaskHandle:
    """Revokes a scheduled timeout task."""

    def __init__(self, task_id: str):
        self.task_id = task_id

    def cancel(self) -> None:
        celery_app.control.revoke(self.task_id)
        logger.debug(f"Revoked answer timeout task {self.task_id}")


class CeleryTimerScheduler:
    """
    Schedules answer timeouts as delayed Celery tasks.

    The in-process `fire` callback is not used: the task calls the engine's
    timeout handler on the worker instead.
    """

    def schedule(
        self,
        delay: float,
        chat_id: int,
        asked_at: datetime,
        fire: Optional[Callable[[], None]] = None
    ) -> CeleryTaskHandle:
        result = fire_answer_timeout.apply_async(
            args=[chat_id, asked_at.isoformat()],
            countdown=max(0.0, delay),
        )
        logger.debug(f"Scheduled answer timeout task {result.id} for chat {chat_id} in {delay:.1f}s")
        return CeleryTaskHandle(result.id)
