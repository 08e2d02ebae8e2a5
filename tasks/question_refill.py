"""
Question refill - keeps the queues of upcoming tours stocked while a game runs.
"""
from tasks.celery_app import celery_app
from utils.logging import get_logger
import config

logger = get_logger(__name__)


@celery_app.task(name="tasks.question_refill.refill_question_pool")
def refill_question_pool(chat_id: int) -> int:
    """
    Top up upcoming tours of a running game, then reschedule while it keeps running.

    Args:
        chat_id: Chat of the session

    Returns:
        Number of questions added
    """
    from database.stores import SqlSessionStore
    from questions.manager import QuestionManager

    store = SqlSessionStore()
    manager = QuestionManager(store)

    try:
        added = manager.refill_upcoming_tours(chat_id, config.config.QUESTION_REFILL_PER_TOUR or None)
    except Exception as e:
        logger.error(f"Error refilling question pool for chat {chat_id}: {e}", exc_info=True)
        added = 0

    session = store.load(chat_id)
    if session is not None and not session.is_finished and session.started_at is not None:
        schedule_refill(chat_id)
    else:
        logger.info(f"Game in chat {chat_id} is over, question refill stopped")

    return added


def schedule_refill(chat_id: int) -> bool:
    """
    Queue the next refill of a chat's upcoming tours.

    Returns:
        False if the broker could not be reached; the game goes on with the questions it has
    """
    try:
        refill_question_pool.apply_async(
            args=[chat_id],
            countdown=config.config.QUESTION_REFILL_INTERVAL_SEC,
        )
    except Exception as e:
        logger.error(f"Could not schedule question refill for chat {chat_id}: {e}", exc_info=True)
        return False
    return True
