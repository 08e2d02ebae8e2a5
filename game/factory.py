"""
Wiring of the game engine with its production collaborators.
"""
from typing import Optional

from game.engine import GameEngine
from game.interfaces import Messenger, SessionStore
from game.timers import ThreadTimerScheduler, TimerRegistry, TimerScheduler
from game.validation import create_answer_validator
from utils.errors import ConfigurationError
from utils.logging import get_logger
import config

logger = get_logger(__name__)


def create_timer_scheduler(backend: Optional[str] = None) -> TimerScheduler:
    """Scheduler for answer timeouts selected by TIMER_BACKEND."""
    backend = backend or config.config.TIMER_BACKEND
    if backend == "thread":
        return ThreadTimerScheduler()
    if backend == "celery":
        from tasks.answer_timeout import CeleryTimerScheduler
        return CeleryTimerScheduler()
    raise ConfigurationError(f"Unknown TIMER_BACKEND: {backend}")


def build_game_engine(
    messenger: Optional[Messenger] = None,
    store: Optional[SessionStore] = None,
    timer_backend: Optional[str] = None
) -> GameEngine:
    """
    Build an engine backed by the database, Telegram and the configured timers.

    Args:
        messenger: Chat transport (TelegramMessenger by default)
        store: Session store (SqlSessionStore by default)
        timer_backend: "thread" or "celery" (TIMER_BACKEND by default)
    """
    from bot.messenger import TelegramMessenger
    from database.stores import SqlQuestionPool, SqlResultArchive, SqlSessionStore

    engine = GameEngine(
        messenger=messenger if messenger is not None else TelegramMessenger(),
        store=store if store is not None else SqlSessionStore(),
        validator=create_answer_validator(),
        timers=TimerRegistry(create_timer_scheduler(timer_backend)),
        result_archive=SqlResultArchive(),
        question_archive=SqlQuestionPool(),
    )
    logger.info(
        f"Game engine ready: timers={timer_backend or config.config.TIMER_BACKEND}, "
        f"validator={type(engine.validator).__name__}"
    )
    return engine
