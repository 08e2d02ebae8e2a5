"""
Scheduled games - Celery beat opens a lobby in every known chat once a day and
starts the lobbies whose wait window is over.

Run a beat next to the workers when ENABLE_SCHEDULED_GAMES is on:

    celery -A tasks.celery_app beat
"""
from celery.schedules import crontab

from tasks.celery_app import celery_app
from utils.logging import get_logger
import config

logger = get_logger(__name__)


def _scheduler():
    from game.scheduling import GameScheduler
    from tasks.answer_timeout import get_worker_engine
    return GameScheduler(get_worker_engine())


@celery_app.task(name="tasks.scheduled_games.open_scheduled_lobbies")
def open_scheduled_lobbies() -> int:
    """Open today's scheduled lobby in every idle chat. Returns the number opened."""
    scheduler = _scheduler()
    opened = scheduler.open_lobbies(scheduler.store.chat_ids())
    logger.info(f"Scheduled games opened in {len(opened)} chat(s)")
    return len(opened)


@celery_app.task(name="tasks.scheduled_games.start_due_scheduled_games")
def start_due_scheduled_games() -> int:
    """Start the scheduled lobbies whose wait window is over."""
    from tasks.question_refill import schedule_refill

    scheduler = _scheduler()
    started = scheduler.start_due_games(scheduler.store.chat_ids())
    for chat_id in started:
        schedule_refill(chat_id)
    if started:
        logger.info(f"Scheduled games started in chats {started}")
    return len(started)


@celery_app.on_after_configure.connect
def setup_periodic_tasks(sender, **kwargs):
    """Setup periodic tasks."""
    cfg = config.config
    if not cfg.ENABLE_SCHEDULED_GAMES:
        return

    hour, minute = cfg.SCHEDULED_GAME_TIME_UTC.split(":")
    sender.add_periodic_task(
        crontab(hour=int(hour), minute=int(minute)),
        open_scheduled_lobbies.s(),
        name="Open scheduled games daily"
    )
    sender.add_periodic_task(
        cfg.SCHEDULED_GAME_CHECK_INTERVAL_SEC,
        start_due_scheduled_games.s(),
        name="Start due scheduled games"
    )
    logger.info(
        f"Scheduled games enabled: daily at {cfg.SCHEDULED_GAME_TIME_UTC} UTC, "
        f"{cfg.SCHEDULED_GAME_WAIT_MINUTES} min wait"
    )
