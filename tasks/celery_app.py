"""
Celery application configuration.

Answer timeouts run on the "timers" queue so that a slow pool refill never delays
a player's deadline:

    celery -A tasks.celery_app worker -Q timers,questions

Scheduled games additionally need a beat:

    celery -A tasks.celery_app beat
"""
from celery import Celery
import config

TIMERS_QUEUE = "timers"
QUESTIONS_QUEUE = "questions"


def create_celery_app() -> Celery:
    """Create and configure Celery application."""
    celery_app = Celery(
        "strong_link",
        broker=config.config.CELERY_BROKER_URL,
        backend=config.config.CELERY_RESULT_BACKEND,
        include=[
            "tasks.answer_timeout",
            "tasks.question_refill",
            "tasks.scheduled_games",
        ]
    )

    celery_app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_ignore_result=True,
        task_routes={
            "tasks.answer_timeout.fire_answer_timeout": {"queue": TIMERS_QUEUE},
            "tasks.question_refill.refill_question_pool": {"queue": QUESTIONS_QUEUE},
            "tasks.scheduled_games.*": {"queue": QUESTIONS_QUEUE},
        },
        task_default_queue=QUESTIONS_QUEUE,
        # A timeout must fire once; a lost refill is simply rescheduled
        task_acks_late=False,
        task_time_limit=2 * 60,  # 2 minutes
        task_soft_time_limit=90,  # seconds
        worker_prefetch_multiplier=1,
        worker_max_tasks_per_child=200,
        broker_connection_retry_on_startup=True,
    )

    return celery_app


# Create global Celery app instance
celery_app = create_celery_app()
