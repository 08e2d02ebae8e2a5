"""
Celery tasks module for Strong Link Bot.
Contains answer timeouts and the question pool refill.
"""
from tasks.celery_app import celery_app
from tasks.answer_timeout import fire_answer_timeout, CeleryTimerScheduler
from tasks.question_refill import refill_question_pool

__all__ = [
    "celery_app",
    "fire_answer_timeout",
    "CeleryTimerScheduler",
    "refill_question_pool",
]
