import importlib
from unittest.mock import MagicMock

import config
from tasks import question_refill
from tasks.question_refill import schedule_refill


class TestTimerBackend:
    def test_celery_is_the_default_backend(self, monkeypatch):
        monkeypatch.delenv("TIMER_BACKEND", raising=False)
        try:
            assert importlib.reload(config).config.TIMER_BACKEND == "celery"
        finally:
            importlib.reload(config)


class TestScheduleRefill:
    def test_refill_is_queued_with_interval(self, monkeypatch):
        task = MagicMock()
        monkeypatch.setattr(question_refill, "refill_question_pool", task)
        monkeypatch.setattr(config.config, "QUESTION_REFILL_INTERVAL_SEC", 45)

        assert schedule_refill(100) is True

        task.apply_async.assert_called_once_with(args=[100], countdown=45)

    def test_unreachable_broker_does_not_break_the_game(self, monkeypatch):
        task = MagicMock()
        task.apply_async.side_effect = ConnectionError("broker is down")
        monkeypatch.setattr(question_refill, "refill_question_pool", task)

        assert schedule_refill(100) is False
