import threading
from datetime import timedelta

from game.models import utcnow
from game.timers import CancellationToken, ThreadTimerScheduler, TimerRegistry

from conftest import ManualScheduler


class TestTimerRegistry:
    def test_fire_calls_back_and_forgets_timer(self):
        scheduler = ManualScheduler()
        registry = TimerRegistry(scheduler)
        calls = []
        asked_at = utcnow()

        registry.arm(7, asked_at, 30, lambda chat_id, at: calls.append((chat_id, at)))
        assert len(registry) == 1

        scheduler.last.fire()

        assert calls == [(7, asked_at)]
        assert len(registry) == 0

    def test_cancel_prevents_callback(self):
        scheduler = ManualScheduler()
        registry = TimerRegistry(scheduler)
        calls = []
        asked_at = utcnow()
        token = registry.arm(7, asked_at, 30, lambda chat_id, at: calls.append(at))

        assert registry.cancel(7, asked_at) is True
        assert registry.cancel(7, asked_at) is False

        scheduler.last.fire()
        assert calls == []
        assert token.cancelled
        assert scheduler.last.cancelled

    def test_cancel_unknown_or_missing_timestamp(self):
        registry = TimerRegistry(ManualScheduler())

        assert registry.cancel(7, None) is False
        assert registry.cancel(7, utcnow()) is False

    def test_rearming_same_question_replaces_timer(self):
        scheduler = ManualScheduler()
        registry = TimerRegistry(scheduler)
        calls = []
        asked_at = utcnow()

        registry.arm(7, asked_at, 30, lambda chat_id, at: calls.append("first"))
        registry.arm(7, asked_at, 10, lambda chat_id, at: calls.append("second"))
        for handle in scheduler.scheduled:
            handle.fire()

        assert calls == ["second"]
        assert scheduler.scheduled[0].cancelled

    def test_cancel_all_only_touches_one_chat(self):
        scheduler = ManualScheduler()
        registry = TimerRegistry(scheduler)
        now = utcnow()
        registry.arm(1, now, 30, lambda chat_id, at: None)
        registry.arm(2, now, 30, lambda chat_id, at: None)

        assert registry.cancel_all(1) == 1
        assert registry.pending(1) == []
        assert registry.pending(2) == [now]

    def test_next_question_drops_timer_that_ran_elsewhere(self):
        # A worker-side timeout never calls fire(), so its entry stays until the next question
        scheduler = ManualScheduler()
        registry = TimerRegistry(scheduler)
        first = utcnow()
        second = first + timedelta(seconds=31)

        registry.arm(1, first, 30, lambda chat_id, at: None)
        registry.arm(1, second, 30, lambda chat_id, at: None)

        assert registry.pending(1) == [second]
        assert len(registry) == 1
        assert scheduler.scheduled[0].cancelled
        assert not scheduler.scheduled[1].cancelled

    def test_callback_errors_are_contained(self):
        scheduler = ManualScheduler()
        registry = TimerRegistry(scheduler)

        def explode(chat_id, at):
            raise RuntimeError("boom")

        registry.arm(7, utcnow(), 30, explode)
        scheduler.last.fire()

        assert len(registry) == 0


class TestThreadTimerScheduler:
    def test_timer_fires_on_a_thread(self):
        registry = TimerRegistry(ThreadTimerScheduler())
        fired = threading.Event()

        registry.arm(7, utcnow(), 0.01, lambda chat_id, at: fired.set())

        assert fired.wait(timeout=2)

    def test_cancelled_timer_does_not_fire(self):
        registry = TimerRegistry(ThreadTimerScheduler())
        fired = threading.Event()
        asked_at = utcnow()

        registry.arm(7, asked_at, 0.2, lambda chat_id, at: fired.set())
        registry.cancel(7, asked_at)

        assert not fired.wait(timeout=0.4)


def test_cancellation_token():
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled
