"""
Answer timers - one cancellable delayed callback per in-flight question.

Timers are keyed by (chat_id, question asked_at). The asked_at timestamp is the
same value stored in GameSession.current_question_asked_at, so a timer that fires
late can always tell whether its question is still the live one.
"""
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from utils.logging import get_logger

logger = get_logger(__name__)

TimerKey = Tuple[int, datetime]
TimeoutCallback = Callable[[int, datetime], None]


class CancellationToken:
    """Cooperative cancellation flag shared by a timer and its registry entry."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ScheduledHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerScheduler(Protocol):
    """Runs `fire` after `delay` seconds. `fire` takes no arguments."""

    def schedule(
        self,
        delay: float,
        chat_id: int,
        asked_at: datetime,
        fire: Callable[[], None]
    ) -> ScheduledHandle:
        ...


class ThreadTimerScheduler:
    """In-process scheduler backed by daemon threading.Timer objects."""

    def schedule(
        self,
        delay: float,
        chat_id: int,
        asked_at: datetime,
        fire: Callable[[], None]
    ) -> threading.Timer:
        timer = threading.Timer(max(0.0, delay), fire)
        timer.daemon = True
        timer.name = f"answer-timeout-{chat_id}"
        timer.start()
        return timer


class _ArmedTimer:
    __slots__ = ("token", "handle")

    def __init__(self, token: CancellationToken, handle: Optional[ScheduledHandle] = None):
        self.token = token
        self.handle = handle


class TimerRegistry:
    """
    Process-wide registry of armed answer timers.

    Cancellation removes the entry and disposes of the scheduled task in one step
    under the registry lock; a timer that was already running sees its token
    cancelled and does not call back.
    """

    def __init__(self, scheduler: Optional[TimerScheduler] = None):
        self.scheduler = scheduler if scheduler is not None else ThreadTimerScheduler()
        self._timers: Dict[TimerKey, _ArmedTimer] = {}
        self._lock = threading.Lock()

    def arm(
        self,
        chat_id: int,
        asked_at: datetime,
        delay: float,
        callback: TimeoutCallback
    ) -> CancellationToken:
        """
        Arm a timer for a question.

        A chat has at most one question in flight, so every earlier timer of the
        chat is dropped. This also clears entries whose timeout already ran in
        another process (Celery workers never call `fire`).
        """
        key = (chat_id, asked_at)
        dropped = self.cancel_all(chat_id)
        if dropped:
            logger.debug(f"Dropped {dropped} earlier timer(s) of chat {chat_id}")

        token = CancellationToken()
        armed = _ArmedTimer(token)

        def fire() -> None:
            with self._lock:
                if self._timers.get(key) is armed:
                    del self._timers[key]
            if token.cancelled:
                logger.debug(f"Timer for chat {chat_id} at {asked_at.isoformat()} was cancelled")
                return
            try:
                callback(chat_id, asked_at)
            except Exception as e:
                logger.error(f"Answer timeout callback failed for chat {chat_id}: {e}", exc_info=True)

        with self._lock:
            self._timers[key] = armed
        armed.handle = self.scheduler.schedule(delay, chat_id, asked_at, fire)

        logger.debug(f"Armed answer timer for chat {chat_id}: {delay:.1f}s")
        return token

    def cancel(self, chat_id: int, asked_at: Optional[datetime]) -> bool:
        """Cancel the timer for a question. Returns True when one was armed."""
        if asked_at is None:
            return False
        with self._lock:
            armed = self._timers.pop((chat_id, asked_at), None)
        if armed is None:
            return False
        self._dispose(armed)
        return True

    def cancel_all(self, chat_id: int) -> int:
        """Cancel every timer of a chat (used when a game ends)."""
        with self._lock:
            keys = [key for key in self._timers if key[0] == chat_id]
            armed_timers = [self._timers.pop(key) for key in keys]
        for armed in armed_timers:
            self._dispose(armed)
        return len(armed_timers)

    def pending(self, chat_id: int) -> List[datetime]:
        with self._lock:
            return sorted(asked_at for cid, asked_at in self._timers if cid == chat_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)

    @staticmethod
    def _dispose(armed: _ArmedTimer) -> None:
        armed.token.cancel()
        if armed.handle is not None:
            try:
                armed.handle.cancel()
            except Exception as e:
                logger.warning(f"Could not dispose of scheduled timer: {e}")
