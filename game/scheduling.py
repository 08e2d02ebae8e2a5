"""
Scheduled games - a lobby that opens by itself every day and starts the game
once the wait window is over.

The lobby is an ordinary AWAITING_PLAYERS session with scheduled_start_at set;
players join it with /join as usual.
"""
from datetime import datetime, time, timedelta
from typing import Callable, List, Optional, Tuple

from game.engine import GameEngine
from game.lobby import create_session
from game.models import GameSession, GameStatus, utcnow
from utils.errors import ConfigurationError, QuestionPoolError
from utils.logging import get_logger
import config

logger = get_logger(__name__)

# Lobby statuses a scheduled game can still start from
STARTABLE_STATUSES = (GameStatus.AWAITING_PLAYERS, GameStatus.READY_TO_START)


def parse_time_of_day(value: str) -> time:
    """Parse "HH:MM" (UTC)."""
    try:
        hour, minute = (int(part) for part in value.strip().split(":"))
        return time(hour, minute)
    except ValueError:
        raise ConfigurationError(f"Invalid time of day: {value!r}", {"expected": "HH:MM"})


def next_scheduled_time(now: datetime, start_time: time) -> datetime:
    """Today's start time if it is still ahead, otherwise tomorrow's."""
    today = now.replace(hour=start_time.hour, minute=start_time.minute, second=0, microsecond=0)
    return today if now < today else today + timedelta(days=1)


class GameScheduler:
    """Opens the daily lobbies and auto-starts them when their wait window ends."""

    def __init__(
        self,
        engine: GameEngine,
        question_manager=None,
        clock: Optional[Callable[[], datetime]] = None,
        enabled: Optional[bool] = None,
        start_time: Optional[str] = None,
        wait_minutes: Optional[int] = None
    ):
        cfg = config.config
        self.engine = engine
        self.store = engine.store
        if question_manager is None:
            from questions.manager import QuestionManager
            question_manager = QuestionManager(engine.store)
        self.question_manager = question_manager
        self._clock = clock if clock is not None else utcnow
        self.enabled = cfg.ENABLE_SCHEDULED_GAMES if enabled is None else enabled
        self.start_time = parse_time_of_day(start_time or cfg.SCHEDULED_GAME_TIME_UTC)
        self.wait_minutes = cfg.SCHEDULED_GAME_WAIT_MINUTES if wait_minutes is None else wait_minutes

    def open_lobbies(self, chat_ids: List[int]) -> List[int]:
        """Open a scheduled lobby in every idle chat. Returns the chats that got one."""
        opened = []
        for chat_id in chat_ids:
            try:
                if self.open_lobby(chat_id):
                    opened.append(chat_id)
            except Exception as e:
                logger.error(f"Failed to open scheduled game in chat {chat_id}: {e}", exc_info=True)
        return opened

    def open_lobby(self, chat_id: int) -> bool:
        """Open a scheduled lobby unless the chat already has a game set up or running."""
        with self.engine.chat_lock(chat_id):
            previous = self.store.load(chat_id)
            if previous is not None and not (
                previous.status == GameStatus.NOT_CONFIGURED or previous.is_finished
            ):
                logger.info(f"Chat {chat_id} is busy ({previous.status.value}), no scheduled game today")
                return False

            session = create_session(chat_id, language=previous.language if previous else None)
            session.scheduled_start_at = self._clock() + timedelta(minutes=self.wait_minutes)
            self.store.save(session)

            logger.info(
                f"Scheduled game {session.id} opened in chat {chat_id}, "
                f"auto-start at {session.scheduled_start_at.isoformat()}"
            )
            self._send(session, "schedule.lobby_open", minutes=self.wait_minutes)
            return True

    def start_due_games(self, chat_ids: List[int]) -> List[int]:
        """Start every scheduled game whose wait window is over. Returns the started chats."""
        started = []
        for chat_id in chat_ids:
            try:
                if self.start_if_due(chat_id):
                    started.append(chat_id)
            except Exception as e:
                logger.error(f"Error auto-starting scheduled game in chat {chat_id}: {e}", exc_info=True)
        return started

    def start_if_due(self, chat_id: int) -> bool:
        """
        Auto-start a scheduled game once its wait window is over.

        A lobby nobody joined is cancelled. The question pool is prepared first
        unless an admin already did it.

        Returns:
            True if the game started
        """
        with self.engine.chat_lock(chat_id):
            session = self.store.load(chat_id)
            if (
                session is None
                or session.scheduled_start_at is None
                or session.status not in STARTABLE_STATUSES
                or self._clock() < session.scheduled_start_at
            ):
                return False

            session.scheduled_start_at = None

            if not session.active_players:
                logger.info(f"No players joined scheduled game {session.id} in chat {chat_id}, cancelling")
                self._cancel(session)
                self._send(session, "schedule.no_players")
                return False

            logger.info(
                f"Auto-starting scheduled game {session.id} in chat {chat_id} "
                f"with {len(session.active_players)} player(s)"
            )
            self._send(session, "schedule.auto_start", players=len(session.active_players))

            if session.status != GameStatus.READY_TO_START:
                try:
                    self.question_manager.prepare_pool(session)
                except QuestionPoolError as e:
                    logger.error(f"Scheduled game {session.id}: question pool failed: {e.message}")
                    self._cancel(session)
                    self._send(session, "bot.pool_failure", reason=e.message)
                    return False

            return self.engine.start_game(session)

    def status(self, chat_id: int) -> Tuple[str, dict]:
        """Text key and arguments describing the schedule for a chat."""
        if not self.enabled:
            return "schedule.disabled", {}

        now = self._clock()
        session = self.store.load(chat_id)
        if (
            session is not None
            and session.scheduled_start_at is not None
            and session.status in STARTABLE_STATUSES
        ):
            remaining = max(0, int((session.scheduled_start_at - now).total_seconds() // 60))
            return "schedule.waiting", {"players": len(session.players), "minutes": remaining}

        next_start = next_scheduled_time(now, self.start_time)
        until = next_start - now
        hours, seconds = divmod(int(until.total_seconds()), 3600)
        return "schedule.info", {
            "time": self.start_time.strftime("%H:%M"),
            "wait": self.wait_minutes,
            "hours": hours,
            "minutes": seconds // 60,
            "next": next_start.strftime("%Y-%m-%d %H:%M"),
        }

    def _cancel(self, session: GameSession) -> None:
        session.status = GameStatus.CANCELLED
        session.completed_at = self._clock()
        self.store.save(session)

    def _send(self, session: GameSession, key: str, **kwargs) -> None:
        text = self.engine.texts.get(session.language, key, **kwargs)
        try:
            self.engine.messenger.send(session.chat_id, text)
        except Exception as e:
            logger.error(f"Failed to send message to chat {session.chat_id}: {e}", exc_info=True)
