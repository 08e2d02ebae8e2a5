"""
Game engine - tournament lifecycle, turn rotation, scoring, eliminations
and sudden death.

Every transition is persisted through the session store before anything is sent
to the chat, so a session reloaded by a timer thread or the next command is
always current. Events of one chat are serialized with chat_lock(); answer
timeouts additionally re-validate the question timestamp they were armed for,
which is what protects them across processes.
"""
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Deque, Dict, List, Optional
import threading
import time

from bot.texts import Texts, texts as default_texts
from game.elimination import EliminationLogic
from game.interfaces import Messenger, QuestionPoolArchive, ResultArchive, SessionStore
from game.models import (
    GameResult,
    GameSession,
    GameStatus,
    PauseSnapshot,
    Player,
    PlayerStatus,
    Question,
    SuddenDeathState,
    utcnow,
)
from game.standings import build_game_result, rank_players
from game.timers import TimerRegistry
from game.validation import AnswerValidator, ExactAnswerValidator, answers_match
from utils.logging import get_logger
import config

logger = get_logger(__name__)


class GameEngine:
    """Main game engine class."""

    def __init__(
        self,
        messenger: Messenger,
        store: SessionStore,
        validator: Optional[AnswerValidator] = None,
        timers: Optional[TimerRegistry] = None,
        result_archive: Optional[ResultArchive] = None,
        question_archive: Optional[QuestionPoolArchive] = None,
        texts: Optional[Texts] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        tour_pause_seconds: Optional[int] = None
    ):
        """
        Initialize game engine.

        Args:
            messenger: Chat transport
            store: Session store, the source of truth between events
            validator: Answer judge (exact match by default)
            timers: Registry for answer timeouts
            result_archive: Receives the GameResult once per finished game
            question_archive: Receives the asked-questions ledger once per finished game
            texts: Message catalog
            clock: Returns the current UTC time
            sleep: Blocking sleep used for the pause between tours
            tour_pause_seconds: Pause between tours, TOUR_PAUSE_SEC by default
        """
        self.config = config.config
        self.messenger = messenger
        self.store = store
        self.validator = validator if validator is not None else ExactAnswerValidator()
        self.timers = timers if timers is not None else TimerRegistry()
        self.result_archive = result_archive
        self.question_archive = question_archive
        self.texts = texts if texts is not None else default_texts
        self.elimination_logic = EliminationLogic()
        self._clock = clock if clock is not None else utcnow
        self._sleep = sleep if sleep is not None else time.sleep
        self.tour_pause_seconds = (
            self.config.TOUR_PAUSE_SEC if tour_pause_seconds is None else tour_pause_seconds
        )
        self._chat_locks: Dict[int, threading.RLock] = {}
        self._chat_locks_guard = threading.Lock()

    def chat_lock(self, chat_id: int) -> threading.RLock:
        """
        Lock serializing all events of one chat inside this process.

        Callers hold it from loading a session until the engine call returns.
        """
        with self._chat_locks_guard:
            lock = self._chat_locks.get(chat_id)
            if lock is None:
                lock = self._chat_locks[chat_id] = threading.RLock()
            return lock

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_game(self, session: GameSession) -> bool:
        """
        Start a configured session and ask the first question.

        Returns:
            True if the game started; preconditions that fail are reported to the chat
            and leave the session untouched.
        """
        if session.is_playing or session.status == GameStatus.PAUSED:
            self._send(session, "bot.game_already_running")
            return False

        if session.is_finished:
            self._send(session, "bot.game_finished")
            return False

        if not session.active_players:
            self._send(session, "game.not_enough_players")
            return False

        if session.total_questions_left() == 0:
            self._send(session, "game.no_question_pool")
            return False

        session.status = GameStatus.IN_PROGRESS
        session.started_at = self._clock()
        session.current_tour = 1
        session.current_round = 0
        session.clear_current_question()
        session.sudden_death = None
        session.pause = None
        session.scheduled_start_at = None
        for player in session.players:
            player.sudden_death_score = 0
            player.tiebreak_points = 0
        session.turn_queue = deque(p.id for p in session.active_players)
        self._save(session)

        logger.info(
            f"Game {session.id} started in chat {session.chat_id}: "
            f"{len(session.active_players)} players, {session.tours} tours x {session.rounds_per_tour} rounds"
        )
        self._send(session, "game.start", tour=1, topic=session.topic_for_tour(1))
        self.advance(session)
        return True

    def stop_game(self, session: GameSession) -> Optional[GameResult]:
        """Cancel a game. Returns the archived result, or None if it had already ended."""
        if session.is_finished:
            logger.info(f"Game {session.id} is already {session.status.value}, nothing to stop")
            return None

        result = self._finish(session, GameStatus.CANCELLED)
        self._send(session, "game.stopped")
        return result

    def pause_game(self, session: GameSession) -> bool:
        """Pause a running game, remembering how much answer time is left."""
        if not session.is_playing:
            self._send(session, "game.cannot_pause")
            return False

        remaining = None
        if session.has_question_in_flight and session.current_question_asked_at:
            elapsed = (self._clock() - session.current_question_asked_at).total_seconds()
            remaining = max(0.0, session.answer_timeout_seconds - elapsed)
            self.timers.cancel(session.chat_id, session.current_question_asked_at)

        session.pause = PauseSnapshot(previous_status=session.status, remaining_seconds=remaining)
        session.status = GameStatus.PAUSED
        self._save(session)

        logger.info(f"Game {session.id} paused, remaining answer time: {remaining}")
        self._send(session, "game.paused")
        return True

    def resume_game(self, session: GameSession) -> bool:
        """Resume a paused game, re-arming the answer timer for the time that was left."""
        if session.status != GameStatus.PAUSED or session.pause is None:
            self._send(session, "game.not_paused")
            return False

        snapshot = session.pause
        session.status = snapshot.previous_status
        session.pause = None

        if not session.has_question_in_flight:
            self._save(session)
            self._send(session, "game.resumed")
            self.advance(session)
            return True

        timeout = session.answer_timeout_seconds
        remaining = timeout if snapshot.remaining_seconds is None else snapshot.remaining_seconds
        # Back-date the question so that asked_at + timeout is still the deadline
        asked_at = self._clock() - timedelta(seconds=timeout - remaining)
        session.current_question_asked_at = asked_at
        self._save(session)

        logger.info(f"Game {session.id} resumed, answer timer re-armed for {remaining:.1f}s")
        self._send(session, "game.resumed")
        self.timers.arm(session.chat_id, asked_at, remaining, self.on_timeout)
        return True

    # ------------------------------------------------------------------
    # Turn/round driver
    # ------------------------------------------------------------------

    def advance(self, session: GameSession) -> None:
        """
        Ask the next question, or close the round/tour when it is exhausted.

        Does nothing while a question is in flight, so a retried call is harmless.
        """
        if not session.is_playing:
            logger.debug(f"advance() ignored for game {session.id} in status {session.status.value}")
            return

        if session.has_question_in_flight:
            logger.debug(f"advance() ignored for game {session.id}: question in flight")
            return

        sudden_death = session.status == GameStatus.SUDDEN_DEATH

        if sudden_death and not session.turn_queue:
            # Rotation complete: settle the tie if it has been broken
            participants = self._sudden_death_participants(session)
            if not self.elimination_logic.has_sudden_death_conflict(participants):
                self._resolve_sudden_death(session, participants)
                return

        if sudden_death:
            questions = self._sudden_death_questions(session)
            if questions is None:
                logger.warning(
                    f"Game {session.id}: question pool exhausted during sudden death, finishing game"
                )
                self._complete_game(session)
                return
        else:
            questions = session.questions_by_tour.get(session.current_tour)
            if not questions:
                self._complete_tour(session)
                return

        if not session.turn_queue:
            if sudden_death:
                session.turn_queue.extend(p.id for p in self._sudden_death_participants(session))
            else:
                session.turn_queue.extend(p.id for p in session.active_players)
            session.current_round += 1

        if not sudden_death and session.current_round >= session.rounds_per_tour:
            self._complete_tour(session)
            return

        if not session.turn_queue:
            # Nobody left to rotate through
            if sudden_death:
                self._resolve_sudden_death(session, self._sudden_death_participants(session))
            else:
                self._complete_tour(session)
            return

        player_id = session.turn_queue.popleft()
        player = session.find_player(player_id)
        if player is None or not player.is_active:
            logger.warning(f"Game {session.id}: skipping player {player_id} that is not active")
            self._save(session)
            self.advance(session)
            return

        self._ask(session, player, questions.popleft())

    def _ask(self, session: GameSession, player: Player, question: Question) -> None:
        asked_at = self._clock()
        session.current_player_id = player.id
        session.current_question = question
        session.current_question_asked_at = asked_at
        session.asked_questions.append(question)
        self._save(session)

        if session.status == GameStatus.SUDDEN_DEATH:
            self._send(
                session,
                "game.sudden_death_round",
                player=player.display_name,
                question=question.text,
                timeout=session.answer_timeout_seconds,
            )
        else:
            self._send(
                session,
                "game.round",
                round=session.current_round + 1,
                rounds=session.rounds_per_tour,
                player=player.display_name,
                question=question.text,
                timeout=session.answer_timeout_seconds,
            )

        self.timers.arm(session.chat_id, asked_at, session.answer_timeout_seconds, self.on_timeout)

    # ------------------------------------------------------------------
    # Answers and timeouts
    # ------------------------------------------------------------------

    def submit_answer(self, session: GameSession, player_id: int, text: str) -> bool:
        """
        Judge a reply from a player.

        Returns:
            True if the reply was taken as the answer to the current question.
        """
        if not session.is_playing or not session.has_question_in_flight:
            return False

        if player_id != session.current_player_id:
            if session.is_player_active(player_id):
                self._send(session, "game.answer_ignored")
            return False

        self.timers.cancel(session.chat_id, session.current_question_asked_at)

        question = session.current_question
        player = session.find_player(player_id)
        if player is None:
            logger.warning(f"Game {session.id}: answering player {player_id} not found")
            session.clear_current_question()
            self._save(session)
            self.advance(session)
            return False

        is_correct = self._judge(session, question, text)
        self._record_answer(session, player, is_correct)
        logger.info(
            f"Game {session.id}: player {player.id} answered {text!r} "
            f"({'correct' if is_correct else 'incorrect'})"
        )

        if is_correct:
            self._send(session, "game.correct")
        else:
            self._send(session, "game.incorrect", answer=question.answer)

        session.clear_current_question()
        self._save(session)
        # In sudden death advance() checks for a resolution as soon as the rotation is complete
        self.advance(session)
        return True

    def on_timeout(self, chat_id: int, asked_at: datetime) -> bool:
        """
        Handle an expired answer timer.

        The session is reloaded from the store and only touched if the timed-out
        question is still the current one.

        Returns:
            True if the timeout was applied, False for a stale timer.
        """
        with self.chat_lock(chat_id):
            return self._apply_timeout(chat_id, asked_at)

    def _apply_timeout(self, chat_id: int, asked_at: datetime) -> bool:
        session = self.store.load(chat_id)
        if session is None:
            logger.debug(f"Timeout for chat {chat_id}: no session")
            return False

        if not session.is_playing or session.current_question_asked_at != asked_at:
            logger.debug(
                f"Stale timeout for chat {chat_id} at {asked_at.isoformat()}, "
                f"status={session.status.value}"
            )
            return False

        question = session.current_question
        player = session.find_player(session.current_player_id)
        if player is not None:
            player.incorrect_answers += 1
            logger.info(f"Game {session.id}: player {player.id} ran out of time")
            self._send(
                session,
                "game.timeout",
                player=player.display_name,
                answer=question.answer,
            )

        session.clear_current_question()
        self._save(session)
        self.advance(session)
        return True

    def _judge(self, session: GameSession, question: Question, text: str) -> bool:
        try:
            return self.validator.validate(text, question.answer, question.text, session.language)
        except Exception as e:
            logger.error(f"Answer validator failed, falling back to exact match: {e}", exc_info=True)
            return answers_match(text, question.answer)

    @staticmethod
    def _record_answer(session: GameSession, player: Player, is_correct: bool) -> None:
        if not is_correct:
            player.incorrect_answers += 1
            return
        player.correct_answers += 1
        if session.status == GameStatus.SUDDEN_DEATH:
            player.sudden_death_score += 1
        else:
            player.score += 1

    # ------------------------------------------------------------------
    # Tours, eliminations and sudden death
    # ------------------------------------------------------------------

    def _complete_tour(self, session: GameSession) -> None:
        tour = session.current_tour
        logger.info(f"Game {session.id}: tour {tour} complete")
        self._send_text(session, self.standings_text(session, header_key="game.tour_summary", tour=tour))

        session.turn_queue.clear()
        session.current_round = 0
        session.clear_current_question()

        decision = self.elimination_logic.decide_tour_cut(session.active_players)
        logger.info(f"Game {session.id}: tour {tour} decision {decision!r}")

        if decision.needs_sudden_death:
            self._start_sudden_death(session, decision.sudden_death)
            return

        self._eliminate(session, decision.eliminated)

        tail = self.elimination_logic.find_tail_tie(session.active_players)
        if tail:
            self._start_sudden_death(session, tail)
            return

        self._next_tour(session)

    def _next_tour(self, session: GameSession) -> None:
        session.current_tour += 1
        active = session.active_players

        if session.current_tour > session.tours or len(active) <= 1:
            self._complete_game(session)
            return

        topic = session.topic_for_tour(session.current_tour)
        for player in session.players:
            player.tiebreak_points = 0
        session.current_round = 0
        session.turn_queue = deque(p.id for p in active)
        self._save(session)

        self._send(session, "game.tour_complete", tour=session.current_tour - 1, topic=topic)

        if self.tour_pause_seconds > 0:
            self._send(session, "game.tour_pause", seconds=self.tour_pause_seconds)
            self._sleep(self.tour_pause_seconds)
            fresh = self.store.load(session.chat_id)
            if (
                fresh is None
                or fresh.id != session.id
                or not fresh.is_playing
                or fresh.current_tour != session.current_tour
            ):
                logger.info(f"Game {session.id} changed during the pause between tours, not resuming")
                return
            session = fresh

        self.advance(session)

    def _start_sudden_death(self, session: GameSession, participant_ids: List[int]) -> None:
        session.status = GameStatus.SUDDEN_DEATH
        session.sudden_death = SuddenDeathState(participants=list(participant_ids))
        session.current_round = 0
        participants = self._sudden_death_participants(session)
        for player in participants:
            player.sudden_death_score = 0
        session.turn_queue = deque(p.id for p in participants)
        self._save(session)

        logger.info(f"Game {session.id}: sudden death between {participant_ids}")
        self._send(
            session,
            "game.sudden_death",
            players=", ".join(p.display_name for p in participants),
        )
        self.advance(session)

    def _resolve_sudden_death(self, session: GameSession, participants: List[Player]) -> None:
        losers = self.elimination_logic.sudden_death_losers(participants)
        logger.info(
            f"Game {session.id}: sudden death resolved "
            f"{[(p.id, p.sudden_death_score) for p in participants]}, eliminating {losers}"
        )
        self._send(session, "game.sudden_death_resolved")

        for player in participants:
            if player.id not in losers:
                player.tiebreak_points += player.sudden_death_score
            player.sudden_death_score = 0

        session.sudden_death = None
        session.status = GameStatus.IN_PROGRESS
        session.turn_queue.clear()
        session.current_round = 0

        self._eliminate(session, losers)

        active = session.active_players
        if len(active) <= self.elimination_logic.TAIL_SIZE:
            tail = self.elimination_logic.find_tail_tie(active)
            if tail:
                self._start_sudden_death(session, tail)
                return

        self._next_tour(session)

    def _sudden_death_participants(self, session: GameSession) -> List[Player]:
        if session.sudden_death is None:
            return []
        participants = []
        for player_id in session.sudden_death.participants:
            player = session.find_player(player_id)
            if player is not None and player.is_active:
                participants.append(player)
        return participants

    @staticmethod
    def _sudden_death_questions(session: GameSession) -> Optional[Deque[Question]]:
        """Current tour's queue, then later tours, then earlier leftovers."""
        current = session.current_tour
        order = sorted(
            session.questions_by_tour,
            key=lambda tour: (tour != current, tour < current, tour),
        )
        for tour in order:
            if session.questions_by_tour[tour]:
                return session.questions_by_tour[tour]
        return None

    def _eliminate(self, session: GameSession, player_ids: List[int]) -> None:
        for player_id in player_ids:
            player = session.find_player(player_id)
            if player is None or not player.is_active:
                continue
            player.status = PlayerStatus.ELIMINATED
            if player_id in session.turn_queue:
                session.turn_queue.remove(player_id)
            logger.info(f"Game {session.id}: player {player_id} eliminated with score {player.score}")
            self._send(session, "game.eliminated", player=player.display_name)
        self._save(session)

    def _complete_game(self, session: GameSession) -> None:
        result = self._finish(session, GameStatus.COMPLETED)
        winner = result.winner
        if winner is None:
            self._send(session, "game.completed_no_winner")
        else:
            self._send(session, "game.completed", player=winner.display_name)
        self._send_text(session, self.standings_text(session))

    def _finish(self, session: GameSession, status: GameStatus) -> GameResult:
        self.timers.cancel_all(session.chat_id)

        completed_at = self._clock()
        session.status = status
        session.completed_at = completed_at
        session.clear_current_question()
        session.turn_queue.clear()
        session.sudden_death = None
        session.pause = None
        session.scheduled_start_at = None

        result = build_game_result(session, status, completed_at)
        self._save(session)
        logger.info(
            f"Game {session.id} {status.value}: winner="
            f"{result.winner.display_name if result.winner else None}, "
            f"questions={result.statistics.total_questions}"
        )

        if self.result_archive is not None:
            try:
                self.result_archive.archive(result)
            except Exception as e:
                logger.error(f"Failed to archive result of game {session.id}: {e}", exc_info=True)

        if self.question_archive is not None and session.asked_questions:
            try:
                self.question_archive.move_to_archive(list(session.asked_questions))
            except Exception as e:
                logger.error(f"Failed to archive questions of game {session.id}: {e}", exc_info=True)

        return result

    # ------------------------------------------------------------------
    # Standings and output
    # ------------------------------------------------------------------

    def standings(self, session: GameSession) -> List[Player]:
        return rank_players(session.players)

    def standings_text(
        self,
        session: GameSession,
        header_key: str = "game.standings_header",
        **header_args
    ) -> str:
        language = session.language
        if not session.players:
            return self.texts.get(language, "bot.no_players")

        points = self.texts.get(language, "game.points")
        lines = [self.texts.get(language, header_key, **header_args)]
        for position, player in enumerate(self.standings(session), 1):
            if player.status == PlayerStatus.ACTIVE:
                marker = self.texts.get(language, "game.status_active")
            elif player.status == PlayerStatus.ELIMINATED:
                marker = self.texts.get(language, "game.status_eliminated")
            else:
                marker = ""
            lines.append(f"{position}. {player.display_name}: {player.score} {points} {marker}".rstrip())
        return "\n".join(lines)

    def _save(self, session: GameSession) -> None:
        self.store.save(session)

    def _send(self, session: GameSession, key: str, **kwargs) -> None:
        self._send_text(session, self.texts.get(session.language, key, **kwargs))

    def _send_text(self, session: GameSession, text: str) -> None:
        try:
            self.messenger.send(session.chat_id, text)
        except Exception as e:
            logger.error(f"Failed to send message to chat {session.chat_id}: {e}", exc_info=True)
