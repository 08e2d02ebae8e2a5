"""
Lobby - session setup and player registration before a game starts.
"""
from enum import Enum
from typing import List, Optional

from game.models import (
    GameLanguage,
    GameSession,
    GameStatus,
    Player,
    PlayerStatus,
    QuestionSourceMode,
)
from utils.logging import get_logger
import config

logger = get_logger(__name__)

JOINABLE_STATUSES = (
    GameStatus.NOT_CONFIGURED,
    GameStatus.AWAITING_PLAYERS,
    GameStatus.PREPARING_QUESTION_POOL,
    GameStatus.READY_TO_START,
)


class JoinResult(str, Enum):
    JOINED = "joined"
    ALREADY_JOINED = "already_joined"
    CLOSED = "closed"


def create_session(
    chat_id: int,
    language: Optional[GameLanguage] = None,
    topics: Optional[List[str]] = None,
    tours: Optional[int] = None,
    rounds_per_tour: Optional[int] = None,
    answer_timeout_seconds: Optional[int] = None,
    eliminate_lowest: Optional[int] = None,
    question_source_mode: Optional[QuestionSourceMode] = None
) -> GameSession:
    """
    Create a session awaiting players, filling anything not given from config.

    Args:
        chat_id: Chat the session belongs to
        language: Message language (DEFAULT_LANGUAGE)
        topics: One topic per tour (GAME_TOPICS)
        tours: Number of tours (GAME_TOURS)
        rounds_per_tour: Rounds in each tour (ROUNDS_PER_TOUR)
        answer_timeout_seconds: Time to answer (ANSWER_TIMEOUT_SECONDS)
        eliminate_lowest: Players cut after a tour (ELIMINATE_LOWEST)
        question_source_mode: Where questions come from (QUESTION_SOURCE)

    Returns:
        New GameSession in AWAITING_PLAYERS status
    """
    cfg = config.config

    session = GameSession(
        chat_id=chat_id,
        language=language or GameLanguage(cfg.DEFAULT_LANGUAGE),
        question_source_mode=question_source_mode or QuestionSourceMode(cfg.QUESTION_SOURCE),
        topics=list(topics if topics is not None else cfg.GAME_TOPICS),
        tours=tours or cfg.GAME_TOURS,
        rounds_per_tour=rounds_per_tour or cfg.ROUNDS_PER_TOUR,
        answer_timeout_seconds=answer_timeout_seconds or cfg.ANSWER_TIMEOUT_SECONDS,
        eliminate_lowest=eliminate_lowest or cfg.ELIMINATE_LOWEST,
        status=GameStatus.AWAITING_PLAYERS,
    )

    logger.info(
        f"Created session {session.id} for chat {chat_id}: "
        f"{session.tours} tours, {session.rounds_per_tour} rounds, {session.language.value}"
    )
    return session


def join(session: GameSession, player_id: int, display_name: str) -> JoinResult:
    """Register a player. Joining closes once the game has started."""
    if session.status not in JOINABLE_STATUSES:
        return JoinResult.CLOSED

    if session.find_player(player_id) is not None:
        return JoinResult.ALREADY_JOINED

    session.players.append(
        Player(id=player_id, display_name=display_name, status=PlayerStatus.ACTIVE)
    )
    if session.status == GameStatus.NOT_CONFIGURED:
        session.status = GameStatus.AWAITING_PLAYERS

    logger.info(f"Player {player_id} ({display_name}) joined session {session.id}")
    return JoinResult.JOINED
