"""
Standings and final result snapshot.
"""
from datetime import datetime
from typing import List

from game.models import (
    GameResult,
    GameSession,
    GameStatistics,
    GameStatus,
    Player,
    PlayerResult,
    PlayerStatus,
)


def standing_key(player: Player):
    """Sort key: score desc, tie-break points desc, fewer incorrect answers first."""
    return (-player.score, -player.tiebreak_points, player.incorrect_answers)


def rank_players(players: List[Player]) -> List[Player]:
    """Order players for standings. sorted() is stable, so join order breaks full ties."""
    return sorted(players, key=standing_key)


def compute_placements(session: GameSession) -> dict:
    """Map player id -> placement for Active players only."""
    return {
        player.id: place
        for place, player in enumerate(rank_players(session.active_players), 1)
    }


def build_game_result(
    session: GameSession,
    final_status: GameStatus,
    completed_at: datetime
) -> GameResult:
    """
    Build the archival snapshot of a session.

    Active players are listed first in placement order, followed by everyone else
    ranked by score. Eliminated players get no placement.
    """
    placements = compute_placements(session)
    active = rank_players(session.active_players)
    others = rank_players([p for p in session.players if not p.is_active])

    players = tuple(
        PlayerResult(
            id=p.id,
            display_name=p.display_name,
            score=p.score,
            correct_answers=p.correct_answers,
            incorrect_answers=p.incorrect_answers,
            final_status=p.status,
            placement=placements.get(p.id),
        )
        for p in active + others
    )

    answered = [p for p in session.players if p.correct_answers + p.incorrect_answers > 0]
    statistics = GameStatistics(
        total_questions=len(session.asked_questions),
        tours_completed=max(0, min(session.current_tour - 1, session.tours)),
        players_started=len(session.players),
        players_eliminated=sum(1 for p in session.players if p.status == PlayerStatus.ELIMINATED),
        players_finished=len(active),
        average_score=(
            sum(p.score for p in session.players) / len(session.players)
            if session.players else 0.0
        ),
        average_accuracy=(
            sum(p.correct_answers / (p.correct_answers + p.incorrect_answers) for p in answered)
            / len(answered)
            if answered else 0.0
        ),
    )

    return GameResult(
        game_id=session.id,
        chat_id=session.chat_id,
        language=session.language,
        question_source_mode=session.question_source_mode,
        topics=tuple(session.topics),
        tours=session.tours,
        rounds_per_tour=session.rounds_per_tour,
        final_status=final_status,
        started_at=session.started_at or session.created_at,
        completed_at=completed_at,
        players=players,
        used_questions=tuple(session.asked_questions),
        statistics=statistics,
    )
