"""
Elimination logic - decides who leaves after a tour and when a tie
has to be broken by sudden death.
"""
from dataclasses import dataclass, field
from typing import List

from game.models import Player


@dataclass
class TourCutDecision:
    """Outcome of a tour: players to eliminate now, or participants of a sudden death."""
    eliminated: List[int] = field(default_factory=list)
    sudden_death: List[int] = field(default_factory=list)

    @property
    def needs_sudden_death(self) -> bool:
        return bool(self.sudden_death)

    def __repr__(self):
        return f"<TourCutDecision(eliminated={self.eliminated}, sudden_death={self.sudden_death})>"


class EliminationLogic:
    """Logic for determining eliminated players."""

    # A cut that leaves at least this many players never needs a tie-break
    SAFE_REMAINING = 3
    # Ties among this many players or fewer decide placements and are always broken
    TAIL_SIZE = 3

    def decide_tour_cut(self, active_players: List[Player]) -> TourCutDecision:
        """
        Decide the cut at the end of a tour.

        The lowest scorers form the tied group L:
        - if at least SAFE_REMAINING players would remain, all of L goes;
        - if one or two would remain, a single lowest scorer goes directly,
          while a larger L plays sudden death and the cut is decided there;
        - if nobody would remain (everyone tied), nobody goes.
        """
        if not active_players:
            return TourCutDecision()

        min_score = min(p.score for p in active_players)
        tied = [p for p in active_players if p.score == min_score]
        remaining = len(active_players) - len(tied)

        if remaining >= self.SAFE_REMAINING:
            return TourCutDecision(eliminated=[p.id for p in tied])

        if 1 <= remaining < self.SAFE_REMAINING:
            if len(tied) == 1:
                return TourCutDecision(eliminated=[tied[0].id])
            return TourCutDecision(sudden_death=[p.id for p in tied])

        return TourCutDecision()

    def find_tail_tie(self, active_players: List[Player]) -> List[int]:
        """
        Find a tie that would leave final placements ambiguous.

        Only applies once TAIL_SIZE or fewer players are left. Players are tied when
        both score and tie-break points are equal. Returns the ids of the lowest tied
        group in join order, or an empty list.
        """
        if len(active_players) < 2 or len(active_players) > self.TAIL_SIZE:
            return []

        groups = {}
        for player in active_players:
            groups.setdefault((player.score, player.tiebreak_points), []).append(player.id)

        tied_groups = [(key, ids) for key, ids in groups.items() if len(ids) > 1]
        if not tied_groups:
            return []

        _, ids = min(tied_groups, key=lambda item: item[0])
        return ids

    def has_sudden_death_conflict(self, participants: List[Player]) -> bool:
        """A sudden death goes on while two or more participants share a score."""
        scores = [p.sudden_death_score for p in participants]
        return len(scores) != len(set(scores))

    def sudden_death_losers(self, participants: List[Player]) -> List[int]:
        """Participants with the lowest sudden-death score."""
        if not participants:
            return []
        lowest = min(p.sudden_death_score for p in participants)
        return [p.id for p in participants if p.sudden_death_score == lowest]
