import pytest

from game.elimination import EliminationLogic
from game.models import Player


def players(*scores, tiebreak=None):
    tiebreak = tiebreak or [0] * len(scores)
    return [
        Player(id=i, display_name=f"P{i}", score=score, tiebreak_points=tb)
        for i, (score, tb) in enumerate(zip(scores, tiebreak), 1)
    ]


@pytest.fixture
def logic():
    return EliminationLogic()


class TestDecideTourCut:
    def test_single_lowest_eliminated_when_many_remain(self, logic):
        decision = logic.decide_tour_cut(players(5, 4, 3, 1))

        assert decision.eliminated == [4]
        assert not decision.needs_sudden_death

    def test_whole_tied_group_eliminated_when_three_remain(self, logic):
        decision = logic.decide_tour_cut(players(5, 4, 3, 1, 1))

        assert decision.eliminated == [4, 5]

    def test_single_lowest_eliminated_when_one_remains(self, logic):
        decision = logic.decide_tour_cut(players(2, 1))

        assert decision.eliminated == [2]

    def test_tied_group_plays_sudden_death_when_two_remain(self, logic):
        decision = logic.decide_tour_cut(players(5, 4, 1, 1))

        assert decision.eliminated == []
        assert decision.sudden_death == [3, 4]
        assert decision.needs_sudden_death

    def test_tied_group_plays_sudden_death_when_one_remains(self, logic):
        decision = logic.decide_tour_cut(players(3, 0, 0, 0))

        assert decision.sudden_death == [2, 3, 4]

    def test_everyone_tied_eliminates_nobody(self, logic):
        decision = logic.decide_tour_cut(players(2, 2, 2, 2))

        assert decision.eliminated == []
        assert decision.sudden_death == []

    def test_no_players(self, logic):
        decision = logic.decide_tour_cut([])

        assert decision.eliminated == [] and decision.sudden_death == []

    @pytest.mark.parametrize("scores", [(3, 2, 1, 0, 0, 0, 0), (9, 8, 7, 6, 5, 4), (1, 0)])
    def test_cut_never_empties_the_game(self, logic, scores):
        active = players(*scores)
        decision = logic.decide_tour_cut(active)

        assert len(decision.eliminated) < len(active)


class TestTailTie:
    def test_tie_among_last_three(self, logic):
        assert logic.find_tail_tie(players(2, 2, 2)) == [1, 2, 3]

    def test_lowest_tied_group_is_picked(self, logic):
        assert logic.find_tail_tie(players(3, 3, 1)) == [1, 2]
        assert logic.find_tail_tie(players(3, 1, 1)) == [2, 3]

    def test_tiebreak_points_separate_equal_scores(self, logic):
        assert logic.find_tail_tie(players(2, 2, tiebreak=[2, 1])) == []

    def test_not_checked_with_more_than_three_players(self, logic):
        assert logic.find_tail_tie(players(1, 1, 1, 1)) == []

    def test_single_player_has_no_tie(self, logic):
        assert logic.find_tail_tie(players(1)) == []


class TestSuddenDeathScores:
    def test_conflict_while_scores_repeat(self, logic):
        participants = players(0, 0, 0)
        for player, sd in zip(participants, (1, 1, 0)):
            player.sudden_death_score = sd

        assert logic.has_sudden_death_conflict(participants) is True

    def test_distinct_scores_resolve(self, logic):
        participants = players(0, 0, 0)
        for player, sd in zip(participants, (2, 1, 0)):
            player.sudden_death_score = sd

        assert logic.has_sudden_death_conflict(participants) is False
        assert logic.sudden_death_losers(participants) == [3]

    def test_no_participants_has_no_losers(self, logic):
        assert logic.sudden_death_losers([]) == []
