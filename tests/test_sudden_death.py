from game.models import GameStatus, PlayerStatus

from conftest import answer_current, load, make_session


def answer_round(engine, store, outcomes):
    """Answer one question per entry of `outcomes` (player id -> correct)."""
    for _ in range(len(outcomes)):
        session = load(store)
        answer_current(engine, store, correct=outcomes[session.current_player_id])


class TestSuddenDeathEntry:
    def test_tie_for_lowest_leaving_one_player_starts_sudden_death(self, engine, store, messenger):
        make_session(store, players=3, tours=2, rounds_per_tour=1, questions_per_tour=10)
        engine.start_game(load(store))

        answer_round(engine, store, {1: True, 2: False, 3: False})

        session = load(store)
        assert session.status == GameStatus.SUDDEN_DEATH
        assert session.sudden_death.participants == [2, 3]
        assert all(p.status == PlayerStatus.ACTIVE for p in session.players)
        assert session.current_player_id == 2
        assert list(session.turn_queue) == [3]
        assert messenger.contains("Sudden Death! Player2, Player3 are tied.")
        assert messenger.contains("Sudden Death. Question for Player2")

    def test_three_way_tie_after_cut_starts_sudden_death(self, engine, store, messenger):
        # Four players, one round: three right, one wrong
        make_session(store, players=4, tours=1, rounds_per_tour=1, questions_per_tour=12)
        engine.start_game(load(store))

        answer_round(engine, store, {1: True, 2: True, 3: True, 4: False})

        session = load(store)
        eliminated = [p.id for p in session.players if p.status == PlayerStatus.ELIMINATED]
        assert eliminated == [4]
        # The three survivors share first place, which has to be settled
        assert session.status == GameStatus.SUDDEN_DEATH
        assert session.sudden_death.participants == [1, 2, 3]

    def test_sudden_death_does_not_touch_main_score(self, engine, store):
        make_session(store, players=3, tours=2, rounds_per_tour=1, questions_per_tour=10)
        engine.start_game(load(store))
        answer_round(engine, store, {1: True, 2: False, 3: False})

        answer_current(engine, store, correct=True)

        player = load(store).find_player(2)
        assert player.score == 0
        assert player.sudden_death_score == 1
        assert player.correct_answers == 1


class TestSuddenDeathResolution:
    def test_three_way_tie_resolved_over_two_rounds(self, engine, store, messenger, archive):
        make_session(store, players=3, tours=1, rounds_per_tour=2, questions_per_tour=12)
        engine.start_game(load(store))

        # Everybody tied at 2 after the last tour
        answer_round(engine, store, {1: True, 2: True, 3: True})
        answer_round(engine, store, {1: True, 2: True, 3: True})
        session = load(store)
        assert session.status == GameStatus.SUDDEN_DEATH
        assert session.sudden_death.participants == [1, 2, 3]

        # 1 vs 1 vs 0: still tied between two
        answer_round(engine, store, {1: True, 2: True, 3: False})
        session = load(store)
        assert session.status == GameStatus.SUDDEN_DEATH
        assert session.current_round == 1
        assert [p.sudden_death_score for p in session.players] == [1, 1, 0]

        # 2 vs 1 vs 0: resolved
        answer_round(engine, store, {1: True, 2: False, 3: False})

        session = load(store)
        assert session.status == GameStatus.COMPLETED
        assert [p.status for p in session.players] == [
            PlayerStatus.ACTIVE, PlayerStatus.ACTIVE, PlayerStatus.ELIMINATED
        ]
        assert [p.score for p in session.players] == [2, 2, 2]
        assert [p.sudden_death_score for p in session.players] == [0, 0, 0]
        assert messenger.contains("Sudden Death complete!")

        result = archive.results[0]
        assert [(p.id, p.placement) for p in result.players] == [(1, 1), (2, 2), (3, None)]

    def test_resolution_moves_on_to_next_tour(self, engine, store, messenger):
        make_session(store, players=3, tours=2, rounds_per_tour=1, questions_per_tour=10)
        engine.start_game(load(store))
        answer_round(engine, store, {1: True, 2: False, 3: False})

        answer_round(engine, store, {2: True, 3: False})

        session = load(store)
        assert session.status == GameStatus.IN_PROGRESS
        assert session.sudden_death is None
        assert session.find_player(3).status == PlayerStatus.ELIMINATED
        assert session.current_tour == 2
        assert session.current_player_id == 1
        assert list(session.turn_queue) == [2]
        assert all(p.tiebreak_points == 0 for p in session.players)

    def test_all_wrong_keeps_the_episode_going(self, engine, store):
        make_session(store, players=3, tours=2, rounds_per_tour=1, questions_per_tour=10)
        engine.start_game(load(store))
        answer_round(engine, store, {1: True, 2: False, 3: False})

        answer_round(engine, store, {2: False, 3: False})

        session = load(store)
        assert session.status == GameStatus.SUDDEN_DEATH
        assert session.current_player_id == 2

    def test_running_out_of_questions_completes_game(self, engine, store, archive):
        make_session(store, players=3, tours=1, rounds_per_tour=1, questions_per_tour=3)
        engine.start_game(load(store))

        answer_round(engine, store, {1: True, 2: False, 3: False})

        session = load(store)
        assert session.status == GameStatus.COMPLETED
        assert all(p.status == PlayerStatus.ACTIVE for p in session.players)
        assert archive.results[0].winner.id == 1

    def test_sudden_death_borrows_questions_from_later_tours(self, engine, store):
        make_session(store, players=3, tours=2, rounds_per_tour=1, questions_per_tour=3)
        engine.start_game(load(store))

        answer_round(engine, store, {1: True, 2: False, 3: False})

        session = load(store)
        assert session.status == GameStatus.SUDDEN_DEATH
        assert session.current_question.text == "Question 2-1"
