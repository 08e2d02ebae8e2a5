from collections import deque
from datetime import timedelta

import pytest

from database.session import DatabaseSession
from database.stores import InMemorySessionStore, SqlQuestionPool, SqlResultArchive, SqlSessionStore
from game.models import GameSession, GameStatus, PauseSnapshot, Player, Question, SuddenDeathState, utcnow
from game.standings import build_game_result


@pytest.fixture
def db(tmp_path):
    database = DatabaseSession(f"sqlite:///{tmp_path / 'strong_link.db'}", echo=False)
    database.create_tables()
    yield database
    database.dispose()


def busy_session():
    asked_at = utcnow()
    question = Question(topic="Space", text="Closest star?", answer="Sun", source_id="7", source_name="json")
    return GameSession(
        chat_id=-1001,
        topics=["Space", "Music"],
        tours=2,
        rounds_per_tour=3,
        status=GameStatus.PAUSED,
        players=[Player(id=1, display_name="Ann", score=2), Player(id=2, display_name="Bob", sudden_death_score=1)],
        turn_queue=deque([2]),
        questions_by_tour={
            1: deque([Question(topic="Space", text="Red planet?", answer="Mars")]),
            2: deque(),
        },
        current_tour=1,
        current_round=1,
        current_question=question,
        current_player_id=1,
        current_question_asked_at=asked_at,
        asked_questions=[question],
        sudden_death=SuddenDeathState(participants=[1, 2]),
        pause=PauseSnapshot(previous_status=GameStatus.SUDDEN_DEATH, remaining_seconds=12.5),
    )


class TestSessionStores:
    @pytest.mark.parametrize("store_type", ["memory", "sql"])
    def test_session_survives_round_trip(self, db, store_type):
        store = InMemorySessionStore() if store_type == "memory" else SqlSessionStore(db)
        session = busy_session()

        store.save(session)
        loaded = store.load(session.chat_id)

        assert loaded is not session
        assert loaded.to_dict() == session.to_dict()
        assert loaded.current_question_asked_at == session.current_question_asked_at
        assert isinstance(loaded.turn_queue, deque)
        assert list(loaded.questions_by_tour) == [1, 2]
        assert loaded.pause.previous_status == GameStatus.SUDDEN_DEATH

    def test_memory_store_returns_copies(self):
        store = InMemorySessionStore()
        session = busy_session()
        store.save(session)

        loaded = store.load(session.chat_id)
        loaded.players[0].score = 99

        assert store.load(session.chat_id).players[0].score == 2

    def test_sql_store_overwrites_and_removes(self, db):
        store = SqlSessionStore(db)
        session = busy_session()
        store.save(session)

        session.status = GameStatus.CANCELLED
        store.save(session)
        assert store.load(session.chat_id).status == GameStatus.CANCELLED
        assert store.chat_ids_in_status(["cancelled"]) == [session.chat_id]

        store.remove(session.chat_id)
        assert store.load(session.chat_id) is None

    def test_missing_session(self, db):
        assert SqlSessionStore(db).load(123) is None
        assert InMemorySessionStore().load(123) is None

    @pytest.mark.parametrize("store_type", ["memory", "sql"])
    def test_chat_ids_and_scheduled_start(self, db, store_type):
        store = InMemorySessionStore() if store_type == "memory" else SqlSessionStore(db)
        scheduled = GameSession(chat_id=7, status=GameStatus.AWAITING_PLAYERS)
        scheduled.scheduled_start_at = utcnow() + timedelta(minutes=10)
        store.save(scheduled)
        store.save(GameSession(chat_id=8))

        assert sorted(store.chat_ids()) == [7, 8]
        assert store.load(7).scheduled_start_at == scheduled.scheduled_start_at
        assert store.load(8).scheduled_start_at is None


class TestResultArchive:
    def test_archive_once_per_game(self, db):
        archive = SqlResultArchive(db)
        session = busy_session()
        session.started_at = utcnow()
        result = build_game_result(session, GameStatus.COMPLETED, session.started_at + timedelta(seconds=90))

        archive.archive(result)
        archive.archive(result)

        stored = archive.recent_results(session.chat_id)
        assert len(stored) == 1
        assert stored[0]["game_id"] == session.id
        assert stored[0]["final_status"] == "completed"


class TestQuestionPool:
    def test_add_skips_duplicates(self, db):
        pool = SqlQuestionPool(db)
        questions = [
            Question(topic="Space", text="Red planet?", answer="Mars"),
            Question(topic="Space", text="  red planet?  ", answer="Mars"),
            Question(topic="", text="Largest ocean?", answer="Pacific"),
        ]

        assert pool.add_questions(questions) == 2
        assert pool.stats()["total"] == 2

    def test_select_by_topic_and_generic(self, db):
        pool = SqlQuestionPool(db)
        pool.add_questions([
            Question(topic="Space", text="Red planet?", answer="Mars"),
            Question(topic="Music", text="Fab four?", answer="The Beatles"),
            Question(topic="", text="Largest ocean?", answer="Pacific"),
        ])

        space = pool.select_questions("space", 10)
        generic = pool.select_questions(None, 10)

        assert [q.text for q in space] == ["Red planet?"]
        assert [q.text for q in generic] == ["Largest ocean?"]

    def test_select_respects_exclusions_and_limit(self, db):
        pool = SqlQuestionPool(db)
        pool.add_questions([Question(topic="Space", text=f"Q{i}", answer="A") for i in range(5)])

        picked = pool.select_questions("Space", 3, exclude={"q0", "q1"})

        assert len(picked) == 3
        assert {q.text for q in picked} == {"Q2", "Q3", "Q4"}
        assert pool.select_questions("Space", 0) == []

    def test_archived_questions_are_not_selected_again(self, db):
        pool = SqlQuestionPool(db)
        pool.add_questions([
            Question(topic="Space", text="Red planet?", answer="Mars"),
            Question(topic="Space", text="Closest star?", answer="Sun"),
        ])

        moved = pool.move_to_archive([Question(topic="Space", text="Red planet?", answer="Mars")])

        assert moved == 1
        assert [q.text for q in pool.select_questions("Space", 10)] == ["Closest star?"]
        stats = pool.stats()
        assert (stats["total"], stats["available"], stats["archived"]) == (2, 1, 1)
        assert stats["by_topic"] == {"Space": 1}

    def test_clear_keeps_archive_by_default(self, db):
        pool = SqlQuestionPool(db)
        pool.add_questions([
            Question(topic="Space", text="Red planet?", answer="Mars"),
            Question(topic="Space", text="Closest star?", answer="Sun"),
        ])
        pool.move_to_archive([Question(topic="Space", text="Red planet?", answer="Mars")])

        assert pool.clear() == 1
        assert pool.stats()["total"] == 1
        assert pool.clear(include_archived=True) == 1
        assert pool.stats()["total"] == 0
