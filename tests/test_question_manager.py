from collections import deque

import pytest

from database.stores import InMemorySessionStore
from game.lobby import create_session, join
from game.models import GameLanguage, GameStatus, Question, topic_for_tour
from game.validation import normalize_answer
from questions.manager import QuestionManager
from questions.providers import PoolQuestionProvider, questions_per_tour
from utils.errors import GameError, QuestionPoolError


class FakePool:
    """In-memory stand-in for the SQL question pool."""

    def __init__(self, questions):
        self.questions = list(questions)
        self.calls = []

    def select_questions(self, topic, limit, exclude=None):
        self.calls.append((topic, limit))
        exclude = exclude or set()
        matching = [
            q for q in self.questions
            if (q.topic.lower() == topic.lower() if topic is not None else not q.topic)
            and normalize_answer(q.text) not in exclude
        ]
        return matching[:limit]


def pool_of(topic_counts, generic=0):
    questions = []
    for topic, count in topic_counts.items():
        questions += [Question(topic=topic, text=f"{topic} {i}", answer="A") for i in range(count)]
    questions += [Question(topic="", text=f"Generic {i}", answer="A") for i in range(generic)]
    return FakePool(questions)


def lobby_session(players=2, tours=2, rounds=2, topics=("Space", "Music")):
    session = create_session(
        555,
        language=GameLanguage.ENGLISH,
        topics=list(topics),
        tours=tours,
        rounds_per_tour=rounds,
        answer_timeout_seconds=30,
    )
    for player_id in range(1, players + 1):
        join(session, player_id, f"Player{player_id}")
    return session


class TestProvider:
    def test_helpers(self):
        assert questions_per_tour(0, 3) == 3
        assert questions_per_tour(4, 3) == 12
        assert topic_for_tour(["A", "B"], 2) == "B"
        assert topic_for_tour(["A"], 3) == "Topic 3"
        assert lobby_session().topic_for_tour(2) == "Music"

    def test_topic_questions_first_then_generic_retagged(self):
        provider = PoolQuestionProvider(pool_of({"Space": 2, "Music": 4}, generic=5))
        session = lobby_session()

        prepared = provider.prepare(session.topics, 2, 2, session.players, GameLanguage.ENGLISH)

        assert [q.text for q in prepared[1]] == ["Space 0", "Space 1", "Generic 0", "Generic 1"]
        assert all(q.topic == "Space" for q in prepared[1])
        assert [q.text for q in prepared[2]] == ["Music 0", "Music 1", "Music 2", "Music 3"]

    def test_no_question_is_used_twice(self):
        provider = PoolQuestionProvider(pool_of({}, generic=6))
        session = lobby_session()

        prepared = provider.prepare(session.topics, 2, 2, session.players, GameLanguage.ENGLISH)

        texts = [q.text for bucket in prepared.values() for q in bucket]
        assert len(texts) == len(set(texts)) == 6
        assert len(prepared[1]) == 4
        assert len(prepared[2]) == 2


class TestPreparePool:
    def test_prepare_fills_queues_and_marks_ready(self):
        store = InMemorySessionStore()
        manager = QuestionManager(store, PoolQuestionProvider(pool_of({"Space": 10, "Music": 10})))
        session = lobby_session(players=3, rounds=2)

        total = manager.prepare_pool(session)

        assert total == 12
        assert session.status == GameStatus.READY_TO_START
        assert isinstance(session.questions_by_tour[1], deque)
        assert len(session.questions_by_tour[1]) == 6
        assert store.load(555).status == GameStatus.READY_TO_START

    def test_empty_pool_reverts_status(self):
        store = InMemorySessionStore()
        manager = QuestionManager(store, PoolQuestionProvider(pool_of({})))
        session = lobby_session()

        with pytest.raises(QuestionPoolError):
            manager.prepare_pool(session)

        assert session.status == GameStatus.AWAITING_PLAYERS
        assert store.load(555).status == GameStatus.AWAITING_PLAYERS

    def test_provider_crash_reverts_status(self):
        class BrokenPool:
            def select_questions(self, topic, limit, exclude=None):
                raise RuntimeError("database is gone")

        store = InMemorySessionStore()
        manager = QuestionManager(store, PoolQuestionProvider(BrokenPool()))
        session = lobby_session()

        with pytest.raises(QuestionPoolError, match="database is gone"):
            manager.prepare_pool(session)
        assert session.status == GameStatus.AWAITING_PLAYERS

    def test_running_game_cannot_be_prepared(self):
        manager = QuestionManager(InMemorySessionStore(), PoolQuestionProvider(pool_of({"Space": 5})))
        session = lobby_session()
        session.status = GameStatus.IN_PROGRESS

        with pytest.raises(GameError):
            manager.prepare_pool(session)


class TestRefill:
    def running_session(self, store):
        session = lobby_session(players=2, tours=3, rounds=2, topics=("Space", "Music", "Art"))
        session.status = GameStatus.IN_PROGRESS
        session.current_tour = 1
        session.questions_by_tour = {
            1: deque([Question(topic="Space", text="Space 0", answer="A")]),
            2: deque([Question(topic="Music", text="Music 0", answer="A")]),
            3: deque(),
        }
        store.save(session)
        return session

    def test_upcoming_tours_are_topped_up(self):
        store = InMemorySessionStore()
        self.running_session(store)
        manager = QuestionManager(store, PoolQuestionProvider(pool_of({"Space": 5, "Music": 5, "Art": 5})))

        added = manager.refill_upcoming_tours(555, per_tour=4)

        session = store.load(555)
        assert added == 7
        assert len(session.questions_by_tour[1]) == 1
        assert [q.text for q in session.questions_by_tour[2]] == ["Music 0", "Music 1", "Music 2", "Music 3"]
        assert len(session.questions_by_tour[3]) == 4

    def test_nothing_to_do_for_idle_game(self):
        store = InMemorySessionStore()
        session = lobby_session()
        store.save(session)
        manager = QuestionManager(store, PoolQuestionProvider(pool_of({"Music": 5})))

        assert manager.refill_upcoming_tours(555, per_tour=4) == 0
        assert manager.refill_upcoming_tours(999, per_tour=4) == 0
