from collections import deque
from datetime import datetime, timedelta

import pytest
import pytz

from database.stores import InMemorySessionStore
from game.engine import GameEngine
from game.models import GameLanguage, GameSession, GameStatus, Player, Question
from game.timers import TimerRegistry

CHAT_ID = 100


class RecordingMessenger:
    """Collects every message instead of sending it."""

    def __init__(self):
        self.messages = []

    def send(self, chat_id, text):
        self.messages.append((chat_id, text))
        return len(self.messages)

    @property
    def texts(self):
        return [text for _, text in self.messages]

    def contains(self, fragment):
        return any(fragment in text for text in self.texts)


class ManualHandle:
    def __init__(self, delay, chat_id, asked_at, fire):
        self.delay = delay
        self.chat_id = chat_id
        self.asked_at = asked_at
        self.fire = fire
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Records scheduled timers; tests fire them explicitly."""

    def __init__(self):
        self.scheduled = []

    def schedule(self, delay, chat_id, asked_at, fire):
        handle = ManualHandle(delay, chat_id, asked_at, fire)
        self.scheduled.append(handle)
        return handle

    @property
    def last(self):
        return self.scheduled[-1]

    @property
    def live(self):
        return [h for h in self.scheduled if not h.cancelled]


class FakeClock:
    """Controllable clock. Every reading moves time forward by one millisecond."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=pytz.UTC)

    def __call__(self):
        self.now += timedelta(milliseconds=1)
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class RecordingArchive:
    def __init__(self):
        self.results = []
        self.questions = []

    def archive(self, result):
        self.results.append(result)

    def move_to_archive(self, questions):
        questions = list(questions)
        self.questions.extend(questions)
        return len(questions)


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def archive():
    return RecordingArchive()


@pytest.fixture
def engine(messenger, store, scheduler, clock, archive):
    return GameEngine(
        messenger=messenger,
        store=store,
        timers=TimerRegistry(scheduler),
        result_archive=archive,
        question_archive=archive,
        clock=clock,
        sleep=lambda seconds: None,
        tour_pause_seconds=0,
    )


def make_questions(tour, count, topic=None):
    return [
        Question(topic=topic or f"Topic {tour}", text=f"Question {tour}-{i}", answer=f"Answer {tour}-{i}")
        for i in range(1, count + 1)
    ]


def make_session(
    store,
    players=3,
    tours=2,
    rounds_per_tour=2,
    questions_per_tour=None,
    timeout=30
):
    """Session ready to start with players 1..N and generated questions."""
    per_tour = questions_per_tour if questions_per_tour is not None else players * rounds_per_tour
    session = GameSession(
        chat_id=CHAT_ID,
        language=GameLanguage.ENGLISH,
        topics=[f"Topic {t}" for t in range(1, tours + 1)],
        tours=tours,
        rounds_per_tour=rounds_per_tour,
        answer_timeout_seconds=timeout,
        status=GameStatus.READY_TO_START,
        players=[Player(id=i, display_name=f"Player{i}") for i in range(1, players + 1)],
        questions_by_tour={
            tour: deque(make_questions(tour, per_tour)) for tour in range(1, tours + 1)
        },
    )
    store.save(session)
    return session


def load(store):
    return store.load(CHAT_ID)


def answer_current(engine, store, correct=True):
    """Answer the question in flight as its player. Returns that player's id."""
    session = load(store)
    player_id = session.current_player_id
    text = session.current_question.answer if correct else "definitely wrong"
    engine.submit_answer(session, player_id, text)
    return player_id


def play_with(engine, store, decide, max_steps=500):
    """
    Keep answering until the game stops playing.

    `decide(player_id, session)` returns whether the answer is correct.
    Returns the ids of players asked, in order.
    """
    asked = []
    for _ in range(max_steps):
        session = load(store)
        if not session.is_playing:
            return asked
        player_id = session.current_player_id
        asked.append(player_id)
        answer_current(engine, store, correct=decide(player_id, session))
    raise AssertionError("game did not finish")
