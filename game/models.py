"""
Game domain records - session, players, questions and archived results.

Records are plain dataclasses. GameSession serializes to a JSON-compatible dict
so that stores can persist it between dispatch cycles.
"""
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional
import uuid

import pytz


class GameStatus(str, Enum):
    """Lifecycle of a chat session."""
    NOT_CONFIGURED = "not_configured"
    AWAITING_PLAYERS = "awaiting_players"
    PREPARING_QUESTION_POOL = "preparing_question_pool"
    READY_TO_START = "ready_to_start"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    SUDDEN_DEATH = "sudden_death"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


PLAYING_STATUSES = (GameStatus.IN_PROGRESS, GameStatus.SUDDEN_DEATH)
FINISHED_STATUSES = (GameStatus.COMPLETED, GameStatus.CANCELLED)


class PlayerStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ELIMINATED = "eliminated"
    SPECTATOR = "spectator"


class GameLanguage(str, Enum):
    RUSSIAN = "ru"
    ENGLISH = "en"


class QuestionSourceMode(str, Enum):
    AI = "ai"
    CHGK = "chgk"
    JSON = "json"


def utcnow() -> datetime:
    return datetime.now(pytz.UTC)


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = pytz.UTC.localize(parsed)
    return parsed


def topic_for_tour(topics: List[str], tour: int) -> str:
    """Topic of a 1-based tour, "Topic N" when none was configured."""
    if 1 <= tour <= len(topics):
        return topics[tour - 1]
    return f"Topic {tour}"


@dataclass(frozen=True)
class Question:
    """A single trivia question. Immutable."""
    topic: str
    text: str
    answer: str
    source_id: Optional[str] = None
    source_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "text": self.text,
            "answer": self.answer,
            "source_id": self.source_id,
            "source_name": self.source_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            topic=data.get("topic") or "",
            text=data["text"],
            answer=data["answer"],
            source_id=data.get("source_id"),
            source_name=data.get("source_name"),
        )


@dataclass
class Player:
    """Participant of a session."""
    id: int
    display_name: str
    status: PlayerStatus = PlayerStatus.ACTIVE
    score: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    sudden_death_score: int = 0
    # Final sudden-death score carried out of a resolved episode; orders equal main scores
    tiebreak_points: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == PlayerStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "status": self.status.value,
            "score": self.score,
            "correct_answers": self.correct_answers,
            "incorrect_answers": self.incorrect_answers,
            "sudden_death_score": self.sudden_death_score,
            "tiebreak_points": self.tiebreak_points,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        return cls(
            id=int(data["id"]),
            display_name=data["display_name"],
            status=PlayerStatus(data.get("status", PlayerStatus.ACTIVE.value)),
            score=data.get("score", 0),
            correct_answers=data.get("correct_answers", 0),
            incorrect_answers=data.get("incorrect_answers", 0),
            sudden_death_score=data.get("sudden_death_score", 0),
            tiebreak_points=data.get("tiebreak_points", 0),
        )


@dataclass
class SuddenDeathState:
    """Participants of the running sudden-death episode, in rotation order."""
    participants: List[int]

    def to_dict(self) -> Dict[str, Any]:
        return {"participants": list(self.participants)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuddenDeathState":
        return cls(participants=[int(p) for p in data.get("participants", [])])


@dataclass
class PauseSnapshot:
    """What pause() has to remember for resume()."""
    previous_status: GameStatus
    remaining_seconds: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "previous_status": self.previous_status.value,
            "remaining_seconds": self.remaining_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PauseSnapshot":
        return cls(
            previous_status=GameStatus(data["previous_status"]),
            remaining_seconds=data.get("remaining_seconds"),
        )


@dataclass
class GameSession:
    """State of one chat's tournament. Single logical owner per chat."""
    chat_id: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    language: GameLanguage = GameLanguage.RUSSIAN
    question_source_mode: QuestionSourceMode = QuestionSourceMode.JSON
    topics: List[str] = field(default_factory=list)
    tours: int = 8
    rounds_per_tour: int = 10
    answer_timeout_seconds: int = 30
    eliminate_lowest: int = 1
    status: GameStatus = GameStatus.NOT_CONFIGURED
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    players: List[Player] = field(default_factory=list)
    turn_queue: Deque[int] = field(default_factory=deque)
    questions_by_tour: Dict[int, Deque[Question]] = field(default_factory=dict)
    current_tour: int = 0
    current_round: int = 0
    current_question: Optional[Question] = None
    current_player_id: Optional[int] = None
    current_question_asked_at: Optional[datetime] = None
    asked_questions: List[Question] = field(default_factory=list)
    sudden_death: Optional[SuddenDeathState] = None
    pause: Optional[PauseSnapshot] = None
    # Auto-start time of a lobby opened by the daily schedule
    scheduled_start_at: Optional[datetime] = None

    def find_player(self, player_id: int) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def is_player_active(self, player_id: int) -> bool:
        player = self.find_player(player_id)
        return player is not None and player.is_active

    @property
    def active_players(self) -> List[Player]:
        return [p for p in self.players if p.is_active]

    @property
    def is_playing(self) -> bool:
        return self.status in PLAYING_STATUSES

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    @property
    def has_question_in_flight(self) -> bool:
        return self.current_question is not None

    def topic_for_tour(self, tour: int) -> str:
        return topic_for_tour(self.topics, tour)

    def total_questions_left(self) -> int:
        return sum(len(queue) for queue in self.questions_by_tour.values())

    def clear_current_question(self) -> None:
        self.current_question = None
        self.current_player_id = None
        self.current_question_asked_at = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "chat_id": self.chat_id,
            "language": self.language.value,
            "question_source_mode": self.question_source_mode.value,
            "topics": list(self.topics),
            "tours": self.tours,
            "rounds_per_tour": self.rounds_per_tour,
            "answer_timeout_seconds": self.answer_timeout_seconds,
            "eliminate_lowest": self.eliminate_lowest,
            "status": self.status.value,
            "created_at": _dt_to_str(self.created_at),
            "started_at": _dt_to_str(self.started_at),
            "completed_at": _dt_to_str(self.completed_at),
            "players": [p.to_dict() for p in self.players],
            "turn_queue": list(self.turn_queue),
            # JSON object keys are strings
            "questions_by_tour": {
                str(tour): [q.to_dict() for q in queue]
                for tour, queue in sorted(self.questions_by_tour.items())
            },
            "current_tour": self.current_tour,
            "current_round": self.current_round,
            "current_question": self.current_question.to_dict() if self.current_question else None,
            "current_player_id": self.current_player_id,
            "current_question_asked_at": _dt_to_str(self.current_question_asked_at),
            "asked_questions": [q.to_dict() for q in self.asked_questions],
            "sudden_death": self.sudden_death.to_dict() if self.sudden_death else None,
            "pause": self.pause.to_dict() if self.pause else None,
            "scheduled_start_at": _dt_to_str(self.scheduled_start_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameSession":
        current_question = data.get("current_question")
        sudden_death = data.get("sudden_death")
        pause = data.get("pause")
        return cls(
            id=data["id"],
            chat_id=int(data["chat_id"]),
            language=GameLanguage(data.get("language", GameLanguage.RUSSIAN.value)),
            question_source_mode=QuestionSourceMode(
                data.get("question_source_mode", QuestionSourceMode.JSON.value)
            ),
            topics=list(data.get("topics", [])),
            tours=data.get("tours", 8),
            rounds_per_tour=data.get("rounds_per_tour", 10),
            answer_timeout_seconds=data.get("answer_timeout_seconds", 30),
            eliminate_lowest=data.get("eliminate_lowest", 1),
            status=GameStatus(data.get("status", GameStatus.NOT_CONFIGURED.value)),
            created_at=_dt_from_str(data.get("created_at")) or utcnow(),
            started_at=_dt_from_str(data.get("started_at")),
            completed_at=_dt_from_str(data.get("completed_at")),
            players=[Player.from_dict(p) for p in data.get("players", [])],
            turn_queue=deque(int(p) for p in data.get("turn_queue", [])),
            questions_by_tour={
                int(tour): deque(Question.from_dict(q) for q in queue)
                for tour, queue in sorted(
                    data.get("questions_by_tour", {}).items(), key=lambda item: int(item[0])
                )
            },
            current_tour=data.get("current_tour", 0),
            current_round=data.get("current_round", 0),
            current_question=Question.from_dict(current_question) if current_question else None,
            current_player_id=data.get("current_player_id"),
            current_question_asked_at=_dt_from_str(data.get("current_question_asked_at")),
            asked_questions=[Question.from_dict(q) for q in data.get("asked_questions", [])],
            sudden_death=SuddenDeathState.from_dict(sudden_death) if sudden_death else None,
            pause=PauseSnapshot.from_dict(pause) if pause else None,
            scheduled_start_at=_dt_from_str(data.get("scheduled_start_at")),
        )


@dataclass(frozen=True)
class PlayerResult:
    id: int
    display_name: str
    score: int
    correct_answers: int
    incorrect_answers: int
    final_status: PlayerStatus
    placement: Optional[int] = None  # 1 = winner; eliminated players have none

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "score": self.score,
            "correct_answers": self.correct_answers,
            "incorrect_answers": self.incorrect_answers,
            "final_status": self.final_status.value,
            "placement": self.placement,
        }


@dataclass(frozen=True)
class GameStatistics:
    total_questions: int
    tours_completed: int
    players_started: int
    players_eliminated: int
    players_finished: int
    average_score: float
    average_accuracy: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_questions": self.total_questions,
            "tours_completed": self.tours_completed,
            "players_started": self.players_started,
            "players_eliminated": self.players_eliminated,
            "players_finished": self.players_finished,
            "average_score": self.average_score,
            "average_accuracy": self.average_accuracy,
        }


@dataclass(frozen=True)
class GameResult:
    """Archival snapshot of a finished or cancelled game. Never mutated."""
    game_id: str
    chat_id: int
    language: GameLanguage
    question_source_mode: QuestionSourceMode
    topics: tuple
    tours: int
    rounds_per_tour: int
    final_status: GameStatus
    started_at: datetime
    completed_at: datetime
    players: tuple
    used_questions: tuple
    statistics: GameStatistics

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def winner(self) -> Optional[PlayerResult]:
        return next((p for p in self.players if p.placement == 1), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_id": self.game_id,
            "chat_id": self.chat_id,
            "language": self.language.value,
            "question_source_mode": self.question_source_mode.value,
            "topics": list(self.topics),
            "tours": self.tours,
            "rounds_per_tour": self.rounds_per_tour,
            "final_status": self.final_status.value,
            "started_at": _dt_to_str(self.started_at),
            "completed_at": _dt_to_str(self.completed_at),
            "duration_seconds": self.duration_seconds,
            "players": [p.to_dict() for p in self.players],
            "used_questions": [q.to_dict() for q in self.used_questions],
            "statistics": self.statistics.to_dict(),
        }
