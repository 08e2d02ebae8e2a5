"""
Collaborator contracts consumed by the game engine.
"""
from typing import Dict, Iterable, List, Optional, Protocol

from game.models import GameLanguage, GameResult, GameSession, Player, Question


class Messenger(Protocol):
    def send(self, chat_id: int, text: str) -> Optional[int]:
        """Send a chat message, returning its message id when known."""
        ...


class SessionStore(Protocol):
    def save(self, session: GameSession) -> None:
        ...

    def load(self, chat_id: int) -> Optional[GameSession]:
        ...

    def remove(self, chat_id: int) -> None:
        ...


class QuestionProvider(Protocol):
    def prepare(
        self,
        topics: List[str],
        tours: int,
        rounds_per_tour: int,
        players: List[Player],
        language: GameLanguage
    ) -> Dict[int, List[Question]]:
        ...


class ResultArchive(Protocol):
    def archive(self, result: GameResult) -> None:
        ...


class QuestionPoolArchive(Protocol):
    def move_to_archive(self, questions: Iterable[Question]) -> int:
        ...
