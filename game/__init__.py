"""
Game module for Strong Link Bot.
Contains the game engine, elimination logic, answer timers and validators.
"""
from game.engine import GameEngine
from game.elimination import EliminationLogic
from game.models import GameSession, GameStatus, Player, PlayerStatus, Question
from game.timers import TimerRegistry

__all__ = [
    "GameEngine",
    "EliminationLogic",
    "GameSession",
    "GameStatus",
    "Player",
    "PlayerStatus",
    "Question",
    "TimerRegistry",
]
