"""
Question pool preparation for Strong Link Bot.
"""
from questions.manager import QuestionManager
from questions.providers import PoolQuestionProvider

__all__ = [
    "QuestionManager",
    "PoolQuestionProvider",
]
