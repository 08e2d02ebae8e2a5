"""
Question providers - build the per-tour question queues for a session.
"""
from dataclasses import replace
from typing import Dict, List, Optional, Set

from database.stores import SqlQuestionPool
from game.models import GameLanguage, Player, Question, topic_for_tour
from game.validation import normalize_answer
from utils.logging import get_logger

logger = get_logger(__name__)


def questions_per_tour(players: int, rounds_per_tour: int) -> int:
    """Every active player answers once per round."""
    return max(1, players) * rounds_per_tour


class PoolQuestionProvider:
    """
    Draws questions from the stored question pool.

    Each tour gets questions of its own topic first; generic (topic-less) questions
    fill whatever is missing and are retagged with the tour topic. A question text
    is used at most once per session.
    """

    def __init__(self, pool: Optional[SqlQuestionPool] = None):
        self.pool = pool if pool is not None else SqlQuestionPool()

    def prepare(
        self,
        topics: List[str],
        tours: int,
        rounds_per_tour: int,
        players: List[Player],
        language: GameLanguage
    ) -> Dict[int, List[Question]]:
        """
        Prepare questions for every tour.

        Args:
            topics: One topic per tour
            tours: Number of tours
            rounds_per_tour: Rounds in each tour
            players: Registered players (sizes each tour)
            language: Session language

        Returns:
            Map of tour number (from 1) to its questions; a tour may come back short
            when the pool runs dry
        """
        required = questions_per_tour(len(players), rounds_per_tour)
        seen: Set[str] = set()
        result: Dict[int, List[Question]] = {}

        for tour in range(1, tours + 1):
            topic = topic_for_tour(topics, tour)
            result[tour] = self.pick_for_tour(topic, required, seen)
            if len(result[tour]) < required:
                logger.warning(
                    f"Tour {tour} ({topic}): only {len(result[tour])} of {required} questions available"
                )

        total = sum(len(bucket) for bucket in result.values())
        logger.info(f"Prepared {total} questions for {tours} tours ({language.value})")
        return result

    def pick_for_tour(self, topic: str, required: int, seen: Set[str]) -> List[Question]:
        """Select up to `required` questions for a topic, recording their texts in `seen`."""
        bucket: List[Question] = []
        for source_topic in (topic, None):
            missing = required - len(bucket)
            if missing <= 0:
                break
            for question in self.pool.select_questions(source_topic, missing, exclude=seen):
                key = normalize_answer(question.text)
                if key in seen:
                    continue
                seen.add(key)
                bucket.append(replace(question, topic=topic))
                if len(bucket) >= required:
                    break
        return bucket
