"""
Answer validators - judge a free-text reply against the canonical answer.
"""
from typing import Optional, Protocol

import requests

from game.models import GameLanguage
from utils.errors import ValidationError
from utils.logging import get_logger
import config

logger = get_logger(__name__)

_STRIP_CHARS = ".!?'\""

_ACCEPTED_VERDICTS = {"correct", "yes", "верно", "да"}


def normalize_answer(value: str) -> str:
    """Trim whitespace and surrounding punctuation, fold case."""
    return (value or "").strip().strip(_STRIP_CHARS).strip().casefold()


def answers_match(user_answer: str, correct_answer: str) -> bool:
    return normalize_answer(user_answer) == normalize_answer(correct_answer)


class AnswerValidator(Protocol):
    def validate(
        self,
        user_answer: str,
        correct_answer: str,
        question_text: str,
        language: GameLanguage
    ) -> bool:
        ...


class ExactAnswerValidator:
    """Normalized string comparison."""

    def validate(
        self,
        user_answer: str,
        correct_answer: str,
        question_text: str,
        language: GameLanguage
    ) -> bool:
        return answers_match(user_answer, correct_answer)


class AiAnswerValidator:
    """
    Semantic answer check through an OpenAI-compatible chat completion endpoint.

    Exact matches are accepted without calling the API. Any error while talking to
    the judge falls back to the exact comparison.
    """

    SYSTEM_PROMPT = (
        "You are an answer validation assistant. Your job is to determine if a user's "
        "answer is semantically equivalent to the correct answer, accounting for minor variations."
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None
    ):
        self.config = config.config
        self.api_key = api_key or self.config.OPENAI_API_KEY
        self.endpoint = endpoint or self.config.OPENAI_ENDPOINT
        self.model = model or self.config.OPENAI_ANSWER_VALIDATION_MODEL or self.config.OPENAI_MODEL
        self.timeout = timeout or self.config.OPENAI_TIMEOUT
        self.http = http or requests.Session()

    def validate(
        self,
        user_answer: str,
        correct_answer: str,
        question_text: str,
        language: GameLanguage
    ) -> bool:
        if answers_match(user_answer, correct_answer):
            logger.debug(f"Answer matched exactly: {user_answer!r} == {correct_answer!r}")
            return True

        try:
            verdict = self._ask_judge(
                self._build_prompt(user_answer, correct_answer, question_text, language)
            )
        except (requests.RequestException, ValidationError, ValueError) as e:
            logger.error(f"AI answer validation failed, falling back to string comparison: {e}")
            return False

        is_correct = verdict in _ACCEPTED_VERDICTS
        logger.info(f"AI answer validation result: {verdict!r} -> {is_correct}")
        return is_correct

    def _build_prompt(
        self,
        user_answer: str,
        correct_answer: str,
        question_text: str,
        language: GameLanguage
    ) -> str:
        if language == GameLanguage.RUSSIAN:
            return (
                f"Вопрос: {question_text}\n\n"
                f"Правильный ответ: {correct_answer}\n"
                f"Ответ пользователя: {user_answer}\n\n"
                "Является ли ответ пользователя семантически правильным? Учитывайте небольшие "
                "орфографические различия, разный порядок слов, сокращения и синонимы. "
                "Ответьте только одним словом: 'Верно' или 'Неверно'."
            )
        return (
            f"Question: {question_text}\n\n"
            f"Correct answer: {correct_answer}\n"
            f"User's answer: {user_answer}\n\n"
            "Is the user's answer semantically correct? Consider minor spelling differences, "
            "word order variations, abbreviations, and synonyms. "
            "Answer with just one word: 'Correct' or 'Incorrect'."
        )

    def _ask_judge(self, prompt: str) -> str:
        response = self.http.post(
            self.endpoint,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0.0,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        choices = response.json().get("choices") or []
        if not choices:
            raise ValidationError("Answer judge returned no choices")
        content = (choices[0].get("message") or {}).get("content") or ""
        return content.strip().strip(_STRIP_CHARS).strip().lower()


def create_answer_validator() -> AnswerValidator:
    """Validator selected by USE_AI_ANSWER_VALIDATION."""
    if config.config.USE_AI_ANSWER_VALIDATION:
        return AiAnswerValidator()
    return ExactAnswerValidator()
