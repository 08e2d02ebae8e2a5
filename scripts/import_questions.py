#!/usr/bin/env python3
"""
Import questions from a JSON file into the question pool.
Usage: python scripts/import_questions.py [path_to_json_file]

The file holds an array of {"topic": ..., "text": ..., "answer": ...} objects.
Questions without a topic are generic and can fill any tour.
"""
import sys
import os
import json
from pathlib import Path
from typing import List, Optional, Tuple

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database.stores import SqlQuestionPool
from game.models import Question
from utils.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


def parse_questions(items: list, source_name: str) -> Tuple[List[Question], int]:
    """
    Turn raw JSON items into questions.

    Returns:
        Parsed questions and the number of invalid items skipped
    """
    questions = []
    invalid = 0
    for idx, item in enumerate(items, 1):
        if not isinstance(item, dict):
            logger.warning(f"Item {idx}: not an object, skipping")
            invalid += 1
            continue
        text = (item.get("text") or "").strip()
        answer = (item.get("answer") or "").strip()
        if not text or not answer:
            logger.warning(f"Item {idx}: missing text or answer, skipping")
            invalid += 1
            continue
        questions.append(
            Question(
                topic=(item.get("topic") or "").strip(),
                text=text,
                answer=answer,
                source_id=str(item["id"]) if item.get("id") is not None else None,
                source_name=source_name,
            )
        )
    return questions, invalid


def import_questions_from_json(json_file_path: str, pool: Optional[SqlQuestionPool] = None) -> dict:
    """
    Import questions from a JSON file into the pool.

    Args:
        json_file_path: Path to the JSON file
        pool: Target pool (database from config by default)

    Returns:
        Import statistics
    """
    json_path = Path(json_file_path)
    if not json_path.exists():
        raise FileNotFoundError(f"File not found: {json_file_path}")

    logger.info(f"Reading {json_path}")
    with open(json_path, "r", encoding="utf-8") as f:
        items = json.load(f)

    if not isinstance(items, list):
        raise ValueError("The JSON file must contain an array of questions")

    questions, invalid = parse_questions(items, source_name=json_path.name)
    pool = pool if pool is not None else SqlQuestionPool()
    imported = pool.add_questions(questions, skip_duplicates=True)

    stats = {
        "total": len(items),
        "imported": imported,
        "skipped": len(questions) - imported,
        "invalid": invalid,
    }
    logger.info(f"Import finished: {stats}")
    return stats


def main():
    """Main function."""
    if len(sys.argv) > 1:
        json_file = sys.argv[1]
    else:
        json_file = Path(__file__).parent.parent / "questions.json"

    if not Path(json_file).exists():
        print(f"[ERROR] File not found: {json_file}")
        print(f"Usage: python {sys.argv[0]} [path_to_json_file]")
        sys.exit(1)

    from database.session import get_db_session
    get_db_session().create_tables()

    try:
        stats = import_questions_from_json(str(json_file))
    except (ValueError, json.JSONDecodeError) as e:
        print(f"[ERROR] {e}")
        sys.exit(1)

    print("=" * 60)
    print(f"Questions in file:     {stats['total']}")
    print(f"Imported:              {stats['imported']}")
    print(f"Skipped (duplicates):  {stats['skipped']}")
    print(f"Invalid:               {stats['invalid']}")
    print("=" * 60)


if __name__ == "__main__":
    main()
