#!/usr/bin/env python
"""
Show question pool and game session status, optionally clearing the pool.
Usage: python scripts/pool_status.py [--clear] [--include-archived]
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.session import get_db_session
from database.stores import SqlQuestionPool, SqlSessionStore
from game.models import GameStatus, PLAYING_STATUSES
from utils.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


def main():
    """Print pool and session status."""
    get_db_session().create_tables()
    pool = SqlQuestionPool()

    if "--clear" in sys.argv:
        removed = pool.clear(include_archived="--include-archived" in sys.argv)
        print(f"Removed {removed} questions from the pool")

    stats = pool.stats()
    print("=" * 50)
    print("QUESTION POOL")
    print("=" * 50)
    print(f"  Total: {stats['total']}")
    print(f"  Available: {stats['available']}")
    print(f"  Archived: {stats['archived']}")
    for topic, count in sorted(stats["by_topic"].items()):
        print(f"    {topic or '(generic)'}: {count}")

    running = SqlSessionStore().chat_ids_in_status(
        [status.value for status in PLAYING_STATUSES + (GameStatus.PAUSED,)]
    )
    print(f"\nRunning games: {len(running)}")
    for chat_id in running:
        print(f"  chat {chat_id}")


if __name__ == "__main__":
    main()
