#!/usr/bin/env python3
"""
Aggregate Recalculation Script

Re-derives every denormalized field from the active rows:
- Book.average_rating / Book.total_reviews from active reviews
- User.books_count / User.reviews_count from active books and reviews

Run it after restoring a backup, after manual SQL edits, or whenever the
cached values are suspected to have drifted.

Usage:
    # From project root with venv activated:
    python scripts/recalculate_aggregates.py

    # Options:
    python scripts/recalculate_aggregates.py --books-only
    python scripts/recalculate_aggregates.py --users-only
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bookreview.database import SessionLocal
from bookreview.services.counters import reconcile_all_user_counters
from bookreview.services.ratings import recalculate_all_book_ratings
from bookreview.store import EntityStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def recalculate(books: bool = True, users: bool = True) -> None:
    """
    Recalculate derived fields.

    Args:
        books: Recompute book rating aggregates
        users: Rebuild user counters
    """
    db = SessionLocal()
    store = EntityStore(db)

    try:
        if books:
            logger.info("Recalculating book ratings...")
            count = recalculate_all_book_ratings(store)
            logger.info(f"Books updated: {count}")

        if users:
            logger.info("Reconciling user counters...")
            count = reconcile_all_user_counters(store)
            logger.info(f"Users updated: {count}")
    finally:
        db.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Recalculate book ratings and user counters"
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--books-only",
        action="store_true",
        help="Only recalculate book rating aggregates",
    )
    group.add_argument(
        "--users-only",
        action="store_true",
        help="Only rebuild user books/reviews counters",
    )

    args = parser.parse_args()

    recalculate(books=not args.users_only, users=not args.books_only)


if __name__ == "__main__":
    main()
