"""
Counter Synchronizer

Keeps the per-user cached counters in step with the lifecycle events that
change them:

    book created   -> owner.books_count   += 1
    book deleted   -> owner.books_count   -= 1
    review created -> author.reviews_count += 1
    review deleted -> author.reviews_count -= 1

Each delta is one atomic UPDATE evaluated in the database, and decrements
are clamped at zero. Because these are caches, reconcile_user_counters()
can always rebuild them from count queries.
"""

import logging

from bookreview.models import Book, Review, User
from bookreview.store import EntityStore

logger = logging.getLogger(__name__)


def _adjust(store: EntityStore, user_id: int, field: str, delta: int) -> None:
    store.increment_field(User, user_id, field, delta, floor=0)
    logger.debug(f"User {user_id} {field} {delta:+d}")


def book_created(store: EntityStore, owner_id: int) -> None:
    _adjust(store, owner_id, "books_count", 1)


def book_deleted(store: EntityStore, owner_id: int) -> None:
    _adjust(store, owner_id, "books_count", -1)


def review_created(store: EntityStore, user_id: int) -> None:
    _adjust(store, user_id, "reviews_count", 1)


def review_deleted(store: EntityStore, user_id: int) -> None:
    _adjust(store, user_id, "reviews_count", -1)


def reconcile_user_counters(store: EntityStore, user_id: int) -> tuple[int, int]:
    """
    Rebuild a user's books_count and reviews_count from the active rows.

    Args:
        store: Entity store
        user_id: User to reconcile

    Returns:
        (books_count, reviews_count) as written

    Note:
        Only flushes. The caller commits.
    """
    books = store.count(Book, Book.owner_id == user_id)
    reviews = store.count(Review, Review.user_id == user_id)

    user = store.update_by_id(User, user_id, books_count=books, reviews_count=reviews)
    if user is None:
        logger.warning(f"Cannot reconcile counters for missing user {user_id}")
    return books, reviews


def reconcile_all_user_counters(store: EntityStore) -> int:
    """
    Rebuild the counters of every user and commit.

    Returns:
        Number of users reconciled
    """
    users = store.find(User, order_by=[User.id])
    for user in users:
        reconcile_user_counters(store, user.id)
    store.commit()

    logger.info(f"Reconciled counters for {len(users)} users")
    return len(users)
