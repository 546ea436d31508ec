"""
Ratings Service

Maintains the denormalized rating fields on the Book model:
- average_rating: mean of the ratings of ACTIVE reviews, one decimal
- total_reviews: number of ACTIVE reviews

The fields are never adjusted incrementally. Every review create, update
and delete triggers a full recompute over the book's active reviews, so a
missed or concurrent update is corrected by the next one.

Rounding uses ROUND_HALF_UP (4.25 -> 4.3), not Python's banker's rounding.
"""

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from bookreview.models import Book, Review
from bookreview.store import EntityStore

logger = logging.getLogger(__name__)

STAR_VALUES = (1, 2, 3, 4, 5)


@dataclass(frozen=True)
class RatingSummary:
    """Aggregate view of a set of ratings."""

    average_rating: float = 0.0
    total_reviews: int = 0
    rating_distribution: dict[int, int] = field(
        default_factory=lambda: {star: 0 for star in STAR_VALUES}
    )


def round_rating(value: Decimal | float) -> float:
    """Round a mean rating to one decimal place, half up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def summarize_distribution(counts: Mapping[int, int]) -> RatingSummary:
    """
    Build a summary from a star -> count mapping.

    The mean is computed with exact integer arithmetic before rounding, so
    it does not depend on float representation.
    """
    distribution = {star: int(counts.get(star, 0)) for star in STAR_VALUES}
    total = sum(distribution.values())
    if total == 0:
        return RatingSummary()

    weighted = sum(star * count for star, count in distribution.items())
    average = round_rating(Decimal(weighted) / Decimal(total))
    return RatingSummary(
        average_rating=average,
        total_reviews=total,
        rating_distribution=distribution,
    )


def summarize_ratings(ratings: Iterable[int]) -> RatingSummary:
    """
    Summarize a collection of 1-5 ratings.

    Args:
        ratings: Ratings of the reviews to aggregate

    Returns:
        RatingSummary; an empty input gives average 0, total 0 and an
        all-zero distribution.

    Example:
        >>> summarize_ratings([5, 3, 4]).average_rating
        4.0
        >>> summarize_ratings([4, 5]).average_rating
        4.5
    """
    return summarize_distribution(Counter(ratings))


def get_rating_stats(store: EntityStore, book_id: int) -> RatingSummary:
    """Compute the rating summary of a book's active reviews without saving it."""
    counts = store.group_count(Review, Review.rating, Review.book_id == book_id)
    return summarize_distribution(counts)


def recalculate_book_rating(store: EntityStore, book_id: int) -> RatingSummary:
    """
    Recalculate and store a book's rating aggregates.

    Called once after any review create/update/delete. Works for deleted
    books too, which is how a cascade-deleted book ends up at 0/0.

    Args:
        store: Entity store bound to the current request's session
        book_id: ID of the book to update

    Returns:
        The summary that was written

    Note:
        Only flushes. The calling service commits.
    """
    summary = get_rating_stats(store, book_id)

    book = store.update_by_id(
        Book,
        book_id,
        average_rating=summary.average_rating,
        total_reviews=summary.total_reviews,
    )
    if book is None:
        logger.warning(f"Book {book_id} vanished before its rating could be updated")
    else:
        logger.debug(
            f"Book {book_id} rating recalculated: "
            f"{summary.average_rating} over {summary.total_reviews} reviews"
        )

    return summary


def recalculate_all_book_ratings(store: EntityStore) -> int:
    """
    Recalculate rating aggregates for every book, deleted ones included.

    Useful for data migrations or fixing inconsistencies.

    Returns:
        Number of books updated
    """
    books = store.find(Book, order_by=[Book.id], include_deleted=True)
    for book in books:
        recalculate_book_rating(store, book.id)
    store.commit()

    logger.info(f"Recalculated ratings for {len(books)} books")
    return len(books)
