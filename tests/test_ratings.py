"""
Tests for the Rating Aggregator

Covers:
- Pure summaries (mean, count, distribution, half-up rounding)
- get_rating_stats over active reviews only
- recalculate_book_rating writing the book's derived fields
- recalculate_all_book_ratings repairing drifted aggregates
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from bookreview.models import Book, RecordStatus, Review, User
from bookreview.services.ratings import (
    RatingSummary,
    get_rating_stats,
    recalculate_all_book_ratings,
    recalculate_book_rating,
    round_rating,
    summarize_distribution,
    summarize_ratings,
)
from bookreview.store import EntityStore


# =============================================================================
# Pure Aggregation
# =============================================================================
class TestSummarizeRatings:
    """Tests for summarize_ratings / summarize_distribution"""

    def test_empty(self):
        summary = summarize_ratings([])

        assert summary == RatingSummary()
        assert summary.average_rating == 0.0
        assert summary.total_reviews == 0
        assert summary.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    def test_single_rating(self):
        summary = summarize_ratings([3])

        assert summary.average_rating == 3.0
        assert summary.total_reviews == 1
        assert summary.rating_distribution == {1: 0, 2: 0, 3: 1, 4: 0, 5: 0}

    def test_mean_and_distribution(self):
        summary = summarize_ratings([5, 3, 4])

        assert summary.average_rating == 4.0
        assert summary.total_reviews == 3
        assert summary.rating_distribution == {1: 0, 2: 0, 3: 1, 4: 1, 5: 1}

    def test_mean_rounded_to_one_decimal(self):
        # 14 / 3 = 4.666...
        assert summarize_ratings([5, 5, 4]).average_rating == 4.7
        # 7 / 3 = 2.333...
        assert summarize_ratings([1, 2, 4]).average_rating == 2.3

    def test_half_rounds_up(self):
        # 17 / 4 = 4.25 exactly; banker's rounding would give 4.2
        assert summarize_ratings([5, 4, 4, 4]).average_rating == 4.3
        # 9 / 4 = 2.25
        assert summarize_ratings([1, 2, 3, 3]).average_rating == 2.3

    def test_distribution_sums_to_total(self):
        ratings = [1, 1, 2, 5, 5, 5, 4]
        summary = summarize_ratings(ratings)

        assert sum(summary.rating_distribution.values()) == summary.total_reviews == 7

    def test_distribution_ignores_missing_stars(self):
        summary = summarize_distribution({5: 2})

        assert summary.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 2}
        assert summary.average_rating == 5.0

    def test_average_within_range(self):
        assert summarize_ratings([1] * 10).average_rating == 1.0
        assert summarize_ratings([5] * 10).average_rating == 5.0


class TestRoundRating:
    """Tests for round_rating"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (4.25, 4.3),
            (4.24, 4.2),
            (Decimal("3.35"), 3.4),
            (2.05, 2.1),
            (0, 0.0),
        ],
    )
    def test_round_half_up(self, value, expected):
        assert round_rating(value) == expected


# =============================================================================
# Store-backed Aggregation
# =============================================================================
class TestGetRatingStats:
    """Tests for get_rating_stats"""

    def test_no_reviews(self, store: EntityStore, book: Book):
        summary = get_rating_stats(store, book.id)

        assert summary.total_reviews == 0
        assert summary.average_rating == 0.0

    def test_only_active_reviews_count(
        self,
        store: EntityStore,
        book: Book,
        user: User,
        other_user: User,
    ):
        store.insert(Review, book_id=book.id, user_id=user.id, rating=5, review_text="Wonderful book")
        store.insert(
            Review,
            book_id=book.id,
            user_id=other_user.id,
            rating=1,
            review_text="Could not finish it",
            status=RecordStatus.DELETED.value,
        )
        store.commit()

        summary = get_rating_stats(store, book.id)

        assert summary.total_reviews == 1
        assert summary.average_rating == 5.0
        assert summary.rating_distribution[1] == 0

    def test_other_books_are_ignored(self, store: EntityStore, make_book, user: User):
        first = make_book(title="First")
        second = make_book(title="Second")
        store.insert(Review, book_id=first.id, user_id=user.id, rating=2, review_text="Not for me")
        store.commit()

        assert get_rating_stats(store, second.id).total_reviews == 0


class TestRecalculateBookRating:
    """Tests for recalculate_book_rating / recalculate_all_book_ratings"""

    def test_writes_aggregates(
        self,
        store: EntityStore,
        db_session: Session,
        book: Book,
        user: User,
        other_user: User,
    ):
        store.insert(Review, book_id=book.id, user_id=user.id, rating=4, review_text="Solid read")
        store.insert(Review, book_id=book.id, user_id=other_user.id, rating=5, review_text="Loved it")

        summary = recalculate_book_rating(store, book.id)
        store.commit()
        db_session.refresh(book)

        assert summary.average_rating == 4.5
        assert book.average_rating == 4.5
        assert book.total_reviews == 2

    def test_missing_book_returns_empty_summary(self, store: EntityStore):
        summary = recalculate_book_rating(store, 99999)

        assert summary == RatingSummary()

    def test_recalculate_all_repairs_drift(
        self,
        store: EntityStore,
        db_session: Session,
        make_book,
        user: User,
    ):
        first = make_book(title="First")
        second = make_book(title="Second")
        store.insert(Review, book_id=first.id, user_id=user.id, rating=3, review_text="It was fine")
        # Simulate aggregates that drifted away from the reviews
        store.update_by_id(Book, first.id, average_rating=5.0, total_reviews=9)
        store.update_by_id(Book, second.id, average_rating=2.0, total_reviews=1)
        store.commit()

        updated = recalculate_all_book_ratings(store)

        db_session.refresh(first)
        db_session.refresh(second)
        assert updated == 2
        assert (first.average_rating, first.total_reviews) == (3.0, 1)
        assert (second.average_rating, second.total_reviews) == (0.0, 0)
