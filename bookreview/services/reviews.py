"""
Review Lifecycle Service

Every mutation of a review goes through ReviewService so the derived data
stays consistent with it:

    create  -> insert, author's reviews_count +1, recompute book rating
    update  -> patch whitelisted fields, recompute book rating
    delete  -> status=deleted, author's reviews_count -1, recompute book rating
    helpful -> helpful_votes +1 (atomic)

Each operation commits exactly once at the end. If any step fails the
session is rolled back and none of the operation's writes persist.

State of a (book, user) pair:
    NONE -> ACTIVE -> DELETED
DELETED is terminal for that row. The user may write a new review
afterwards because deleted rows do not count toward the
one-active-review-per-book rule.
"""

import logging
from typing import Any

from bookreview.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from bookreview.models import Book, RecordStatus, Review, User
from bookreview.services import counters, ratings
from bookreview.store import EntityStore

logger = logging.getLogger(__name__)

# Fields a review author (or admin) may change after creation
UPDATABLE_FIELDS = frozenset(
    {"rating", "review_text", "title", "reading_status", "spoiler_alert"}
)

MIN_RATING, MAX_RATING = 1, 5


def check_rating(rating: int) -> None:
    # Request bodies are validated by the schemas; scripts call in directly
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}",
            resource="review",
        )


class ReviewService:
    """
    Lifecycle operations on reviews.

    Example:
        service = ReviewService(EntityStore(db))
        review = service.create(book.id, user, rating=5, review_text="Loved every page")
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------
    def get_active(self, review_id: int) -> Review:
        """Return an active review or raise NotFoundError."""
        review = self.store.get(Review, review_id)
        if review is None:
            raise NotFoundError(
                f"Review with ID {review_id} not found",
                resource="review",
                identifier=review_id,
            )
        return review

    def _get_editable(self, review_id: int, requester: User, action: str) -> Review:
        review = self.get_active(review_id)
        if review.user_id != requester.id and not requester.is_admin:
            raise ForbiddenError(
                f"Not authorized to {action} this review",
                resource="review",
                identifier=review_id,
            )
        return review

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------
    def create(
        self,
        book_id: int,
        user: User,
        *,
        rating: int,
        review_text: str,
        title: str | None = None,
        reading_status: str = "completed",
        spoiler_alert: bool = False,
    ) -> Review:
        """
        Create a review of an active book.

        Raises:
            NotFoundError: Book missing or deleted
            ConflictError: The user already has an active review of the book
            ValidationError: Rating outside 1..5
        """
        check_rating(rating)
        book = self.store.get(Book, book_id)
        if book is None:
            raise NotFoundError(
                f"Book with ID {book_id} not found",
                resource="book",
                identifier=book_id,
            )

        existing = self.store.find_one(
            Review,
            Review.book_id == book_id,
            Review.user_id == user.id,
        )
        if existing is not None:
            logger.warning(f"User {user.id} attempted a second review of book {book_id}")
            raise ConflictError(
                "You have already reviewed this book. Update your existing review instead.",
                resource="review",
                identifier=existing.id,
            )

        # A concurrent duplicate that passed the check above trips the
        # partial unique index here and surfaces as ConflictError.
        review = self.store.insert(
            Review,
            book_id=book_id,
            user_id=user.id,
            rating=rating,
            review_text=review_text,
            title=title,
            reading_status=reading_status,
            spoiler_alert=spoiler_alert,
        )

        counters.review_created(self.store, user.id)
        ratings.recalculate_book_rating(self.store, book_id)
        self.store.commit()

        logger.info(f"Review created: {review.id} on book {book_id} by user {user.id}")
        return review

    def update(self, review_id: int, requester: User, patch: dict[str, Any]) -> Review:
        """
        Update a review's content.

        Only UPDATABLE_FIELDS are applied; anything else in the patch is
        ignored. The book rating is recomputed whether or not the rating
        changed.

        Raises:
            NotFoundError: Review missing or deleted
            ForbiddenError: Requester is neither the author nor an admin
        """
        review = self._get_editable(review_id, requester, "update")

        changes = {key: value for key, value in patch.items() if key in UPDATABLE_FIELDS}
        if "rating" in changes:
            check_rating(changes["rating"])
        if changes:
            self.store.update_by_id(Review, review_id, **changes)

        ratings.recalculate_book_rating(self.store, review.book_id)
        self.store.commit()

        logger.info(f"Review updated: {review_id} ({', '.join(sorted(changes)) or 'no changes'})")
        return review

    def delete(self, review_id: int, requester: User) -> None:
        """
        Soft delete a review.

        The counter decremented is the AUTHOR's, which differs from the
        requester when an admin deletes someone else's review.

        Raises:
            NotFoundError: Review missing or already deleted
            ForbiddenError: Requester is neither the author nor an admin
        """
        review = self._get_editable(review_id, requester, "delete")
        book_id, author_id = review.book_id, review.user_id

        self.store.update_by_id(Review, review_id, status=RecordStatus.DELETED.value)
        counters.review_deleted(self.store, author_id)
        ratings.recalculate_book_rating(self.store, book_id)
        self.store.commit()

        logger.info(f"Review deleted: {review_id} by user {requester.id}")

    def mark_helpful(self, review_id: int, requester: User) -> int:
        """
        Record a "helpful" vote.

        Votes are not de-duplicated per voter; repeated calls keep counting.

        Returns:
            The review's new helpful_votes

        Raises:
            NotFoundError: Review missing or deleted
            ForbiddenError: Requester wrote the review
        """
        review = self.get_active(review_id)
        if review.user_id == requester.id:
            raise ForbiddenError(
                "You cannot mark your own review as helpful",
                resource="review",
                identifier=review_id,
            )

        self.store.increment_field(Review, review_id, "helpful_votes", 1)
        self.store.commit()

        return review.helpful_votes

    def report(self, review_id: int, requester: User) -> Review:
        """
        Flag a review for moderation.

        Raises:
            NotFoundError: Review missing or deleted
            ForbiddenError: Requester wrote the review
        """
        review = self.get_active(review_id)
        if review.user_id == requester.id:
            raise ForbiddenError(
                "You cannot report your own review",
                resource="review",
                identifier=review_id,
            )

        self.store.update_by_id(Review, review_id, is_reported=True)
        self.store.commit()

        logger.info(f"Review reported: {review_id} by user {requester.id}")
        return review
