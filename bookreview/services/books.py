"""
Book Lifecycle Service

Creation, update and soft deletion of books, with the bookkeeping each one
implies:

    create -> insert with zeroed aggregates, owner's books_count +1
    update -> patch descriptive fields only
    delete -> status=deleted on the book and on every one of its reviews,
              owner's books_count -1, reviews_count -1 for each author whose
              review was still active, book aggregates recomputed (0/0)

average_rating and total_reviews are owned by services.ratings and can
never be set through this service. Neither can owner_id or status.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from bookreview.exceptions import ForbiddenError, NotFoundError, ValidationError
from bookreview.models import Book, RecordStatus, Review, User
from bookreview.models.book import MIN_PUBLISHED_YEAR, BookGenre
from bookreview.services import counters, ratings
from bookreview.store import EntityStore

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "author",
        "description",
        "genre",
        "published_year",
        "isbn",
        "pages",
        "language",
        "publisher",
        "tags",
        "cover_image",
    }
)


def check_book_fields(values: dict[str, Any]) -> dict[str, Any]:
    """
    Check genre and published_year for callers that bypass the schemas.

    Returns the values with genre normalized to its plain string value.

    Raises:
        ValidationError: Unknown genre or year outside 1000..current year
    """
    checked = dict(values)

    if "genre" in checked:
        try:
            checked["genre"] = BookGenre(checked["genre"]).value
        except ValueError:
            raise ValidationError(
                f"Unknown genre: {checked['genre']!r}",
                resource="book",
            ) from None

    year = checked.get("published_year")
    if year is not None:
        current_year = datetime.now(UTC).year
        if not MIN_PUBLISHED_YEAR <= year <= current_year:
            raise ValidationError(
                f"Published year must be between {MIN_PUBLISHED_YEAR} and {current_year}, got {year}",
                resource="book",
            )

    return checked


class BookService:
    """Lifecycle operations on books."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def get_active(self, book_id: int) -> Book:
        """Return an active book or raise NotFoundError."""
        book = self.store.get(Book, book_id)
        if book is None:
            raise NotFoundError(
                f"Book with ID {book_id} not found",
                resource="book",
                identifier=book_id,
            )
        return book

    def _get_editable(self, book_id: int, requester: User, action: str) -> Book:
        book = self.get_active(book_id)
        if book.owner_id != requester.id and not requester.is_admin:
            raise ForbiddenError(
                f"Not authorized to {action} this book",
                resource="book",
                identifier=book_id,
            )
        return book

    def create(self, owner: User, fields: dict[str, Any]) -> Book:
        """
        Add a book owned by `owner`.

        Raises:
            ValidationError: Unknown genre or impossible publication year
            ConflictError: Another book already has this ISBN
        """
        values = check_book_fields(
            {key: value for key, value in fields.items() if key in UPDATABLE_FIELDS}
        )
        book = self.store.insert(
            Book,
            **values,
            owner_id=owner.id,
            average_rating=0,
            total_reviews=0,
            status=RecordStatus.ACTIVE.value,
        )
        counters.book_created(self.store, owner.id)
        self.store.commit()

        logger.info(f"Book created: {book.id} '{book.title}' by user {owner.id}")
        return book

    def update(self, book_id: int, requester: User, patch: dict[str, Any]) -> Book:
        """
        Update a book's descriptive fields.

        Raises:
            NotFoundError: Book missing or deleted
            ForbiddenError: Requester is neither the owner nor an admin
            ValidationError: Unknown genre or impossible publication year
            ConflictError: New ISBN collides with another book
        """
        book = self._get_editable(book_id, requester, "update")

        changes = check_book_fields(
            {key: value for key, value in patch.items() if key in UPDATABLE_FIELDS}
        )
        if changes:
            self.store.update_by_id(Book, book_id, **changes)
            self.store.commit()

        logger.info(f"Book updated: {book_id} ({', '.join(sorted(changes)) or 'no changes'})")
        return book

    def delete(self, book_id: int, requester: User) -> int:
        """
        Soft delete a book and cascade to its reviews.

        Returns:
            Number of reviews that were active and got deleted with the book

        Raises:
            NotFoundError: Book missing or already deleted
            ForbiddenError: Requester is neither the owner nor an admin
        """
        book = self._get_editable(book_id, requester, "delete")
        owner_id = book.owner_id

        active_reviews = self.store.find(Review, Review.book_id == book_id)
        author_ids = [review.user_id for review in active_reviews]

        self.store.update_by_id(Book, book_id, status=RecordStatus.DELETED.value)
        self.store.update_many(
            Review,
            Review.book_id == book_id,
            status=RecordStatus.DELETED.value,
        )

        counters.book_deleted(self.store, owner_id)
        for author_id in author_ids:
            counters.review_deleted(self.store, author_id)

        ratings.recalculate_book_rating(self.store, book_id)
        self.store.commit()

        logger.info(
            f"Book deleted: {book_id} by user {requester.id} "
            f"({len(author_ids)} reviews cascaded)"
        )
        return len(author_ids)
