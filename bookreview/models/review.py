"""
Review Model

Represents a user's review of a book, including rating and text content.

Business Rules:
- At most one ACTIVE review per user per book. Enforced by a partial
  unique index, so deleted reviews don't block writing a new one.
- Rating must be 1-5
- Only the author or an admin can edit/delete a review
- Anyone but the author can mark a review as helpful
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookreview.database import Base
from bookreview.models.status import SoftDeleteMixin

if TYPE_CHECKING:
    from bookreview.models.book import Book
    from bookreview.models.user import User


class ReadingStatus(str, Enum):
    """How far the reviewer got with the book."""

    COMPLETED = "completed"
    READING = "reading"
    WANT_TO_READ = "want-to-read"


class Review(SoftDeleteMixin, Base):
    """
    Review model for book reviews.

    Attributes:
        id: Primary key
        book_id: Reviewed book (immutable)
        user_id: Author of the review (immutable)
        rating: 1-5 star rating
        title: Optional headline
        review_text: Review body (10-1000 characters)
        reading_status: completed, reading or want-to-read
        spoiler_alert: Whether the text contains spoilers
        helpful_votes: Number of "helpful" votes from other users
        is_reported: Flag for moderation
        status: active or deleted
    """

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Foreign keys
    book_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("books.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Review content
    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Rating from 1-5 stars",
    )
    title: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Optional review title",
    )
    review_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Review text content",
    )
    reading_status: Mapped[str] = mapped_column(
        String(20),
        default=ReadingStatus.COMPLETED.value,
        nullable=False,
    )
    spoiler_alert: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Moderation fields
    helpful_votes: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Number of helpful votes",
    )
    is_reported: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Flag for moderation review",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    book: Mapped["Book"] = relationship("Book", back_populates="reviews")
    user: Mapped["User"] = relationship("User", back_populates="reviews")

    __table_args__ = (
        # One active review per user per book
        Index(
            "uq_reviews_active_book_user",
            "book_id",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        Index("ix_reviews_book_status_rating", "book_id", "status", "rating"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        CheckConstraint("helpful_votes >= 0", name="ck_reviews_helpful_votes_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, rating={self.rating})>"
