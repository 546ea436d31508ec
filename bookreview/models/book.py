"""
Book Model

The central model of the Book Review API.

Derived Fields
==============
average_rating and total_reviews are a materialized view of the book's
ACTIVE reviews. They are written only by services.ratings, which always
recomputes them from the full active review set; nothing else may patch
them. A book with no active reviews has both set to 0.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookreview.database import Base
from bookreview.models.status import SoftDeleteMixin

if TYPE_CHECKING:
    from bookreview.models.review import Review
    from bookreview.models.user import User


MIN_PUBLISHED_YEAR = 1000


class BookGenre(str, Enum):
    """Closed set of genres a book can be filed under."""

    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    MYSTERY = "Mystery"
    ROMANCE = "Romance"
    SCIENCE_FICTION = "Science Fiction"
    FANTASY = "Fantasy"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    SELF_HELP = "Self-Help"
    BUSINESS = "Business"
    THRILLER = "Thriller"
    HORROR = "Horror"
    CHILDREN = "Children"
    YOUNG_ADULT = "Young Adult"
    POETRY = "Poetry"
    PHILOSOPHY = "Philosophy"
    PSYCHOLOGY = "Psychology"
    HEALTH = "Health"
    TRAVEL = "Travel"
    COOKING = "Cooking"
    ART = "Art"
    RELIGION = "Religion"
    POLITICS = "Politics"
    TECHNOLOGY = "Technology"
    EDUCATION = "Education"
    OTHER = "Other"


class Book(SoftDeleteMixin, Base):
    """
    Book model representing books users have added.

    Table: books

    Fields:
    - title, author, description: required text
    - genre: one of BookGenre
    - published_year: 1000..current year
    - isbn: optional, unique when present
    - pages, language, publisher, cover_image: optional details
    - tags: list of lowercase strings (max 10)
    - owner_id: the user who added the book (never changes)
    - average_rating / total_reviews: derived from active reviews
    - status: active or deleted

    Indexes:
    - genre + average_rating for genre browsing sorted by rating
    - owner_id + created_at for "books by user"
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Basic Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(200),
        index=True,
        nullable=False,
        comment="Book title"
    )

    author: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
        comment="Author name"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Book description or summary"
    )

    genre: Mapped[str] = mapped_column(
        String(30),
        index=True,
        nullable=False,
        comment="One of the BookGenre values"
    )

    published_year: Mapped[int] = mapped_column(
        Integer,
        index=True,
        nullable=False,
        comment="Year of publication"
    )

    # Unique when present; NULLs do not collide
    isbn: Mapped[str | None] = mapped_column(
        String(20),
        unique=True,
        nullable=True,
        comment="International Standard Book Number"
    )

    pages: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Number of pages"
    )

    language: Mapped[str] = mapped_column(
        String(50),
        default="English",
        nullable=False,
    )

    publisher: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    tags: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        comment="Normalized lowercase tags"
    )

    cover_image: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="URL of the cover image"
    )

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="User who added the book"
    )

    # -------------------------------------------------------------------------
    # Rating Aggregation (derived)
    # -------------------------------------------------------------------------
    average_rating: Mapped[float] = mapped_column(
        Numeric(2, 1, asdecimal=False),
        default=0,
        nullable=False,
        index=True,
        comment="Mean rating of active reviews, one decimal, 0 if none"
    )

    total_reviews: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Number of active reviews"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="books",
    )

    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="book",
    )

    __table_args__ = (
        CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5",
            name="ck_books_average_rating_range",
        ),
        CheckConstraint("total_reviews >= 0", name="ck_books_total_reviews_non_negative"),
        Index("ix_books_genre_rating", "genre", "average_rating"),
        Index("ix_books_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', status='{self.status}')"
