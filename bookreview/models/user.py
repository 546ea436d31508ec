"""
User Model

Represents a registered reader. Besides credentials and profile data, a
user carries two denormalized counters:

- books_count: number of ACTIVE books the user added
- reviews_count: number of ACTIVE reviews the user wrote

Both are caches maintained by services.counters and can always be
re-derived with a count query (see reconcile_user_counters).
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookreview.database import Base

if TYPE_CHECKING:
    from bookreview.models.book import Book
    from bookreview.models.review import Review


class UserRole(str, Enum):
    """
    Roles supported by the system.

    - USER: regular reader, may only modify their own books and reviews
    - ADMIN: may modify or delete anyone's books and reviews
    """
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """
    User model.

    Table: users

    Relationships:
    - books: One-to-Many (books the user added)
    - reviews: One-to-Many (reviews the user wrote)

    Example:
        user = User(
            name="Jane Reader",
            email="jane@example.com",
            hashed_password=hash_password("SecurePass123"),
        )
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Authentication Fields
    # -------------------------------------------------------------------------
    email: Mapped[str] = mapped_column(
        String(254),
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address (used for login)"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    role: Mapped[str] = mapped_column(
        String(10),
        default=UserRole.USER.value,
        nullable=False,
        comment="Role (user, admin)"
    )

    # -------------------------------------------------------------------------
    # Profile Fields
    # -------------------------------------------------------------------------
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Display name"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Whether the account is active"
    )

    # -------------------------------------------------------------------------
    # Counter Caches
    # -------------------------------------------------------------------------
    books_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Cached count of the user's active books"
    )

    reviews_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Cached count of the user's active reviews"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="When the user registered"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the user last logged in"
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    books: Mapped[list["Book"]] = relationship(
        "Book",
        back_populates="owner",
    )

    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="user",
    )

    __table_args__ = (
        CheckConstraint("books_count >= 0", name="ck_users_books_count_non_negative"),
        CheckConstraint("reviews_count >= 0", name="ck_users_reviews_count_non_negative"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"User(id={self.id}, email='{self.email}', role='{self.role}')"
