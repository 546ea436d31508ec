"""
SQLAlchemy Models Package

Model Relationships:
- User -> Book: One-to-Many (owner_id)
- User -> Review: One-to-Many (user_id)
- Book -> Review: One-to-Many (book_id)

Import all models here so they are registered with Base.metadata
before Alembic or create_all() runs.
"""

from bookreview.models.status import RecordStatus, SoftDeleteMixin
from bookreview.models.user import User, UserRole
from bookreview.models.book import Book, BookGenre
from bookreview.models.review import ReadingStatus, Review

__all__ = [
    "RecordStatus",
    "SoftDeleteMixin",
    "User",
    "UserRole",
    "Book",
    "BookGenre",
    "Review",
    "ReadingStatus",
]
