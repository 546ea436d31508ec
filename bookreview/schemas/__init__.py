"""
Pydantic Schemas Package

Request/response models, kept separate from the SQLAlchemy models so the
API controls exactly what is accepted and exposed.

Schema Naming Convention:
- XxxCreate: Fields required when creating a record
- XxxUpdate: Fields allowed when updating (all optional)
- XxxResponse: Fields returned in API responses
- XxxListResponse: Paginated list (items, total, page, per_page, pages)
"""

from bookreview.schemas.book import (
    BookCreate,
    BookListResponse,
    BookOwner,
    BookResponse,
    BookUpdate,
    GenreCount,
    GenreListResponse,
)
from bookreview.schemas.review import (
    BookRatingStats,
    BookReviewListResponse,
    HelpfulVoteResponse,
    RatingStats,
    ReviewCheckResponse,
    ReviewCreate,
    ReviewerStats,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
    UserReviewListResponse,
)
from bookreview.schemas.user import (
    PasswordChange,
    RefreshTokenRequest,
    TokenResponse,
    UserCreate,
    UserPublicResponse,
    UserResponse,
    UserStatsResponse,
    UserUpdate,
)

__all__ = [
    # Book schemas
    "BookCreate",
    "BookUpdate",
    "BookOwner",
    "BookResponse",
    "BookListResponse",
    "GenreCount",
    "GenreListResponse",
    # Review schemas
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewResponse",
    "ReviewListResponse",
    "BookReviewListResponse",
    "UserReviewListResponse",
    "ReviewCheckResponse",
    "HelpfulVoteResponse",
    "RatingStats",
    "BookRatingStats",
    "ReviewerStats",
    # User schemas
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserPublicResponse",
    "PasswordChange",
    "UserStatsResponse",
    # Auth/Token schemas
    "TokenResponse",
    "RefreshTokenRequest",
]
