"""
Review Pydantic Schemas

Schemas:
- ReviewCreate: Create a new review
- ReviewUpdate: Update an existing review (partial)
- ReviewResponse: Review with nested author and book
- ReviewListResponse: Paginated list of reviews
- RatingStats: Average, count and 1-5 distribution
- BookReviewListResponse: A book's reviews plus its rating stats
- UserReviewListResponse: A user's reviews plus the ratings they give

Business Rules:
- Rating must be 1-5 (validated at schema level)
- One active review per user per book (enforced by the service and a
  partial unique index)
- Only the author or an admin can edit/delete a review
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookreview.models.review import ReadingStatus


def _clean_title(v: str | None) -> str | None:
    if v is not None:
        v = v.strip()
        if not v:
            return None
    return v


def _clean_text(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if len(v) < 10:
        raise ValueError("Review text must be between 10 and 1000 characters")
    return v


# =============================================================================
# Embedded Schemas
# =============================================================================


class ReviewAuthor(BaseModel):
    """Who wrote the review."""

    id: int
    name: str
    reviews_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class ReviewedBook(BaseModel):
    """Just enough of the book to identify it in review listings."""

    id: int
    title: str
    author: str
    average_rating: float = 0
    total_reviews: int = 0

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Review Schemas
# =============================================================================


class ReviewCreate(BaseModel):
    """
    Schema for creating a new review.

    Example request body:
    {
        "rating": 5,
        "review_text": "One of the best books I've ever read.",
        "title": "Amazing book!",
        "reading_status": "completed",
        "spoiler_alert": false
    }
    """

    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5 stars")
    review_text: str = Field(..., min_length=10, max_length=1000)
    title: str | None = Field(default=None, max_length=100)
    reading_status: ReadingStatus = ReadingStatus.COMPLETED
    spoiler_alert: bool = False

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title")
    @classmethod
    def title_blank_to_none(cls, v: str | None) -> str | None:
        return _clean_title(v)

    @field_validator("review_text")
    @classmethod
    def text_must_have_content(cls, v: str) -> str:
        return _clean_text(v)


class ReviewUpdate(BaseModel):
    """
    Schema for updating an existing review.

    All fields are optional for PATCH-style updates.
    """

    rating: int | None = Field(default=None, ge=1, le=5)
    review_text: str | None = Field(default=None, min_length=10, max_length=1000)
    title: str | None = Field(default=None, max_length=100)
    reading_status: ReadingStatus | None = None
    spoiler_alert: bool | None = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title")
    @classmethod
    def title_blank_to_none(cls, v: str | None) -> str | None:
        return _clean_title(v)

    @field_validator("review_text")
    @classmethod
    def text_must_have_content(cls, v: str | None) -> str | None:
        return _clean_text(v)

    def to_patch(self) -> dict:
        """Fields the client sent; null only clears the title."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key == "title"
        }


class ReviewResponse(BaseModel):
    """
    Schema for review responses.

    Includes nested user (author) and book info.
    """

    id: int = Field(..., description="Unique review identifier")
    book_id: int
    user_id: int
    rating: int = Field(..., ge=1, le=5)
    title: str | None = None
    review_text: str
    reading_status: str
    spoiler_alert: bool
    helpful_votes: int = Field(default=0, ge=0)
    is_reported: bool = False
    created_at: datetime
    updated_at: datetime

    user: ReviewAuthor
    book: ReviewedBook

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "book_id": 42,
                "user_id": 7,
                "rating": 5,
                "title": "A must-read classic!",
                "review_text": "This book completely changed my perspective on...",
                "reading_status": "completed",
                "spoiler_alert": False,
                "helpful_votes": 12,
                "is_reported": False,
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
                "user": {"id": 7, "name": "Jane Reader", "reviews_count": 4},
                "book": {
                    "id": 42,
                    "title": "1984",
                    "author": "George Orwell",
                    "average_rating": 4.3,
                    "total_reviews": 42,
                },
            }
        },
    )


class ReviewListResponse(BaseModel):
    """
    Schema for paginated review list responses.

    - total: Total number of reviews
    - page: Current page number
    - per_page: Number of items per page
    - pages: Total number of pages
    """

    items: list[ReviewResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1, le=100)
    pages: int = Field(..., ge=0)


# =============================================================================
# Aggregation Schemas
# =============================================================================


class RatingStats(BaseModel):
    """
    Aggregated rating statistics.

    rating_distribution always has the keys 1-5.
    """

    average_rating: float = Field(..., ge=0, le=5, description="0 means no reviews")
    total_reviews: int = Field(..., ge=0)
    rating_distribution: dict[int, int]

    model_config = ConfigDict(from_attributes=True)


class BookRatingStats(RatingStats):
    """Rating statistics of one book."""

    book_id: int


class BookReviewListResponse(ReviewListResponse):
    """A book's reviews together with its rating stats."""

    book: ReviewedBook
    rating_stats: RatingStats


class ReviewerStats(RatingStats):
    """A user's reviewing activity: the ratings they gave."""

    user_id: int
    name: str
    reviews_count: int
    joined_at: datetime


class UserReviewListResponse(ReviewListResponse):
    """A user's reviews together with their rating stats."""

    user: ReviewerStats


class ReviewCheckResponse(BaseModel):
    """Whether the caller already has an active review of a book."""

    has_reviewed: bool
    review: ReviewResponse | None = None


class HelpfulVoteResponse(BaseModel):
    """Result of marking a review helpful."""

    review_id: int
    helpful_votes: int
