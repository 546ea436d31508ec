"""
Book Pydantic Schemas

Handles:
- Genre validation against the closed BookGenre set
- ISBN validation (10 or 13 digits, hyphens allowed, stored without them)
- Published year bounded by the current year
- Tag normalization (lowercase, trimmed, de-duplicated, max 10)
- Pagination for list responses

average_rating, total_reviews and owner_id are response-only: clients
can never send them.
"""

import re
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookreview.models.book import MIN_PUBLISHED_YEAR, BookGenre

# 10 or 13 digits, optionally separated by hyphens
ISBN_PATTERN = re.compile(r"^(?=(?:\D*\d){10}(?:(?:\D*\d){3})?$)[\d-]+$")

MAX_TAGS = 10
MAX_TAG_LENGTH = 30


def normalize_isbn(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        return None
    if not ISBN_PATTERN.match(v):
        raise ValueError("ISBN must contain 10 or 13 digits, optionally separated by hyphens")
    return v.replace("-", "")


def normalize_tags(v: list[str] | None) -> list[str] | None:
    """
    Lowercase and trim tags, dropping blanks and duplicates.

    Example:
        >>> normalize_tags(["  Classic ", "classic", "Dystopia", ""])
        ['classic', 'dystopia']
    """
    if v is None:
        return v
    if len(v) > MAX_TAGS:
        raise ValueError(f"Maximum {MAX_TAGS} tags allowed")

    tags: list[str] = []
    for raw in v:
        tag = raw.strip().lower()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Each tag must be at most {MAX_TAG_LENGTH} characters")
        if tag not in tags:
            tags.append(tag)
    return tags


def check_published_year(v: int | None) -> int | None:
    if v is None:
        return v
    current_year = datetime.now(UTC).year
    if not MIN_PUBLISHED_YEAR <= v <= current_year:
        raise ValueError(
            f"Published year must be between {MIN_PUBLISHED_YEAR} and {current_year}"
        )
    return v


def strip_required(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Field cannot be empty or whitespace")
    return v


class BookCreate(BaseModel):
    """
    Schema for adding a book.

    Example request body:
    {
        "title": "1984",
        "author": "George Orwell",
        "description": "A dystopian novel set in a totalitarian society.",
        "genre": "Fiction",
        "published_year": 1949,
        "isbn": "978-0451524935",
        "tags": ["Classic", "dystopia"]
    }
    """

    title: str = Field(..., min_length=1, max_length=200, examples=["1984"])
    author: str = Field(..., min_length=1, max_length=100, examples=["George Orwell"])
    description: str = Field(
        ...,
        min_length=10,
        max_length=2000,
        examples=["A dystopian novel set in a totalitarian society."],
    )
    genre: BookGenre = Field(..., description="One of the supported genres")
    published_year: int = Field(..., description="Year of first publication", examples=[1949])
    isbn: str | None = Field(default=None, max_length=20, examples=["978-0451524935"])
    pages: int | None = Field(default=None, ge=1, le=10000)
    language: str = Field(default="English", max_length=50)
    publisher: str | None = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list, description="Up to 10 tags")
    cover_image: str | None = Field(default=None, max_length=2048, description="Cover image URL")

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "author", "description")
    @classmethod
    def text_must_not_be_blank(cls, v: str | None) -> str | None:
        return strip_required(v)

    @field_validator("published_year")
    @classmethod
    def year_must_not_be_in_future(cls, v: int | None) -> int | None:
        return check_published_year(v)

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        return normalize_isbn(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return normalize_tags(v)


class BookUpdate(BaseModel):
    """
    Schema for updating a book.

    All fields are optional for PATCH-style updates.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    author: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=2000)
    genre: BookGenre | None = None
    published_year: int | None = None
    isbn: str | None = Field(default=None, max_length=20)
    pages: int | None = Field(default=None, ge=1, le=10000)
    language: str | None = Field(default=None, max_length=50)
    publisher: str | None = Field(default=None, max_length=100)
    tags: list[str] | None = None
    cover_image: str | None = Field(default=None, max_length=2048)

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "author", "description")
    @classmethod
    def text_must_not_be_blank(cls, v: str | None) -> str | None:
        return strip_required(v)

    @field_validator("published_year")
    @classmethod
    def year_must_not_be_in_future(cls, v: int | None) -> int | None:
        return check_published_year(v)

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        return normalize_isbn(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return normalize_tags(v)

    def to_patch(self) -> dict:
        """
        Fields the client actually sent.

        An explicit null clears an optional field; for required columns
        it is ignored.
        """
        clearable = {"isbn", "pages", "publisher", "cover_image"}
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in clearable
        }


class BookOwner(BaseModel):
    """Minimal info about the user who added a book."""

    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class BookResponse(BaseModel):
    """
    Schema for book responses.

    average_rating is 0 and total_reviews is 0 when the book has no
    active reviews.
    """

    id: int = Field(..., description="Unique identifier")
    title: str
    author: str
    description: str
    genre: str
    published_year: int
    isbn: str | None = None
    pages: int | None = None
    language: str
    publisher: str | None = None
    tags: list[str] = Field(default_factory=list)
    cover_image: str | None = None

    owner_id: int = Field(..., description="User who added the book")
    owner: BookOwner | None = None

    average_rating: float = Field(..., ge=0, le=5, description="Mean rating, one decimal")
    total_reviews: int = Field(..., ge=0, description="Number of active reviews")

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "1984",
                "author": "George Orwell",
                "description": "A dystopian novel set in a totalitarian society.",
                "genre": "Fiction",
                "published_year": 1949,
                "isbn": "9780451524935",
                "pages": 328,
                "language": "English",
                "publisher": "Secker & Warburg",
                "tags": ["classic", "dystopia"],
                "cover_image": None,
                "owner_id": 7,
                "owner": {"id": 7, "name": "Jane Reader"},
                "average_rating": 4.3,
                "total_reviews": 42,
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )


class BookListResponse(BaseModel):
    """
    Schema for paginated book list responses.

    - total: Total number of books matching the query
    - page: Current page number
    - per_page: Number of items per page
    - pages: Total number of pages
    """

    items: list[BookResponse] = Field(..., description="Books on this page")
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1, le=100)
    pages: int = Field(..., ge=0)


class GenreCount(BaseModel):
    """A genre and the number of active books filed under it."""

    name: str
    count: int = Field(..., ge=0)


class GenreListResponse(BaseModel):
    """All genres sorted by book count, most popular first."""

    genres: list[GenreCount]
    total_books: int = Field(..., ge=0)
