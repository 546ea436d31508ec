"""
Books Router

Endpoints:
- GET    /books/               - List books (search, genre filter, sort)
- GET    /books/genres         - All genres with active book counts
- GET    /books/popular        - Highest rated books
- GET    /books/recent         - Newest books
- GET    /books/search         - Search with rating/year filters
- GET    /books/user/{user_id} - Books added by a user
- GET    /books/{book_id}      - Get a book
- POST   /books/               - Add a book (authenticated)
- PUT    /books/{book_id}      - Update a book (owner or admin)
- DELETE /books/{book_id}      - Soft delete a book and its reviews (owner or admin)

Fixed paths are registered before /{book_id} so they are not captured
by the id route.
"""

import logging
from enum import Enum

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import selectinload

from bookreview.config import get_settings
from bookreview.dependencies import ActiveUser, BookSvc, Pagination, Store
from bookreview.models.book import Book, BookGenre
from bookreview.models.user import User
from bookreview.schemas.book import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    GenreCount,
    GenreListResponse,
)
from bookreview.services.rate_limiter import limiter

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={404: {"description": "Book not found"}},
)


class BookSort(str, Enum):
    TITLE = "title"
    AUTHOR = "author"
    YEAR = "year"
    NEWEST = "newest"
    OLDEST = "oldest"
    RATING = "rating"
    CREATED = "created"
    UPDATED = "updated"


SORT_ORDERS = {
    BookSort.TITLE: (Book.title.asc(),),
    BookSort.AUTHOR: (Book.author.asc(),),
    BookSort.YEAR: (Book.published_year.desc(),),
    BookSort.NEWEST: (Book.published_year.desc(),),
    BookSort.OLDEST: (Book.published_year.asc(),),
    BookSort.RATING: (Book.average_rating.desc(), Book.total_reviews.desc()),
    BookSort.CREATED: (Book.created_at.desc(),),
    BookSort.UPDATED: (Book.updated_at.desc(),),
}

LOAD_OWNER = (selectinload(Book.owner),)

ALL_GENRES = "all"
GENRE_QUERY_HELP = f"One of the genres listed by /books/genres, or '{ALL_GENRES}'"


# =============================================================================
# Helper Functions
# =============================================================================
def text_match(term: str):
    """Case-insensitive substring match over title, author, description and tags."""
    return or_(
        Book.title.icontains(term, autoescape=True),
        Book.author.icontains(term, autoescape=True),
        Book.description.icontains(term, autoescape=True),
        cast(Book.tags, String).icontains(term.lower(), autoescape=True),
    )


def genre_filter(genre: str | None) -> list:
    """Criteria for the genre query parameter; "all" means no filter."""
    if genre is None or genre == ALL_GENRES:
        return []
    try:
        return [Book.genre == BookGenre(genre).value]
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown genre '{genre}'",
        ) from None


def order_for(sort: BookSort | None) -> list:
    order = list(SORT_ORDERS.get(sort, (Book.created_at.desc(),)))
    order.append(Book.id.desc())
    return order


def paginate_books(store: Store, pagination: Pagination, criteria: list, order: list) -> BookListResponse:
    total = store.count(Book, *criteria)
    books = store.find(
        Book,
        *criteria,
        order_by=order,
        skip=pagination.skip,
        limit=pagination.per_page,
        options=LOAD_OWNER,
    )
    return BookListResponse(
        items=[BookResponse.model_validate(book) for book in books],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )


# =============================================================================
# Collection Endpoints
# =============================================================================
@router.get(
    "/",
    response_model=BookListResponse,
    summary="List books",
)
@limiter.limit(settings.rate_limit_default)
def list_books(
    request: Request,
    store: Store,
    pagination: Pagination,
    search: str | None = Query(default=None, min_length=1, max_length=100),
    genre: str | None = Query(default=None, description=GENRE_QUERY_HELP),
    sort: BookSort | None = Query(default=None, description="Sort order; newest added first by default"),
) -> BookListResponse:
    criteria = genre_filter(genre)
    if search:
        criteria.append(text_match(search))

    return paginate_books(store, pagination, criteria, order_for(sort))


@router.get(
    "/genres",
    response_model=GenreListResponse,
    summary="List genres with book counts",
)
@limiter.limit(settings.rate_limit_default)
def list_genres(request: Request, store: Store) -> GenreListResponse:
    counts = store.group_count(Book, Book.genre)
    genres = [GenreCount(name=genre.value, count=counts.get(genre.value, 0)) for genre in BookGenre]
    genres.sort(key=lambda g: g.count, reverse=True)

    return GenreListResponse(genres=genres, total_books=sum(g.count for g in genres))


@router.get(
    "/popular",
    response_model=list[BookResponse],
    summary="Most popular books",
    description="Highest average rating first, ties broken by number of reviews.",
)
@limiter.limit(settings.rate_limit_default)
def popular_books(
    request: Request,
    store: Store,
    limit: int = Query(default=10, ge=1, le=50),
) -> list[BookResponse]:
    books = store.find(
        Book,
        order_by=order_for(BookSort.RATING),
        limit=limit,
        options=LOAD_OWNER,
    )
    return [BookResponse.model_validate(book) for book in books]


@router.get(
    "/recent",
    response_model=list[BookResponse],
    summary="Recently added books",
)
@limiter.limit(settings.rate_limit_default)
def recent_books(
    request: Request,
    store: Store,
    limit: int = Query(default=10, ge=1, le=50),
) -> list[BookResponse]:
    books = store.find(
        Book,
        order_by=order_for(BookSort.CREATED),
        limit=limit,
        options=LOAD_OWNER,
    )
    return [BookResponse.model_validate(book) for book in books]


@router.get(
    "/search",
    response_model=BookListResponse,
    summary="Search books",
    description="""
    Substring search over title, author, description and tags, with
    optional genre, minimum rating and publication year filters.
    Results are ordered by rating.
    """,
)
@limiter.limit(settings.rate_limit_search)
def search_books(
    request: Request,
    store: Store,
    pagination: Pagination,
    q: str = Query(..., min_length=1, max_length=100),
    genre: str | None = Query(default=None, description=GENRE_QUERY_HELP),
    min_rating: float | None = Query(default=None, ge=0, le=5),
    min_year: int | None = Query(default=None, ge=1000),
    max_year: int | None = Query(default=None, ge=1000),
) -> BookListResponse:
    criteria = [text_match(q), *genre_filter(genre)]
    if min_rating is not None:
        criteria.append(Book.average_rating >= min_rating)
    if min_year is not None:
        criteria.append(Book.published_year >= min_year)
    if max_year is not None:
        criteria.append(Book.published_year <= max_year)

    return paginate_books(store, pagination, criteria, order_for(BookSort.RATING))


@router.get(
    "/user/{user_id}",
    response_model=BookListResponse,
    summary="Books added by a user",
)
@limiter.limit(settings.rate_limit_default)
def books_by_user(
    request: Request,
    user_id: int,
    store: Store,
    pagination: Pagination,
) -> BookListResponse:
    if store.find_one(User, User.id == user_id, User.is_active.is_(True)) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found",
        )

    return paginate_books(
        store,
        pagination,
        [Book.owner_id == user_id],
        order_for(BookSort.CREATED),
    )


# =============================================================================
# Single Book Endpoints
# =============================================================================
@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get a book by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_book(
    request: Request,
    book_id: int,
    service: BookSvc,
) -> BookResponse:
    return BookResponse.model_validate(service.get_active(book_id))


@router.post(
    "/",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a book",
)
@limiter.limit(settings.rate_limit_write)
def create_book(
    request: Request,
    book_data: BookCreate,
    service: BookSvc,
    current_user: ActiveUser,
) -> BookResponse:
    book = service.create(current_user, book_data.model_dump())
    return BookResponse.model_validate(book)


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Update a book",
    description="Only the user who added the book or an admin may update it.",
)
@limiter.limit(settings.rate_limit_write)
def update_book(
    request: Request,
    book_id: int,
    book_data: BookUpdate,
    service: BookSvc,
    current_user: ActiveUser,
) -> BookResponse:
    book = service.update(book_id, current_user, book_data.to_patch())
    return BookResponse.model_validate(book)


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a book",
    description="Soft delete the book and every review of it. Owner or admin only.",
)
@limiter.limit(settings.rate_limit_write)
def delete_book(
    request: Request,
    book_id: int,
    service: BookSvc,
    current_user: ActiveUser,
) -> None:
    service.delete(book_id, current_user)
