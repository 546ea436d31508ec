"""
Reviews Router

Endpoints:
- GET    /books/{book_id}/reviews         - Reviews of a book with rating stats
- GET    /books/{book_id}/rating          - Rating stats of a book
- GET    /books/{book_id}/reviews/helpful - Most helpful reviews of a book
- GET    /books/{book_id}/reviews/check   - Has the caller reviewed this book?
- POST   /books/{book_id}/reviews         - Create a review (authenticated)
- GET    /reviews/me                      - The caller's reviews
- GET    /reviews/{review_id}             - Get a review
- PUT    /reviews/{review_id}             - Update a review (author or admin)
- DELETE /reviews/{review_id}             - Delete a review (author or admin)
- POST   /reviews/{review_id}/helpful     - Vote a review helpful (not the author)
- POST   /reviews/{review_id}/report      - Flag a review for moderation
- GET    /users/{user_id}/reviews         - Reviews written by a user

Business Rules:
- One active review per user per book (409 on a second one)
- Deleted reviews and reviews of deleted books are invisible
- Every write goes through ReviewService, which keeps book ratings and
  user review counts in step
"""

import logging
from enum import Enum

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy.orm import selectinload

from bookreview.config import get_settings
from bookreview.dependencies import ActiveUser, Pagination, ReviewSvc, Store
from bookreview.models import Book, Review, User
from bookreview.schemas.review import (
    BookRatingStats,
    BookReviewListResponse,
    HelpfulVoteResponse,
    RatingStats,
    ReviewCheckResponse,
    ReviewCreate,
    ReviewedBook,
    ReviewerStats,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
    UserReviewListResponse,
)
from bookreview.services.rate_limiter import limiter
from bookreview.services.ratings import get_rating_stats, summarize_distribution

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    tags=["Reviews"],
    responses={404: {"description": "Review or book not found"}},
)


class ReviewSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    HELPFUL = "helpful"
    RATING_HIGH = "rating-high"
    RATING_LOW = "rating-low"


SORT_ORDERS = {
    ReviewSort.NEWEST: (Review.created_at.desc(), Review.id.desc()),
    ReviewSort.OLDEST: (Review.created_at.asc(), Review.id.asc()),
    ReviewSort.HELPFUL: (Review.helpful_votes.desc(), Review.created_at.desc(), Review.id.desc()),
    ReviewSort.RATING_HIGH: (Review.rating.desc(), Review.created_at.desc(), Review.id.desc()),
    ReviewSort.RATING_LOW: (Review.rating.asc(), Review.created_at.desc(), Review.id.desc()),
}

LOAD_RELATED = (selectinload(Review.user), selectinload(Review.book))


# =============================================================================
# Helper Functions
# =============================================================================
def get_book_or_404(store: Store, book_id: int) -> Book:
    book = store.get(Book, book_id)
    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Book with id {book_id} not found",
        )
    return book


def get_user_or_404(store: Store, user_id: int) -> User:
    """Active account or 404; deactivated users are hidden like missing ones."""
    user = store.find_one(User, User.id == user_id, User.is_active.is_(True))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found",
        )
    return user


def find_reviews_page(
    store: Store,
    pagination: Pagination,
    criteria: list,
    sort: ReviewSort | None = None,
) -> tuple[list[ReviewResponse], int]:
    total = store.count(Review, *criteria)
    reviews = store.find(
        Review,
        *criteria,
        order_by=SORT_ORDERS[sort or ReviewSort.NEWEST],
        skip=pagination.skip,
        limit=pagination.per_page,
        options=LOAD_RELATED,
    )
    return [ReviewResponse.model_validate(review) for review in reviews], total


def load_review(store: Store, review: Review) -> ReviewResponse:
    """Reload a review with its relations after a write."""
    fresh = store.get(Review, review.id, options=LOAD_RELATED, include_deleted=True)
    return ReviewResponse.model_validate(fresh)


# =============================================================================
# Book Review Endpoints
# =============================================================================
@router.get(
    "/books/{book_id}/reviews",
    response_model=BookReviewListResponse,
    summary="List reviews for a book",
)
@limiter.limit(settings.rate_limit_default)
def list_book_reviews(
    request: Request,
    book_id: int,
    store: Store,
    pagination: Pagination,
    sort: ReviewSort | None = Query(default=None, description="newest by default"),
) -> BookReviewListResponse:
    book = get_book_or_404(store, book_id)
    items, total = find_reviews_page(store, pagination, [Review.book_id == book_id], sort)
    summary = get_rating_stats(store, book_id)

    return BookReviewListResponse(
        items=items,
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
        book=ReviewedBook.model_validate(book),
        rating_stats=RatingStats.model_validate(summary),
    )


@router.get(
    "/books/{book_id}/rating",
    response_model=BookRatingStats,
    summary="Get book rating statistics",
)
@limiter.limit(settings.rate_limit_default)
def get_book_rating(
    request: Request,
    book_id: int,
    store: Store,
) -> BookRatingStats:
    get_book_or_404(store, book_id)
    summary = get_rating_stats(store, book_id)
    return BookRatingStats(
        book_id=book_id,
        average_rating=summary.average_rating,
        total_reviews=summary.total_reviews,
        rating_distribution=summary.rating_distribution,
    )


@router.get(
    "/books/{book_id}/reviews/helpful",
    response_model=list[ReviewResponse],
    summary="Most helpful reviews of a book",
)
@limiter.limit(settings.rate_limit_default)
def most_helpful_reviews(
    request: Request,
    book_id: int,
    store: Store,
    limit: int = Query(default=5, ge=1, le=20),
) -> list[ReviewResponse]:
    get_book_or_404(store, book_id)
    reviews = store.find(
        Review,
        Review.book_id == book_id,
        order_by=SORT_ORDERS[ReviewSort.HELPFUL],
        limit=limit,
        options=LOAD_RELATED,
    )
    return [ReviewResponse.model_validate(review) for review in reviews]


@router.get(
    "/books/{book_id}/reviews/check",
    response_model=ReviewCheckResponse,
    summary="Check whether the caller reviewed a book",
)
def check_user_review(
    book_id: int,
    store: Store,
    current_user: ActiveUser,
) -> ReviewCheckResponse:
    review = store.find_one(
        Review,
        Review.book_id == book_id,
        Review.user_id == current_user.id,
        options=LOAD_RELATED,
    )
    return ReviewCheckResponse(
        has_reviewed=review is not None,
        review=ReviewResponse.model_validate(review) if review else None,
    )


@router.post(
    "/books/{book_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a review",
    responses={409: {"description": "You already reviewed this book"}},
)
@limiter.limit(settings.rate_limit_write)
def create_review(
    request: Request,
    book_id: int,
    review_data: ReviewCreate,
    store: Store,
    service: ReviewSvc,
    current_user: ActiveUser,
) -> ReviewResponse:
    review = service.create(book_id, current_user, **review_data.model_dump())
    return load_review(store, review)


# =============================================================================
# Single Review Endpoints
# =============================================================================
@router.get(
    "/reviews/me",
    response_model=ReviewListResponse,
    summary="List my reviews",
)
def list_my_reviews(
    store: Store,
    pagination: Pagination,
    current_user: ActiveUser,
    sort: ReviewSort | None = Query(default=None),
) -> ReviewListResponse:
    items, total = find_reviews_page(store, pagination, [Review.user_id == current_user.id], sort)
    return ReviewListResponse(
        items=items,
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )


@router.get(
    "/reviews/{review_id}",
    response_model=ReviewResponse,
    summary="Get a review",
)
@limiter.limit(settings.rate_limit_default)
def get_review(
    request: Request,
    review_id: int,
    store: Store,
    service: ReviewSvc,
) -> ReviewResponse:
    return load_review(store, service.get_active(review_id))


@router.put(
    "/reviews/{review_id}",
    response_model=ReviewResponse,
    summary="Update a review",
)
@limiter.limit(settings.rate_limit_write)
def update_review(
    request: Request,
    review_id: int,
    review_data: ReviewUpdate,
    store: Store,
    service: ReviewSvc,
    current_user: ActiveUser,
) -> ReviewResponse:
    review = service.update(review_id, current_user, review_data.to_patch())
    return load_review(store, review)


@router.delete(
    "/reviews/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a review",
)
@limiter.limit(settings.rate_limit_write)
def delete_review(
    request: Request,
    review_id: int,
    service: ReviewSvc,
    current_user: ActiveUser,
) -> None:
    service.delete(review_id, current_user)


@router.post(
    "/reviews/{review_id}/helpful",
    response_model=HelpfulVoteResponse,
    summary="Mark a review as helpful",
    responses={403: {"description": "Cannot vote on your own review"}},
)
@limiter.limit(settings.rate_limit_write)
def mark_review_helpful(
    request: Request,
    review_id: int,
    service: ReviewSvc,
    current_user: ActiveUser,
) -> HelpfulVoteResponse:
    votes = service.mark_helpful(review_id, current_user)
    return HelpfulVoteResponse(review_id=review_id, helpful_votes=votes)


@router.post(
    "/reviews/{review_id}/report",
    response_model=ReviewResponse,
    summary="Report a review",
)
@limiter.limit(settings.rate_limit_write)
def report_review(
    request: Request,
    review_id: int,
    store: Store,
    service: ReviewSvc,
    current_user: ActiveUser,
) -> ReviewResponse:
    review = service.report(review_id, current_user)
    return load_review(store, review)


# =============================================================================
# User Review Endpoints
# =============================================================================
@router.get(
    "/users/{user_id}/reviews",
    response_model=UserReviewListResponse,
    summary="Get reviews by a user",
)
@limiter.limit(settings.rate_limit_default)
def list_user_reviews(
    request: Request,
    user_id: int,
    store: Store,
    pagination: Pagination,
) -> UserReviewListResponse:
    user = get_user_or_404(store, user_id)
    criteria = [Review.user_id == user_id]
    items, total = find_reviews_page(store, pagination, criteria)
    summary = summarize_distribution(store.group_count(Review, Review.rating, *criteria))

    return UserReviewListResponse(
        items=items,
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
        user=ReviewerStats(
            user_id=user.id,
            name=user.name,
            reviews_count=user.reviews_count,
            joined_at=user.created_at,
            average_rating=summary.average_rating,
            total_reviews=summary.total_reviews,
            rating_distribution=summary.rating_distribution,
        ),
    )
