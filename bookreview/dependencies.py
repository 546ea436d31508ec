"""
Request-scoped dependencies for the routers.

Each request gets one session, wrapped in an EntityStore that the services
share, so a service call commits all of its writes together.
- DbSession / Store: per-request session and the EntityStore over it
- BookSvc / ReviewSvc: lifecycle services bound to the request's store
- Pagination: page / per_page query parameters
- CurrentUser / ActiveUser / AdminUser / OptionalUser: JWT authentication

Usage:
    @router.delete("/{book_id}")
    def delete_book(book_id: int, service: BookSvc, current_user: ActiveUser):
        service.delete(book_id, current_user)
"""

import math
from typing import Annotated

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from bookreview.config import get_settings
from bookreview.database import get_db
from bookreview.models.user import User
from bookreview.services.books import BookService
from bookreview.services.reviews import ReviewService
from bookreview.services.security import ACCESS_TOKEN, token_subject
from bookreview.store import EntityStore

settings = get_settings()

# =============================================================================
# Database, Store and Services
# =============================================================================
DbSession = Annotated[Session, Depends(get_db)]


def get_store(db: DbSession) -> EntityStore:
    return EntityStore(db)


Store = Annotated[EntityStore, Depends(get_store)]


def get_book_service(store: Store) -> BookService:
    return BookService(store)


def get_review_service(store: Store) -> ReviewService:
    return ReviewService(store)


BookSvc = Annotated[BookService, Depends(get_book_service)]
ReviewSvc = Annotated[ReviewService, Depends(get_review_service)]


# =============================================================================
# Pagination Parameters
# =============================================================================
class PaginationParams:
    """
    Common pagination parameters for list endpoints.

    - page: Which page to return (1-indexed)
    - per_page: How many items per page
    - skip: Calculated offset for the database query

    Usage:
        GET /api/v1/books/?page=2&per_page=20
    """

    def __init__(
        self,
        page: int = Query(
            default=1,
            ge=1,
            description="Page number (1-indexed)",
            examples=[1, 2, 3],
        ),
        per_page: int = Query(
            default=settings.default_page_size,
            ge=1,
            le=settings.max_page_size,
            description=f"Number of items per page (max {settings.max_page_size})",
            examples=[10, 25, 50],
        ),
    ) -> None:
        self.page = page
        self.per_page = per_page

    @property
    def skip(self) -> int:
        """Page 1 -> skip 0, page 2 -> skip per_page, and so on."""
        return (self.page - 1) * self.per_page

    def pages(self, total: int) -> int:
        """Total number of pages for `total` items."""
        return math.ceil(total / self.per_page) if total else 0


Pagination = Annotated[PaginationParams, Depends()]


# =============================================================================
# JWT Authentication
# =============================================================================
# Extracts the token from "Authorization: Bearer <token>" and adds the
# "Authorize" button to Swagger UI.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=True,
)

oauth2_scheme_optional = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=False,
)


def _user_from_token(token: str, store: EntityStore) -> User | None:
    user_id = token_subject(token, ACCESS_TOKEN)
    return store.get(User, user_id) if user_id is not None else None


def get_current_user(
    store: Store,
    token: str = Depends(oauth2_scheme),
) -> User:
    """
    Extract and validate the current user from the JWT access token.

    Raises:
        HTTPException: 401 if the token is invalid or the user is gone
    """
    user = _user_from_token(token, store)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Verify the current user is active.

    Raises:
        HTTPException: 403 if the account is deactivated
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return current_user


def get_current_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """
    Verify the current user has the admin role.

    Raises:
        HTTPException: 403 if the user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


def get_optional_current_user(
    store: Store,
    token: str | None = Depends(oauth2_scheme_optional),
) -> User | None:
    """Current user if a valid token was sent, None otherwise."""
    if not token:
        return None
    return _user_from_token(token, store)


CurrentUser = Annotated[User, Depends(get_current_user)]
ActiveUser = Annotated[User, Depends(get_current_active_user)]
AdminUser = Annotated[User, Depends(get_current_admin)]
OptionalUser = Annotated[User | None, Depends(get_optional_current_user)]
