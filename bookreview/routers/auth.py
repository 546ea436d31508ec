"""
Authentication Router

Endpoints under /auth:
- POST /register  name, email, password -> account (201, 409 on a taken email)
- POST /login     OAuth2 form with the email as username -> token pair
- POST /refresh   refresh token (cookie or body) -> new token pair
- POST /logout    drops the refresh cookie
- GET  /me        the caller's account with its counters
- GET  /stats     counters recounted from the active rows

The refresh token also travels in an httpOnly cookie. Passwords are stored
as bcrypt hashes only.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from bookreview.config import get_settings
from bookreview.dependencies import ActiveUser, Store
from bookreview.models import Review, User
from bookreview.schemas.user import (
    RefreshTokenRequest,
    TokenResponse,
    UserCreate,
    UserResponse,
    UserStatsResponse,
)
from bookreview.services.counters import reconcile_user_counters
from bookreview.services.rate_limiter import limiter
from bookreview.services.ratings import summarize_distribution
from bookreview.services.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    hash_password,
    token_subject,
    verify_password,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized"},
        409: {"description": "Email already registered"},
    },
)

REFRESH_COOKIE = "refresh_token"


def _issue_tokens(response: Response, user: User) -> TokenResponse:
    token_data = {"sub": str(user.id)}
    access_token = create_access_token(token_data)
    refresh_token = create_refresh_token(token_data)

    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
    )

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
    )


# -------------------------------------------------------------------------
# Registration Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
@limiter.limit("5/minute")
def register(
    request: Request,
    user_data: UserCreate,
    store: Store,
) -> UserResponse:
    """
    Register a new user.

    Email uniqueness is checked up front and backed by the unique index,
    which surfaces as 409 as well.
    """
    if store.find_one(User, User.email == user_data.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = store.insert(
        User,
        name=user_data.name,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        is_active=True,
        books_count=0,
        reviews_count=0,
    )
    store.commit()
    store.refresh(user)

    logger.info(f"New user registered: {user.email}")
    return UserResponse.model_validate(user)


# -------------------------------------------------------------------------
# Login Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
    description="""
    OAuth2 password flow: send the email in the `username` form field.

    Returns an access token and sets the refresh token as an httpOnly cookie.
    """,
)
@limiter.limit("10/minute")
def login(
    request: Request,
    response: Response,
    store: Store,
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> TokenResponse:
    email = form_data.username.lower()
    user = store.find_one(User, User.email == email)

    if user is None or not verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Login failed for {email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning(f"Login failed: inactive account {email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    tokens = _issue_tokens(response, user)
    store.update_by_id(User, user.id, last_login_at=datetime.now(UTC))
    store.commit()

    logger.info(f"User logged in: {email}")
    return tokens


# -------------------------------------------------------------------------
# Token Refresh Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh access token",
    description="Exchange a refresh token (cookie or body) for a new token pair.",
)
def refresh_token(
    request: Request,
    response: Response,
    store: Store,
    body: RefreshTokenRequest | None = None,
) -> TokenResponse:
    token = body.refresh_token if body else request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = token_subject(token, REFRESH_TOKEN)
    user = store.get(User, user_id) if user_id is not None else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    logger.info(f"Token refreshed for user: {user.email}")
    return _issue_tokens(response, user)


# -------------------------------------------------------------------------
# Logout Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout user",
    description="Clears the refresh token cookie. The access token stays valid until it expires.",
)
def logout(
    response: Response,
    current_user: ActiveUser,
) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    logger.info(f"User logged out: {current_user.email}")
    return None


# -------------------------------------------------------------------------
# Current User Endpoints
# -------------------------------------------------------------------------
@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
def get_me(current_user: ActiveUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.get(
    "/stats",
    response_model=UserStatsResponse,
    summary="Get reading stats",
    description="""
    Recount the caller's active books and reviews, store the corrected
    counters and return them with the average rating the user gives.
    """,
)
def get_my_stats(
    store: Store,
    current_user: ActiveUser,
) -> UserStatsResponse:
    books_count, reviews_count = reconcile_user_counters(store, current_user.id)
    store.commit()

    given = summarize_distribution(
        store.group_count(Review, Review.rating, Review.user_id == current_user.id)
    )

    return UserStatsResponse(
        books_count=books_count,
        reviews_count=reviews_count,
        average_rating_given=given.average_rating,
        member_since=current_user.created_at,
    )
