"""
Users Router

Endpoints under /users:
- PUT /me           change the caller's name or email (409 if the email is taken)
- PUT /me/password  requires the current password
- GET /{user_id}    public profile of an active account, without the email

A user's reviews are served by the reviews router (/users/{user_id}/reviews)
and their books by the books router (/books/user/{user_id}).
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from bookreview.config import get_settings
from bookreview.dependencies import ActiveUser, Store
from bookreview.models.user import User
from bookreview.schemas.user import (
    PasswordChange,
    UserPublicResponse,
    UserResponse,
    UserUpdate,
)
from bookreview.services.rate_limiter import limiter
from bookreview.services.security import hash_password, verify_password

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        401: {"description": "Not authenticated"},
        404: {"description": "User not found"},
    },
)


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Update current user profile",
)
@limiter.limit(settings.rate_limit_write)
def update_current_user_profile(
    request: Request,
    user_data: UserUpdate,
    store: Store,
    current_user: ActiveUser,
) -> UserResponse:
    """Update name and/or email of the authenticated user."""
    update_data = {
        key: value
        for key, value in user_data.model_dump(exclude_unset=True).items()
        if value is not None
    }

    new_email = update_data.get("email")
    if new_email and new_email != current_user.email:
        taken = store.find_one(User, User.email == new_email, User.id != current_user.id)
        if taken is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered",
            )

    if update_data:
        store.update_by_id(User, current_user.id, **update_data)
        store.commit()
        store.refresh(current_user)
        logger.info(f"User {current_user.id} updated profile: {', '.join(sorted(update_data))}")

    return UserResponse.model_validate(current_user)


@router.put(
    "/me/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change password",
)
@limiter.limit("5/minute")
def change_password(
    request: Request,
    password_data: PasswordChange,
    store: Store,
    current_user: ActiveUser,
) -> None:
    if not verify_password(password_data.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    store.update_by_id(
        User,
        current_user.id,
        hashed_password=hash_password(password_data.new_password),
    )
    store.commit()
    logger.info(f"User {current_user.id} changed password")


@router.get(
    "/{user_id}",
    response_model=UserPublicResponse,
    summary="Get public user profile",
)
@limiter.limit(settings.rate_limit_default)
def get_public_user_profile(
    request: Request,
    user_id: int,
    store: Store,
) -> UserPublicResponse:
    user = store.find_one(User, User.id == user_id, User.is_active.is_(True))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found",
        )
    return UserPublicResponse.model_validate(user)
