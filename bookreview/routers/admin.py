"""
Admin Router

Maintenance endpoints, admin role required.

Endpoints:
- POST /admin/recalculate - Re-derive every book's rating and every
  user's counters from the active rows
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from bookreview.dependencies import AdminUser, Store
from bookreview.services.counters import reconcile_all_user_counters
from bookreview.services.ratings import recalculate_all_book_ratings

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={403: {"description": "Admin privileges required"}},
)


class RecalculateResponse(BaseModel):
    books_updated: int
    users_updated: int


@router.post(
    "/recalculate",
    response_model=RecalculateResponse,
    summary="Recalculate derived fields",
)
def recalculate(store: Store, admin: AdminUser) -> RecalculateResponse:
    books = recalculate_all_book_ratings(store)
    users = reconcile_all_user_counters(store)
    logger.info(f"Admin {admin.id} recalculated {books} books and {users} users")
    return RecalculateResponse(books_updated=books, users_updated=users)
