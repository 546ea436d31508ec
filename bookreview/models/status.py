"""
Record Lifecycle State

Books and reviews are never removed from the database. Deleting one moves it
from ACTIVE to DELETED; DELETED rows are excluded from every listing, count
and aggregate. The EntityStore applies that filter by default, so a query has
to opt in (include_deleted=True) to see deleted rows.
"""

from enum import Enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column


class RecordStatus(str, Enum):
    """Lifecycle state of a soft-deletable record."""

    ACTIVE = "active"
    DELETED = "deleted"


class SoftDeleteMixin:
    """
    Adds the `status` column and helpers to a model.

    `is_active` is read-only; transitions go through the store's
    update_by_id() / update_many() with status=RecordStatus.DELETED.
    """

    status: Mapped[str] = mapped_column(
        String(10),
        default=RecordStatus.ACTIVE.value,
        nullable=False,
        index=True,
        comment="Lifecycle state (active, deleted)",
    )

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE.value
