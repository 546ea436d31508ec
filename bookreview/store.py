"""
Entity Store

A thin document-style facade over a SQLAlchemy Session. Collections are
ORM model classes; filters are SQLAlchemy criteria.

Responsibilities:
- Exclude soft-deleted rows from every read unless include_deleted=True
- Atomic single-statement increments for counters
- Translate database failures into domain errors:
  IntegrityError -> ConflictError, any other SQLAlchemyError -> StoreError

The store only flushes. Lifecycle services call commit() once at the end
of an operation so that every write of that operation lands together.

Usage:
    store = EntityStore(db)
    book = store.get(Book, 1)
    reviews = store.find(Review, Review.book_id == 1, order_by=[Review.created_at.desc()])
    store.increment_field(User, user_id, "reviews_count", 1)
    store.commit()
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bookreview.exceptions import ConflictError, StoreError
from bookreview.models.status import RecordStatus

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class EntityStore:
    """Collection-oriented persistence operations on one session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # -------------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------------
    @contextmanager
    def _guard(self, model: type, identifier: Any = None) -> Iterator[None]:
        """Roll back and re-raise database errors as domain errors."""
        resource = model.__name__.lower()
        try:
            yield
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning(f"Uniqueness violation on {resource} {identifier}: {exc.orig}")
            raise ConflictError(
                f"{model.__name__} conflicts with an existing record",
                resource=resource,
                identifier=identifier,
            ) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(f"Store failure on {resource} {identifier}: {exc}")
            raise StoreError(
                f"Database error while accessing {resource}",
                resource=resource,
                identifier=identifier,
            ) from exc

    @staticmethod
    def _visible(model: type, criteria: Sequence, include_deleted: bool) -> list:
        """Append the active-status filter for soft-deletable models."""
        criteria = list(criteria)
        if not include_deleted and hasattr(model, "status"):
            criteria.append(model.status == RecordStatus.ACTIVE.value)
        return criteria

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def find(
        self,
        model: type[ModelT],
        *criteria,
        order_by: Sequence = (),
        skip: int = 0,
        limit: int | None = None,
        options: Sequence = (),
        include_deleted: bool = False,
    ) -> list[ModelT]:
        """Return rows matching all criteria, sorted and sliced."""
        stmt = select(model).where(*self._visible(model, criteria, include_deleted))
        if options:
            stmt = stmt.options(*options)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._guard(model):
            return list(self.session.execute(stmt).scalars().all())

    def find_one(
        self,
        model: type[ModelT],
        *criteria,
        options: Sequence = (),
        include_deleted: bool = False,
    ) -> ModelT | None:
        """Return the first row matching all criteria, or None."""
        stmt = select(model).where(*self._visible(model, criteria, include_deleted))
        if options:
            stmt = stmt.options(*options)
        with self._guard(model):
            return self.session.execute(stmt.limit(1)).scalars().first()

    def get(
        self,
        model: type[ModelT],
        entity_id: int,
        options: Sequence = (),
        include_deleted: bool = False,
    ) -> ModelT | None:
        """Return a row by primary key, or None if absent (or deleted)."""
        return self.find_one(
            model,
            model.id == entity_id,
            options=options,
            include_deleted=include_deleted,
        )

    def count(self, model: type, *criteria, include_deleted: bool = False) -> int:
        """Count rows matching all criteria."""
        stmt = (
            select(func.count())
            .select_from(model)
            .where(*self._visible(model, criteria, include_deleted))
        )
        with self._guard(model):
            return self.session.execute(stmt).scalar() or 0

    def group_count(
        self,
        model: type,
        column,
        *criteria,
        include_deleted: bool = False,
    ) -> dict[Any, int]:
        """Count rows per distinct value of `column`."""
        stmt = (
            select(column, func.count())
            .where(*self._visible(model, criteria, include_deleted))
            .group_by(column)
        )
        with self._guard(model):
            return {value: count for value, count in self.session.execute(stmt).all()}

    def aggregate_average(
        self,
        model: type,
        column,
        *criteria,
        include_deleted: bool = False,
    ) -> tuple[float | None, int]:
        """Return (mean of column, row count) over matching rows."""
        stmt = select(func.avg(column), func.count()).select_from(model).where(
            *self._visible(model, criteria, include_deleted)
        )
        with self._guard(model):
            avg, total = self.session.execute(stmt).one()
        return (float(avg) if avg is not None else None), total

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    def insert(self, model: type[ModelT], **fields) -> ModelT:
        """Create a row and flush it so it gets an id."""
        instance = model(**fields)
        with self._guard(model):
            self.session.add(instance)
            self.session.flush()
        return instance

    def update_by_id(self, model: type[ModelT], entity_id: int, **patch) -> ModelT | None:
        """
        Apply a patch to one row, including deleted rows.

        Returns None when the row does not exist.
        """
        instance = self.get(model, entity_id, include_deleted=True)
        if instance is None:
            return None
        with self._guard(model, entity_id):
            for field, value in patch.items():
                setattr(instance, field, value)
            self.session.flush()
        return instance

    def update_many(self, model: type, *criteria, include_deleted: bool = True, **patch) -> int:
        """Bulk update every matching row; returns the number of rows matched."""
        stmt = (
            update(model)
            .where(*self._visible(model, criteria, include_deleted))
            .values(**patch)
            .execution_options(synchronize_session="fetch")
        )
        with self._guard(model):
            result = self.session.execute(stmt)
        return result.rowcount

    def increment_field(
        self,
        model: type,
        entity_id: int,
        field: str,
        delta: int,
        floor: int | None = None,
    ) -> None:
        """
        Atomically add `delta` to a numeric column.

        The arithmetic happens inside a single UPDATE statement, so concurrent
        increments on the same row do not lose updates. With `floor` set the
        result is clamped so it never drops below that value.
        """
        column = getattr(model, field)
        new_value = column + delta
        if floor is not None:
            new_value = case((column + delta < floor, floor), else_=column + delta)

        stmt = (
            update(model)
            .where(model.id == entity_id)
            .values({field: new_value})
            .execution_options(synchronize_session="fetch")
        )
        with self._guard(model, entity_id):
            self.session.execute(stmt)

    # -------------------------------------------------------------------------
    # Transaction Control
    # -------------------------------------------------------------------------
    def commit(self) -> None:
        with self._guard(type(self)):
            self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def refresh(self, instance) -> None:
        with self._guard(type(instance), getattr(instance, "id", None)):
            self.session.refresh(instance)
