"""
Tests for EntityStore

The store is the only layer that talks to the session, so these tests pin
down its contract: soft-delete filtering, atomic increments, and database
errors surfacing as domain errors.
"""

import pytest
from sqlalchemy.orm import Session

from bookreview.exceptions import ConflictError
from bookreview.models import Book, RecordStatus, Review, User
from bookreview.store import EntityStore


class TestReads:
    """Tests for find / find_one / get / count"""

    def test_find_excludes_deleted(self, store: EntityStore, make_book):
        keep = make_book(title="Keep")
        gone = make_book(title="Gone")
        store.update_by_id(Book, gone.id, status=RecordStatus.DELETED.value)
        store.commit()

        titles = [book.title for book in store.find(Book)]

        assert titles == [keep.title]
        assert store.get(Book, gone.id) is None
        assert store.get(Book, gone.id, include_deleted=True) is not None

    def test_find_order_skip_limit(self, store: EntityStore, make_book):
        for title in ["A", "B", "C", "D"]:
            make_book(title=title)

        page = store.find(Book, order_by=[Book.title.desc()], skip=1, limit=2)

        assert [book.title for book in page] == ["C", "B"]

    def test_find_one_with_criteria(self, store: EntityStore, make_book):
        make_book(title="Dune", author="Frank Herbert")

        assert store.find_one(Book, Book.author == "Frank Herbert").title == "Dune"
        assert store.find_one(Book, Book.author == "Nobody") is None

    def test_count(self, store: EntityStore, make_book):
        make_book(genre="Fantasy")
        make_book(genre="Fantasy")
        deleted = make_book(genre="Fantasy")
        store.update_by_id(Book, deleted.id, status=RecordStatus.DELETED.value)
        store.commit()

        assert store.count(Book, Book.genre == "Fantasy") == 2
        assert store.count(Book, Book.genre == "Fantasy", include_deleted=True) == 3

    def test_users_have_no_status_filter(self, store: EntityStore, user: User):
        assert store.get(User, user.id) is not None


class TestAggregates:
    """Tests for group_count / aggregate_average"""

    def test_group_count(self, store: EntityStore, make_book):
        make_book(genre="Fantasy")
        make_book(genre="Fantasy")
        make_book(genre="History")

        assert store.group_count(Book, Book.genre) == {"Fantasy": 2, "History": 1}

    def test_aggregate_average(self, store: EntityStore, book: Book, user: User, other_user: User):
        store.insert(Review, book_id=book.id, user_id=user.id, rating=2, review_text="Not my style")
        store.insert(Review, book_id=book.id, user_id=other_user.id, rating=5, review_text="Brilliant")
        store.commit()

        average, total = store.aggregate_average(Review, Review.rating, Review.book_id == book.id)

        assert average == pytest.approx(3.5)
        assert total == 2

    def test_aggregate_average_no_rows(self, store: EntityStore, book: Book):
        assert store.aggregate_average(Review, Review.rating, Review.book_id == book.id) == (None, 0)


class TestWrites:
    """Tests for insert / update_by_id / update_many / increment_field"""

    def test_insert_assigns_id(self, store: EntityStore, user: User):
        book = store.insert(
            Book,
            title="Emma",
            author="Jane Austen",
            description="A matchmaker meddles in Highbury.",
            genre="Romance",
            published_year=1815,
            owner_id=user.id,
        )

        assert book.id is not None
        assert book.status == RecordStatus.ACTIVE.value

    def test_insert_duplicate_raises_conflict(self, store: EntityStore, user: User):
        with pytest.raises(ConflictError) as exc_info:
            store.insert(User, name="Copy", email=user.email, hashed_password="x")

        assert exc_info.value.status_code == 409
        assert exc_info.value.resource == "user"

    def test_session_usable_after_conflict(self, store: EntityStore, user: User):
        with pytest.raises(ConflictError):
            store.insert(User, name="Copy", email=user.email, hashed_password="x")

        assert store.count(User) == 1

    def test_update_by_id_missing_row(self, store: EntityStore):
        assert store.update_by_id(Book, 99999, title="Nothing") is None

    def test_update_many(self, store: EntityStore, book: Book, user: User, other_user: User):
        store.insert(Review, book_id=book.id, user_id=user.id, rating=3, review_text="Average book")
        store.insert(Review, book_id=book.id, user_id=other_user.id, rating=4, review_text="Quite good")

        changed = store.update_many(
            Review,
            Review.book_id == book.id,
            status=RecordStatus.DELETED.value,
        )
        store.commit()

        assert changed == 2
        assert store.count(Review, Review.book_id == book.id) == 0

    def test_increment_field(self, store: EntityStore, db_session: Session, user: User):
        store.increment_field(User, user.id, "reviews_count", 3)
        store.increment_field(User, user.id, "reviews_count", -1)
        store.commit()
        db_session.refresh(user)

        assert user.reviews_count == 2

    def test_increment_field_floor(self, store: EntityStore, db_session: Session, user: User):
        store.increment_field(User, user.id, "books_count", -5, floor=0)
        store.commit()
        db_session.refresh(user)

        assert user.books_count == 0


class TestActiveReviewUniqueness:
    """The partial unique index allows one ACTIVE review per (book, user)."""

    def test_second_active_review_conflicts(self, store: EntityStore, book: Book, user: User):
        store.insert(Review, book_id=book.id, user_id=user.id, rating=3, review_text="First take")
        store.commit()

        with pytest.raises(ConflictError):
            store.insert(Review, book_id=book.id, user_id=user.id, rating=4, review_text="Second take")

    def test_deleted_review_does_not_block(self, store: EntityStore, book: Book, user: User):
        first = store.insert(Review, book_id=book.id, user_id=user.id, rating=3, review_text="First take")
        store.update_by_id(Review, first.id, status=RecordStatus.DELETED.value)

        second = store.insert(Review, book_id=book.id, user_id=user.id, rating=4, review_text="Second take")
        store.commit()

        assert second.id != first.id
        assert store.count(Review, Review.book_id == book.id) == 1
        assert store.count(Review, Review.book_id == book.id, include_deleted=True) == 2
