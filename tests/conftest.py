"""
pytest Fixtures for Book Review API Tests

Shared fixtures used across all test files.

FIXTURE LAYOUT:
===============
- engine / db_session: a fresh in-memory SQLite database per test
- store: EntityStore over the test session
- client: TestClient whose get_db dependency yields the test session
- user / other_user / third_user / admin: accounts
- book: a book owned by `user`, created through BookService so the
  owner's books_count is already correct
- make_user / make_book / make_review: factories for bulk data

Each test gets its own database (tables created and dropped around it).
The stores commit and roll back for real, so a shared outer transaction
would not isolate them.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookreview.database import Base, dump_json, get_db
from bookreview.main import app
from bookreview.models import Book, Review, User, UserRole
from bookreview.services.books import BookService
from bookreview.services.reviews import ReviewService
from bookreview.services.security import hash_password
from bookreview.store import EntityStore

TEST_PASSWORD = "SecurePass123"

# bcrypt is slow on purpose; hash once for every fixture user
_HASHED_TEST_PASSWORD = hash_password(TEST_PASSWORD)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================
@pytest.fixture
def engine():
    """
    SQLite in-memory engine.

    StaticPool keeps a single connection alive, otherwise the in-memory
    database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        json_serializer=dump_json,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
    session = TestSessionLocal()

    yield session

    session.close()


@pytest.fixture
def store(db_session: Session) -> EntityStore:
    return EntityStore(db_session)


@pytest.fixture
def book_service(store: EntityStore) -> BookService:
    return BookService(store)


@pytest.fixture
def review_service(store: EntityStore) -> ReviewService:
    return ReviewService(store)


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Test client using the test database.

    get_db is overridden so every request shares the test session.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# HELPERS
# =============================================================================
def book_fields(**overrides) -> dict:
    """Valid book fields for BookService.create or POST /books."""
    fields = {
        "title": "1984",
        "author": "George Orwell",
        "description": "A dystopian novel set in a totalitarian society.",
        "genre": "Fiction",
        "published_year": 1949,
        "pages": 328,
        "tags": ["classic", "dystopia"],
    }
    fields.update(overrides)
    return fields


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================
@pytest.fixture
def make_user(store: EntityStore) -> Callable[..., User]:
    """Factory creating committed users."""
    counter = {"n": 0}

    def _make_user(name: str | None = None, role: str = UserRole.USER.value, **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = store.insert(
            User,
            name=name or f"Reader {chr(ord('A') + n - 1)}",
            email=fields.pop("email", f"reader{n}@example.com"),
            hashed_password=_HASHED_TEST_PASSWORD,
            role=role,
            **fields,
        )
        store.commit()
        store.refresh(user)
        return user

    return _make_user


@pytest.fixture
def user(make_user) -> User:
    return make_user("Jane Reader", email="jane@example.com")


@pytest.fixture
def other_user(make_user) -> User:
    return make_user("Tom Bookworm", email="tom@example.com")


@pytest.fixture
def third_user(make_user) -> User:
    return make_user("Maria Pages", email="maria@example.com")


@pytest.fixture
def admin(make_user) -> User:
    return make_user("Ada Admin", role=UserRole.ADMIN.value, email="admin@example.com")


@pytest.fixture
def make_book(book_service: BookService, user: User) -> Callable[..., Book]:
    """Factory creating books through BookService (owner defaults to `user`)."""

    def _make_book(owner: User | None = None, **overrides) -> Book:
        return book_service.create(owner or user, book_fields(**overrides))

    return _make_book


@pytest.fixture
def book(make_book) -> Book:
    return make_book()


@pytest.fixture
def make_review(review_service: ReviewService) -> Callable[..., Review]:
    """Factory creating reviews through ReviewService."""

    def _make_review(
        book: Book,
        author: User,
        rating: int = 4,
        review_text: str = "A thoughtful and gripping read.",
        **fields,
    ) -> Review:
        return review_service.create(
            book.id,
            author,
            rating=rating,
            review_text=review_text,
            **fields,
        )

    return _make_review
