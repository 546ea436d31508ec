#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample data for development.

USAGE:
    # Make sure you're in the project root with venv activated
    python scripts/seed_data.py

This script:
1. Creates tables if they don't exist
2. Clears existing reviews, books and users (optional)
3. Creates sample readers and an admin
4. Adds books and reviews through the lifecycle services, so ratings
   and counters come out exactly as they would through the API

All sample accounts use the password "SecurePass123".
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete
from sqlalchemy.orm import Session

from bookreview.database import SessionLocal, create_tables
from bookreview.models import Book, Review, User, UserRole
from bookreview.services.books import BookService
from bookreview.services.reviews import ReviewService
from bookreview.services.security import hash_password
from bookreview.store import EntityStore

SAMPLE_PASSWORD = "SecurePass123"


def clear_data(db: Session) -> None:
    """Delete all reviews, books and users."""
    print("Clearing existing data...")
    db.execute(delete(Review))
    db.execute(delete(Book))
    db.execute(delete(User))
    db.commit()
    print("Data cleared.")


def create_users(store: EntityStore) -> dict[str, User]:
    """Create sample users."""
    print("Creating users...")
    users_data = [
        {"name": "Ada Admin", "email": "admin@example.com", "role": UserRole.ADMIN.value},
        {"name": "Jane Reader", "email": "jane@example.com", "role": UserRole.USER.value},
        {"name": "Tom Bookworm", "email": "tom@example.com", "role": UserRole.USER.value},
        {"name": "Maria Pages", "email": "maria@example.com", "role": UserRole.USER.value},
    ]

    hashed = hash_password(SAMPLE_PASSWORD)
    users = {}
    for data in users_data:
        users[data["email"]] = store.insert(User, hashed_password=hashed, **data)
    store.commit()

    print(f"Created {len(users)} users.")
    return users


def create_books(service: BookService, users: dict[str, User]) -> dict[str, Book]:
    """Create sample books owned by the sample readers."""
    print("Creating books...")
    books_data = [
        (
            "jane@example.com",
            {
                "title": "1984",
                "author": "George Orwell",
                "description": "A dystopian novel about surveillance and totalitarian rule.",
                "genre": "Fiction",
                "published_year": 1949,
                "isbn": "9780451524935",
                "pages": 328,
                "tags": ["classic", "dystopia"],
            },
        ),
        (
            "jane@example.com",
            {
                "title": "Pride and Prejudice",
                "author": "Jane Austen",
                "description": "Elizabeth Bennet navigates manners, morality and marriage.",
                "genre": "Romance",
                "published_year": 1813,
                "pages": 432,
                "tags": ["classic", "regency"],
            },
        ),
        (
            "tom@example.com",
            {
                "title": "Foundation",
                "author": "Isaac Asimov",
                "description": "A mathematician predicts the fall of the Galactic Empire.",
                "genre": "Science Fiction",
                "published_year": 1951,
                "pages": 255,
                "tags": ["space", "empire"],
            },
        ),
        (
            "tom@example.com",
            {
                "title": "The Hobbit",
                "author": "J.R.R. Tolkien",
                "description": "Bilbo Baggins joins a company of dwarves on a quest for treasure.",
                "genre": "Fantasy",
                "published_year": 1937,
                "pages": 310,
                "tags": ["adventure", "dragons"],
            },
        ),
        (
            "maria@example.com",
            {
                "title": "Murder on the Orient Express",
                "author": "Agatha Christie",
                "description": "Hercule Poirot investigates a murder aboard a snowbound train.",
                "genre": "Mystery",
                "published_year": 1934,
                "pages": 256,
                "tags": ["detective", "poirot"],
            },
        ),
    ]

    books = {}
    for owner_email, data in books_data:
        books[data["title"]] = service.create(users[owner_email], data)

    print(f"Created {len(books)} books.")
    return books


def create_reviews(
    service: ReviewService,
    users: dict[str, User],
    books: dict[str, Book],
) -> int:
    """Create sample reviews."""
    print("Creating reviews...")
    reviews_data = [
        ("tom@example.com", "1984", 5, "Chilling and more relevant every year."),
        ("maria@example.com", "1984", 4, "Bleak but brilliant, hard to put down."),
        ("jane@example.com", "Foundation", 4, "Big ideas, thin characters, still great."),
        ("maria@example.com", "Foundation", 3, "Interesting premise but slow in places."),
        ("jane@example.com", "The Hobbit", 5, "A cozy adventure I reread every winter."),
        ("tom@example.com", "Murder on the Orient Express", 4, "The ending caught me completely off guard."),
        ("tom@example.com", "Pride and Prejudice", 3, "Witty dialogue, though the pacing dragged for me."),
    ]

    for email, title, rating, text in reviews_data:
        service.create(books[title].id, users[email], rating=rating, review_text=text)

    print(f"Created {len(reviews_data)} reviews.")
    return len(reviews_data)


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    create_tables()
    db = SessionLocal()
    store = EntityStore(db)

    try:
        if clear_existing:
            clear_data(db)

        users = create_users(store)
        books = create_books(BookService(store), users)
        review_count = create_reviews(ReviewService(store), users, books)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Users: {len(users)}")
        print(f"  - Books: {len(books)}")
        print(f"  - Reviews: {review_count}")
        print(f"\nLog in as any sample user with password {SAMPLE_PASSWORD}")
        print("API documentation at http://localhost:8001/docs")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
