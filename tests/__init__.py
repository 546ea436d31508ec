"""
Test Suite for the Book Review API

Test Organization:
- conftest.py: Shared fixtures (test database, client, users, books)
- test_store.py: EntityStore reads, writes and error mapping
- test_ratings.py / test_counters.py: derived fields
- test_review_service.py / test_book_service.py: lifecycle services
- test_auth.py, test_users.py, test_books.py, test_reviews.py,
  test_admin.py: endpoints under /api/v1

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_reviews.py

    # Run with verbose output
    pytest -v
"""
