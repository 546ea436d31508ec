"""
Services Package

Business logic kept apart from HTTP handling so it can be tested without
a client and reused by maintenance scripts.

Current services:
- books.py: Book lifecycle (create, update, soft delete with cascade)
- reviews.py: Review lifecycle (create, update, delete, helpful, report)
- ratings.py: Book rating aggregation (full recompute from active reviews)
- counters.py: User books_count / reviews_count maintenance
- rate_limiter.py: Rate limiting with slowapi
- security.py: Password hashing and JWT utilities
"""
