"""
Book Review API

Backend for a book-review site: users add books, write one review per
book, and vote reviews helpful. Books carry a rating summary and users
carry counters that are kept in step with their reviews and books.

Requests flow routers -> services -> store:
- routers/ parse and authorize HTTP calls (schemas/ for bodies)
- services/ run each book or review lifecycle step in one transaction,
  recomputing ratings (ratings.py) and adjusting counters (counters.py)
- store.py is the only place that talks SQLAlchemy to models/
"""

__version__ = "0.1.0"
