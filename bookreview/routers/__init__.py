"""
API Routers Package

Each router handles a group of related endpoints:
- auth: Registration, login, tokens, current user
- users: Profile management and public profiles
- books: Book CRUD, listings, search and genres
- reviews: Review CRUD, ratings, helpful votes
- admin: Maintenance (recalculate derived fields)
"""

from bookreview.routers import admin, auth, books, reviews, users

__all__ = ["admin", "auth", "books", "reviews", "users"]
