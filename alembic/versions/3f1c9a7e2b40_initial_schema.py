"""initial_schema

Revision ID: 3f1c9a7e2b40
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -------------------------------------------------------------------------
    # users
    # -------------------------------------------------------------------------
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False, comment="User's email address (used for login)"),
        sa.Column('hashed_password', sa.String(length=255), nullable=False, comment='Bcrypt hashed password'),
        sa.Column('role', sa.String(length=10), nullable=False, server_default='user', comment='Role (user, admin)'),
        sa.Column('name', sa.String(length=50), nullable=False, comment='Display name'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), comment='Whether the account is active'),
        sa.Column('books_count', sa.Integer(), nullable=False, server_default='0', comment="Cached count of the user's active books"),
        sa.Column('reviews_count', sa.Integer(), nullable=False, server_default='0', comment="Cached count of the user's active reviews"),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='When the user registered'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True, comment='When the user last logged in'),
        sa.CheckConstraint('books_count >= 0', name='ck_users_books_count_non_negative'),
        sa.CheckConstraint('reviews_count >= 0', name='ck_users_reviews_count_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # -------------------------------------------------------------------------
    # books
    # -------------------------------------------------------------------------
    op.create_table(
        'books',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False, comment='Book title'),
        sa.Column('author', sa.String(length=100), nullable=False, comment='Author name'),
        sa.Column('description', sa.Text(), nullable=False, comment='Book description or summary'),
        sa.Column('genre', sa.String(length=30), nullable=False, comment='One of the BookGenre values'),
        sa.Column('published_year', sa.Integer(), nullable=False, comment='Year of publication'),
        sa.Column('isbn', sa.String(length=20), nullable=True, comment='International Standard Book Number'),
        sa.Column('pages', sa.Integer(), nullable=True, comment='Number of pages'),
        sa.Column('language', sa.String(length=50), nullable=False, server_default='English'),
        sa.Column('publisher', sa.String(length=100), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False, comment='Normalized lowercase tags'),
        sa.Column('cover_image', sa.Text(), nullable=True, comment='URL of the cover image'),
        sa.Column('owner_id', sa.Integer(), nullable=False, comment='User who added the book'),
        sa.Column('average_rating', sa.Numeric(precision=2, scale=1), nullable=False, server_default='0', comment='Mean rating of active reviews, one decimal, 0 if none'),
        sa.Column('total_reviews', sa.Integer(), nullable=False, server_default='0', comment='Number of active reviews'),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='active', comment='Lifecycle state (active, deleted)'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('average_rating >= 0 AND average_rating <= 5', name='ck_books_average_rating_range'),
        sa.CheckConstraint('total_reviews >= 0', name='ck_books_total_reviews_non_negative'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('isbn'),
    )
    op.create_index(op.f('ix_books_title'), 'books', ['title'], unique=False)
    op.create_index(op.f('ix_books_author'), 'books', ['author'], unique=False)
    op.create_index(op.f('ix_books_genre'), 'books', ['genre'], unique=False)
    op.create_index(op.f('ix_books_published_year'), 'books', ['published_year'], unique=False)
    op.create_index(op.f('ix_books_owner_id'), 'books', ['owner_id'], unique=False)
    op.create_index(op.f('ix_books_average_rating'), 'books', ['average_rating'], unique=False)
    op.create_index(op.f('ix_books_status'), 'books', ['status'], unique=False)
    op.create_index('ix_books_genre_rating', 'books', ['genre', 'average_rating'], unique=False)
    op.create_index('ix_books_owner_created', 'books', ['owner_id', 'created_at'], unique=False)

    # -------------------------------------------------------------------------
    # reviews
    # -------------------------------------------------------------------------
    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False, comment='Rating from 1-5 stars'),
        sa.Column('title', sa.String(length=100), nullable=True, comment='Optional review title'),
        sa.Column('review_text', sa.Text(), nullable=False, comment='Review text content'),
        sa.Column('reading_status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('spoiler_alert', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('helpful_votes', sa.Integer(), nullable=False, server_default='0', comment='Number of helpful votes'),
        sa.Column('is_reported', sa.Boolean(), nullable=False, server_default=sa.false(), comment='Flag for moderation review'),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='active', comment='Lifecycle state (active, deleted)'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
        sa.CheckConstraint('helpful_votes >= 0', name='ck_reviews_helpful_votes_non_negative'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_reviews_id'), 'reviews', ['id'], unique=False)
    op.create_index(op.f('ix_reviews_book_id'), 'reviews', ['book_id'], unique=False)
    op.create_index(op.f('ix_reviews_user_id'), 'reviews', ['user_id'], unique=False)
    op.create_index(op.f('ix_reviews_status'), 'reviews', ['status'], unique=False)
    op.create_index('ix_reviews_book_status_rating', 'reviews', ['book_id', 'status', 'rating'], unique=False)

    # One active review per user per book; deleted rows don't count
    op.create_index(
        'uq_reviews_active_book_user',
        'reviews',
        ['book_id', 'user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )


def downgrade() -> None:
    op.drop_index('uq_reviews_active_book_user', table_name='reviews')
    op.drop_index('ix_reviews_book_status_rating', table_name='reviews')
    op.drop_index(op.f('ix_reviews_status'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_user_id'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_book_id'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_id'), table_name='reviews')
    op.drop_table('reviews')

    op.drop_index('ix_books_owner_created', table_name='books')
    op.drop_index('ix_books_genre_rating', table_name='books')
    op.drop_index(op.f('ix_books_status'), table_name='books')
    op.drop_index(op.f('ix_books_average_rating'), table_name='books')
    op.drop_index(op.f('ix_books_owner_id'), table_name='books')
    op.drop_index(op.f('ix_books_published_year'), table_name='books')
    op.drop_index(op.f('ix_books_genre'), table_name='books')
    op.drop_index(op.f('ix_books_author'), table_name='books')
    op.drop_index(op.f('ix_books_title'), table_name='books')
    op.drop_table('books')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
