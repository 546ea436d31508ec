"""
Tests for Reviews

Tests the review system:
- List reviews for a book, with rating stats
- Create a review (authenticated, one active review per book)
- Get / update / delete a review (author or admin)
- Helpful votes and reports
- Reviews by user and the caller's own reviews

Every write is followed by a check that the book's average_rating and
total_reviews still match its active reviews.
"""

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from bookreview.models import Book, Review
from bookreview.models.user import User
from bookreview.services.security import create_access_token


# =============================================================================
# Helper Functions
# =============================================================================
def get_auth_header(user: User) -> dict:
    """Create authorization header for a user."""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def post_review(client: TestClient, book: Book, user: User, rating: int, **fields):
    payload = {"rating": rating, "review_text": "Honest thoughts about this book.", **fields}
    return client.post(
        f"/api/v1/books/{book.id}/reviews",
        json=payload,
        headers=get_auth_header(user),
    )


def book_rating(client: TestClient, book: Book) -> tuple[float, int]:
    data = client.get(f"/api/v1/books/{book.id}").json()
    return data["average_rating"], data["total_reviews"]


# =============================================================================
# End-to-end Rating Flow
# =============================================================================
class TestRatingFlow:
    """A book's rating through a sequence of review writes."""

    def test_rating_follows_reviews(
        self,
        client: TestClient,
        db_session: Session,
        book: Book,
        other_user: User,
        third_user: User,
    ):
        user_a, user_b = other_user, third_user

        first = post_review(client, book, user_a, 5)
        assert first.status_code == status.HTTP_201_CREATED
        assert book_rating(client, book) == (5.0, 1)

        second = post_review(client, book, user_b, 3)
        assert second.status_code == status.HTTP_201_CREATED
        assert book_rating(client, book) == (4.0, 2)

        response = client.delete(
            f"/api/v1/reviews/{first.json()['id']}",
            headers=get_auth_header(user_a),
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert book_rating(client, book) == (3.0, 1)

        again = post_review(client, book, user_a, 4)
        assert again.status_code == status.HTTP_201_CREATED
        assert again.json()["id"] != first.json()["id"]
        assert book_rating(client, book) == (3.5, 2)

        db_session.refresh(user_a)
        assert user_a.reviews_count == 1

    def test_helpful_votes_accumulate(
        self,
        client: TestClient,
        book: Book,
        other_user: User,
        third_user: User,
    ):
        review_id = post_review(client, book, other_user, 4).json()["id"]

        for expected in (1, 2):
            response = client.post(
                f"/api/v1/reviews/{review_id}/helpful",
                headers=get_auth_header(third_user),
            )
            assert response.status_code == status.HTTP_200_OK
            assert response.json() == {"review_id": review_id, "helpful_votes": expected}


# =============================================================================
# List Reviews for Book
# =============================================================================
class TestListBookReviews:
    """Tests for GET /api/v1/books/{book_id}/reviews"""

    def test_list_reviews_empty(self, client: TestClient, book: Book):
        response = client.get(f"/api/v1/books/{book.id}/reviews")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0
        assert data["rating_stats"]["average_rating"] == 0
        assert data["rating_stats"]["rating_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}

    def test_list_reviews_with_data(
        self,
        client: TestClient,
        book: Book,
        make_review,
        other_user: User,
        third_user: User,
    ):
        make_review(book, other_user, rating=5, title="Masterpiece")
        make_review(book, third_user, rating=2)

        response = client.get(f"/api/v1/books/{book.id}/reviews")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 2
        assert data["book"]["id"] == book.id
        assert data["rating_stats"]["average_rating"] == 3.5
        assert data["rating_stats"]["rating_distribution"]["5"] == 1
        assert data["rating_stats"]["rating_distribution"]["2"] == 1

        newest = data["items"][0]
        assert newest["rating"] == 2
        assert newest["user"]["id"] == third_user.id
        assert newest["book"]["title"] == "1984"

    def test_list_reviews_sorted_by_rating(
        self,
        client: TestClient,
        book: Book,
        make_review,
        make_user,
    ):
        for rating in (3, 5, 1):
            make_review(book, make_user(), rating=rating)

        data = client.get(f"/api/v1/books/{book.id}/reviews?sort=rating-high").json()

        assert [item["rating"] for item in data["items"]] == [5, 3, 1]

    def test_list_reviews_pagination(
        self,
        client: TestClient,
        book: Book,
        make_review,
        make_user,
    ):
        for _ in range(5):
            make_review(book, make_user())

        data = client.get(f"/api/v1/books/{book.id}/reviews?per_page=2&page=3").json()

        assert data["total"] == 5
        assert data["pages"] == 3
        assert len(data["items"]) == 1

    def test_list_reviews_excludes_deleted(
        self,
        client: TestClient,
        book: Book,
        make_review,
        review_service,
        other_user: User,
        third_user: User,
    ):
        make_review(book, other_user, rating=5)
        gone = make_review(book, third_user, rating=1)
        review_service.delete(gone.id, third_user)

        data = client.get(f"/api/v1/books/{book.id}/reviews").json()

        assert data["total"] == 1
        assert data["rating_stats"]["total_reviews"] == 1
        assert data["rating_stats"]["average_rating"] == 5.0

    def test_list_reviews_book_not_found(self, client: TestClient):
        response = client.get("/api/v1/books/99999/reviews")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestBookRatingEndpoints:
    """Tests for /rating, /reviews/helpful and /reviews/check"""

    def test_rating_stats(
        self,
        client: TestClient,
        book: Book,
        make_review,
        make_user,
    ):
        for rating in (5, 4, 4, 4):
            make_review(book, make_user(), rating=rating)

        data = client.get(f"/api/v1/books/{book.id}/rating").json()

        assert data["book_id"] == book.id
        assert data["total_reviews"] == 4
        # 17 / 4 = 4.25 rounds half up
        assert data["average_rating"] == 4.3
        assert data["rating_distribution"] == {"1": 0, "2": 0, "3": 0, "4": 3, "5": 1}

    def test_most_helpful(
        self,
        client: TestClient,
        book: Book,
        make_review,
        review_service,
        other_user: User,
        third_user: User,
        user: User,
    ):
        unvoted = make_review(book, other_user)
        helpful = make_review(book, third_user)
        review_service.mark_helpful(helpful.id, user)

        data = client.get(f"/api/v1/books/{book.id}/reviews/helpful").json()

        # Reviews without votes still fill the list, after the voted ones
        assert [item["id"] for item in data] == [helpful.id, unvoted.id]

        top = client.get(f"/api/v1/books/{book.id}/reviews/helpful", params={"limit": 1}).json()
        assert [item["id"] for item in top] == [helpful.id]

    def test_check_user_review(
        self,
        client: TestClient,
        book: Book,
        make_review,
        other_user: User,
        third_user: User,
    ):
        review = make_review(book, other_user)

        mine = client.get(
            f"/api/v1/books/{book.id}/reviews/check",
            headers=get_auth_header(other_user),
        ).json()
        theirs = client.get(
            f"/api/v1/books/{book.id}/reviews/check",
            headers=get_auth_header(third_user),
        ).json()

        assert mine["has_reviewed"] is True
        assert mine["review"]["id"] == review.id
        assert theirs == {"has_reviewed": False, "review": None}


# =============================================================================
# Create Review
# =============================================================================
class TestCreateReview:
    """Tests for POST /api/v1/books/{book_id}/reviews"""

    def test_create_review(self, client: TestClient, db_session: Session, book: Book, other_user: User):
        response = post_review(client, book, other_user, 4, title="Chilling", spoiler_alert=True)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["rating"] == 4
        assert data["title"] == "Chilling"
        assert data["spoiler_alert"] is True
        assert data["reading_status"] == "completed"
        assert data["helpful_votes"] == 0
        assert data["user"]["id"] == other_user.id
        assert data["book"]["average_rating"] == 4.0

        db_session.refresh(other_user)
        assert other_user.reviews_count == 1

    def test_create_review_duplicate(self, client: TestClient, book: Book, other_user: User):
        post_review(client, book, other_user, 4)

        response = post_review(client, book, other_user, 1)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert book_rating(client, book) == (4.0, 1)

    def test_create_review_unauthenticated(self, client: TestClient, book: Book):
        response = client.post(
            f"/api/v1/books/{book.id}/reviews",
            json={"rating": 5, "review_text": "Nobody knows who wrote this."},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_review_invalid_rating(self, client: TestClient, book: Book, other_user: User):
        for rating in (0, 6):
            response = post_review(client, book, other_user, rating)
            assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_create_review_text_too_short(self, client: TestClient, book: Book, other_user: User):
        response = client.post(
            f"/api/v1/books/{book.id}/reviews",
            json={"rating": 3, "review_text": "   meh    "},
            headers=get_auth_header(other_user),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_create_review_book_not_found(self, client: TestClient, other_user: User):
        response = client.post(
            "/api/v1/books/99999/reviews",
            json={"rating": 3, "review_text": "Reviewing thin air here."},
            headers=get_auth_header(other_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Single Review
# =============================================================================
class TestGetReview:
    """Tests for GET /api/v1/reviews/{review_id}"""

    def test_get_review(self, client: TestClient, book: Book, make_review, other_user: User):
        review = make_review(book, other_user)

        response = client.get(f"/api/v1/reviews/{review.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == review.id

    def test_get_deleted_review(
        self,
        client: TestClient,
        book: Book,
        make_review,
        review_service,
        other_user: User,
    ):
        review = make_review(book, other_user)
        review_service.delete(review.id, other_user)

        response = client.get(f"/api/v1/reviews/{review.id}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["resource"] == "review"


class TestUpdateReview:
    """Tests for PUT /api/v1/reviews/{review_id}"""

    def test_update_review(self, client: TestClient, book: Book, make_review, other_user: User):
        review = make_review(book, other_user, rating=2)

        response = client.put(
            f"/api/v1/reviews/{review.id}",
            json={"rating": 5, "title": "Changed my mind"},
            headers=get_auth_header(other_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["rating"] == 5
        assert data["title"] == "Changed my mind"
        assert book_rating(client, book) == (5.0, 1)

    def test_update_review_not_author(
        self,
        client: TestClient,
        book: Book,
        make_review,
        other_user: User,
        third_user: User,
    ):
        review = make_review(book, other_user)

        response = client.put(
            f"/api/v1/reviews/{review.id}",
            json={"rating": 1},
            headers=get_auth_header(third_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_update_review_admin(self, client: TestClient, book: Book, make_review, other_user: User, admin: User):
        review = make_review(book, other_user)

        response = client.put(
            f"/api/v1/reviews/{review.id}",
            json={"spoiler_alert": True},
            headers=get_auth_header(admin),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["spoiler_alert"] is True


class TestDeleteReview:
    """Tests for DELETE /api/v1/reviews/{review_id}"""

    def test_delete_review(
        self,
        client: TestClient,
        db_session: Session,
        book: Book,
        make_review,
        other_user: User,
    ):
        review = make_review(book, other_user)

        response = client.delete(f"/api/v1/reviews/{review.id}", headers=get_auth_header(other_user))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert book_rating(client, book) == (0, 0)
        db_session.refresh(other_user)
        assert other_user.reviews_count == 0
        # Soft delete: the row is still there
        assert db_session.get(Review, review.id) is not None

    def test_delete_review_admin(
        self,
        client: TestClient,
        db_session: Session,
        book: Book,
        make_review,
        other_user: User,
        admin: User,
    ):
        review = make_review(book, other_user)

        response = client.delete(f"/api/v1/reviews/{review.id}", headers=get_auth_header(admin))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        db_session.refresh(other_user)
        assert other_user.reviews_count == 0

    def test_delete_review_not_author(
        self,
        client: TestClient,
        book: Book,
        make_review,
        other_user: User,
        third_user: User,
    ):
        review = make_review(book, other_user)

        response = client.delete(f"/api/v1/reviews/{review.id}", headers=get_auth_header(third_user))

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestHelpfulAndReport:
    """Tests for POST /reviews/{review_id}/helpful and /report"""

    def test_cannot_vote_own_review(self, client: TestClient, book: Book, make_review, other_user: User):
        review = make_review(book, other_user)

        response = client.post(
            f"/api/v1/reviews/{review.id}/helpful",
            headers=get_auth_header(other_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_vote_requires_auth(self, client: TestClient, book: Book, make_review, other_user: User):
        review = make_review(book, other_user)

        response = client.post(f"/api/v1/reviews/{review.id}/helpful")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_report_review(
        self,
        client: TestClient,
        book: Book,
        make_review,
        other_user: User,
        third_user: User,
    ):
        review = make_review(book, other_user)

        response = client.post(
            f"/api/v1/reviews/{review.id}/report",
            headers=get_auth_header(third_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["is_reported"] is True

    def test_cannot_report_own_review(self, client: TestClient, book: Book, make_review, other_user: User):
        review = make_review(book, other_user)

        response = client.post(
            f"/api/v1/reviews/{review.id}/report",
            headers=get_auth_header(other_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# User Review Endpoints
# =============================================================================
class TestUserReviews:
    """Tests for GET /api/v1/users/{user_id}/reviews and GET /api/v1/reviews/me"""

    def test_list_user_reviews(
        self,
        client: TestClient,
        make_book,
        make_review,
        other_user: User,
    ):
        make_review(make_book(title="Dune"), other_user, rating=5)
        make_review(make_book(title="Emma"), other_user, rating=2)

        response = client.get(f"/api/v1/users/{other_user.id}/reviews")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 2
        assert data["user"]["user_id"] == other_user.id
        assert data["user"]["reviews_count"] == 2
        assert data["user"]["average_rating"] == 3.5

    def test_list_user_reviews_not_found(self, client: TestClient):
        response = client.get("/api/v1/users/99999/reviews")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_user_reviews_inactive_user(self, client: TestClient, book: Book, make_review, make_user):
        inactive = make_user("Gone Reader", is_active=False)
        make_review(book, inactive, rating=3)

        response = client.get(f"/api/v1/users/{inactive.id}/reviews")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_my_reviews(
        self,
        client: TestClient,
        book: Book,
        make_review,
        other_user: User,
        third_user: User,
    ):
        mine = make_review(book, other_user)
        make_review(book, third_user)

        response = client.get("/api/v1/reviews/me", headers=get_auth_header(other_user))

        assert response.status_code == status.HTTP_200_OK
        assert [item["id"] for item in response.json()["items"]] == [mine.id]
