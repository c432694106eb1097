#!/usr/bin/env python3
"""
Review Tests

One review per room, rating aggregates, helpful marks, owner responses.
Run: pytest scripts/test_reviews.py
"""

from app.services.review_service import fill_categories
from conftest import booking_action, create_booking


def post_review(client, student, room_id, rating=4, **extra):
    response = client.post(
        "/api/reviews",
        json={"roomId": room_id, "rating": rating, "comment": "Clean and quiet", **extra},
        headers=student["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def room_rating(client, room_id):
    room = client.get(f"/api/rooms/{room_id}").json()["data"]
    return room["rating"], room["totalReviews"]


def test_fill_categories():
    assert fill_categories(4, {"cleanliness": 5}) == {
        "cleanliness": 5, "location": 4, "facilities": 4, "owner": 4, "value": 4,
    }
    assert fill_categories(3, None)["value"] == 3


def test_review_updates_room_rating(client, student, other_student, room):
    """[1] Room rating is the mean of its reviews, one decimal."""
    post_review(client, student, room["_id"], rating=5)
    post_review(client, other_student, room["_id"], rating=4)

    assert room_rating(client, room["_id"]) == (4.5, 2)


def test_one_review_per_room(client, student, room):
    post_review(client, student, room["_id"])
    response = client.post(
        "/api/reviews", json={"roomId": room["_id"], "rating": 2}, headers=student["headers"]
    )
    assert response.status_code == 409
    assert response.json()["error"] == "You have already reviewed this room"


def test_owners_cannot_review(client, owner, room):
    response = client.post("/api/reviews", json={"roomId": room["_id"], "rating": 5}, headers=owner["headers"])
    assert response.status_code == 403


def test_verified_review_after_stay(client, owner, student, room):
    """[2] A review from a student who stayed is verified and flags the booking."""
    booking = create_booking(client, student, room["_id"])
    booking_action(client, owner, booking["_id"], "approve")
    booking_action(client, owner, booking["_id"], "check_in")

    review = post_review(client, student, room["_id"], bookingId=booking["_id"])
    assert review["isVerified"] is True
    assert review["booking"] == booking["_id"]
    assert review["student"]["fullName"] == student["user"]["fullName"]

    updated = client.get(f"/api/bookings/{booking['_id']}", headers=student["headers"]).json()["data"]
    assert updated["studentReviewSubmitted"] is True


def test_unverified_review_without_stay(client, student, room):
    review = post_review(client, student, room["_id"])
    assert review["isVerified"] is False
    assert review["booking"] is None


def test_edit_and_delete_review(client, student, other_student, room):
    review = post_review(client, student, room["_id"], rating=2)

    forbidden = client.put(f"/api/reviews/{review['_id']}", json={"rating": 5}, headers=other_student["headers"])
    assert forbidden.status_code == 403

    response = client.put(f"/api/reviews/{review['_id']}", json={"rating": 5}, headers=student["headers"])
    assert response.json()["data"]["overallRating"] == 5
    assert room_rating(client, room["_id"]) == (5, 1)

    assert client.put(f"/api/reviews/{review['_id']}", json={}, headers=student["headers"]).status_code == 400

    assert client.delete(f"/api/reviews/{review['_id']}", headers=student["headers"]).status_code == 200
    assert room_rating(client, room["_id"]) == (0, 0)
    assert client.get(f"/api/reviews/{review['_id']}").status_code == 404


def test_helpful_toggle(client, owner, student, other_student, room):
    review = post_review(client, student, room["_id"])

    own = client.post(f"/api/reviews/{review['_id']}/helpful", headers=student["headers"])
    assert own.status_code == 400

    first = client.post(f"/api/reviews/{review['_id']}/helpful", headers=other_student["headers"]).json()["data"]
    assert first == {"helpfulCount": 1, "markedHelpful": True}
    client.post(f"/api/reviews/{review['_id']}/helpful", headers=owner["headers"])

    undo = client.post(f"/api/reviews/{review['_id']}/helpful", headers=other_student["headers"]).json()["data"]
    assert undo == {"helpfulCount": 1, "markedHelpful": False}


def test_owner_response(client, owner, student, room):
    from conftest import auth_headers, login, register

    review = post_review(client, student, room["_id"])
    register(client, "owner", "rival@example.com", "9000000009")
    rival = {"headers": auth_headers(login(client, "rival@example.com"))}

    response = client.post(
        f"/api/reviews/{review['_id']}/respond", json={"message": "Thanks!"}, headers=rival["headers"]
    )
    assert response.status_code == 403

    response = client.post(
        f"/api/reviews/{review['_id']}/respond", json={"message": "Thanks for staying!"}, headers=owner["headers"]
    )
    assert response.json()["data"]["ownerResponse"]["message"] == "Thanks for staying!"


def test_room_review_summary(client, student, other_student, room):
    post_review(client, student, room["_id"], rating=5, categories={"location": 3})
    post_review(client, other_student, room["_id"], rating=3)

    data = client.get("/api/reviews", params={"roomId": room["_id"]}).json()["data"]
    assert len(data["reviews"]) == 2
    summary = data["summary"]
    assert summary["totalReviews"] == 2
    assert summary["averageRating"] == 4
    assert summary["ratingDistribution"] == {"1": 0, "2": 0, "3": 1, "4": 0, "5": 1}
    assert summary["categoryAverages"]["location"] == 3
    assert summary["categoryAverages"]["cleanliness"] == 4
    assert data["pagination"]["total"] == 2


def test_room_rating_rounds_halves_up(client, student, other_student, room):
    from conftest import auth_headers, login, register

    reviewers = [student, other_student]
    for email, phone in [("third@example.com", "9000000004"), ("fourth@example.com", "9000000005")]:
        register(client, "student", email, phone)
        reviewers.append({"headers": auth_headers(login(client, email))})

    for reviewer, rating in zip(reviewers, [4, 5, 4, 4]):
        post_review(client, reviewer, room["_id"], rating=rating)

    # 4.25 -> 4.3
    assert room_rating(client, room["_id"]) == (4.3, 4)
