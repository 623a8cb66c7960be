# mypy: ignore-errors
# tests/v1/test_users.py
"""Tests for user profile endpoints."""

from datetime import timedelta

from fastapi import status

from loop_stage.core.security import create_access_token
from loop_stage.models import Loop, LoopMember


def _headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def test_first_put_creates_profile(client) -> None:
    """A new identity creates its profile on first update."""
    headers = _headers("fresh-user")
    response = client.put("/api/v1/users/me", json={"username": "fresh"}, headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "user_id": "fresh-user",
        "username": "fresh",
        "display_name": None,
        "bio": None,
        "interests": [],
        "aura_total": 0,
    }

    me = client.get("/api/v1/users/me", headers=headers)
    assert me.json()["username"] == "fresh"


def test_partial_update_keeps_other_fields(client, auth_token, test_user) -> None:
    """Only fields present in the request change."""
    response = client.put("/api/v1/users/me", json={"display_name": "Alice L."}, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["username"] == "alice"
    assert response.json()["display_name"] == "Alice L."


def test_username_conflict(client, other_auth_token, test_user) -> None:
    """Usernames are unique."""
    response = client.put("/api/v1/users/me", json={"username": "alice"}, headers=other_auth_token)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_get_me_without_profile(client) -> None:
    """Reading a profile that was never created is unauthorized."""
    response = client.get("/api/v1/users/me", headers=_headers("nobody"))
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_invalid_token(client) -> None:
    """Garbage tokens are rejected."""
    response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_public_profile_shows_aura(client, other_auth_token, test_user, test_post) -> None:
    """Aura earned from post votes appears on the public profile."""
    client.post(
        "/api/v1/votes/",
        json={"loop_id": test_post.loop_id, "subject_kind": "post", "subject_id": test_post.id, "value": 1},
        headers=other_auth_token,
    )
    response = client.get(f"/api/v1/users/{test_user.user_id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["aura_total"] == 1


def test_unknown_profile(client) -> None:
    """Unknown users are a 404."""
    assert client.get("/api/v1/users/missing").status_code == status.HTTP_404_NOT_FOUND


def test_reconcile_aura(client, auth_token, other_auth_token, db_session, test_user, test_post) -> None:
    """Drifted aura is re-derived from the ledger."""
    client.post(
        "/api/v1/votes/",
        json={"loop_id": test_post.loop_id, "subject_kind": "post", "subject_id": test_post.id, "value": -1},
        headers=other_auth_token,
    )
    db_session.refresh(test_user)
    test_user.aura_total = 99
    db_session.commit()

    response = client.post(f"/api/v1/users/{test_user.user_id}/reconcile-aura", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["aura_total"] == -1


def test_bio_and_interests_round_trip(client, auth_token, test_user) -> None:
    """Bio and interests are stored and shown on the public profile."""
    response = client.put(
        "/api/v1/users/me",
        json={"bio": "  Plants and synths  ", "interests": ["music", " gardening ", "music", ""]},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["bio"] == "Plants and synths"
    assert response.json()["interests"] == ["music", "gardening"]

    public = client.get(f"/api/v1/users/{test_user.user_id}").json()
    assert public["bio"] == "Plants and synths"
    assert public["interests"] == ["music", "gardening"]
    assert public["username"] == "alice"


def test_clearing_bio_and_interests(client, auth_token, test_user) -> None:
    """A blank bio and a null interest list reset both fields."""
    client.put("/api/v1/users/me", json={"bio": "Hello", "interests": ["art"]}, headers=auth_token)

    response = client.put("/api/v1/users/me", json={"bio": "   ", "interests": None}, headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["bio"] is None
    assert response.json()["interests"] == []


def test_my_loops_lists_joined_loops(client, auth_token, db_session, test_user, test_loop) -> None:
    """Only loops the caller belongs to are listed, sorted by name."""
    art = Loop(name="art", members_count=1)
    zines = Loop(name="zines", members_count=0)
    db_session.add_all([art, zines])
    db_session.flush()
    db_session.add(LoopMember(loop_id=art.id, user_id=test_user.user_id))
    db_session.commit()

    response = client.get("/api/v1/users/me/loops", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    assert [loop["name"] for loop in response.json()] == ["art", "general"]


def test_my_loops_empty(client, other_auth_token, test_loop) -> None:
    """A user who joined nothing gets an empty list."""
    response = client.get("/api/v1/users/me/loops", headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == []


def test_user_posts_across_loops(
    client, db_session, test_loop, test_user, other_user, make_post, now
) -> None:
    """A user's posts from every loop are listed newest first."""
    elsewhere = Loop(name="elsewhere", members_count=0)
    db_session.add(elsewhere)
    db_session.commit()
    oldest = make_post(test_loop, test_user, content="first", created_at=now - timedelta(days=2))
    newest = make_post(elsewhere, test_user, content="latest", created_at=now)
    middle = make_post(test_loop, test_user, content="middle", created_at=now - timedelta(hours=5))
    make_post(test_loop, other_user, content="not mine", created_at=now)

    response = client.get(f"/api/v1/users/{test_user.user_id}/posts")

    assert response.status_code == status.HTTP_200_OK
    assert [post["id"] for post in response.json()] == [newest.id, middle.id, oldest.id]

    limited = client.get(f"/api/v1/users/{test_user.user_id}/posts", params={"limit": 2})
    assert [post["id"] for post in limited.json()] == [newest.id, middle.id]


def test_user_posts_unknown_user(client) -> None:
    """Listing posts for an unknown user is a 404."""
    response = client.get("/api/v1/users/missing/posts")
    assert response.status_code == status.HTTP_404_NOT_FOUND
