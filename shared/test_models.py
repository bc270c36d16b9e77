"""Unit tests for the shared data models."""

import pytest

from shared.exceptions import HttpError, ValidationError
from shared.models import (
    Credentials,
    LoginResult,
    PaginatedCollection,
    Post,
    SessionState,
    UserProfile,
    clean_token,
)


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(
        id=1,
        username="johndoe",
        name="John",
        surname="Doe",
        bio="bio",
        avatar_url="http://x/a.png",
        join_date="2024-01-01T00:00:00Z",
    )


class TestUserProfile:
    """Test suite for UserProfile."""

    def test_dict_round_trip(self, profile: UserProfile) -> None:
        assert UserProfile.from_dict(profile.to_dict()) == profile

    def test_frontend_keys(self, profile: UserProfile) -> None:
        assert set(profile.to_dict()) == {"id", "username", "name", "surname", "bio", "avatarUrl", "joinDate"}

    @pytest.mark.parametrize("data", [None, "johndoe", [], {}, {"username": ""}, {"username": 5}])
    def test_from_dict_rejects_invalid(self, data) -> None:
        with pytest.raises(ValidationError):
            UserProfile.from_dict(data)

    def test_username_is_immutable(self, profile: UserProfile) -> None:
        with pytest.raises(AttributeError):
            profile.username = "someone_else"


class TestSessionState:
    """Test suite for the authentication predicate."""

    def test_both_present(self, profile: UserProfile) -> None:
        assert SessionState(token="tok123", user=profile).is_authenticated is True

    def test_token_only(self) -> None:
        assert SessionState(token="tok123").is_authenticated is False

    def test_user_only(self, profile: UserProfile) -> None:
        assert SessionState(user=profile).is_authenticated is False

    def test_blank_token(self, profile: UserProfile) -> None:
        assert SessionState(token="  ", user=profile).is_authenticated is False

    def test_user_without_username(self) -> None:
        assert SessionState(token="tok123", user=UserProfile(id=1, username="")).is_authenticated is False


def test_post_replies_never_none() -> None:
    post = Post(id=1, content="x", replies=None)
    assert post.replies == []


def test_paginated_collection_validation() -> None:
    with pytest.raises(ValueError):
        PaginatedCollection(total_count=-5)
    assert PaginatedCollection(total_count=0).to_dict() == {"totalCount": 0, "items": []}


def test_login_result_to_dict() -> None:
    assert LoginResult(success=True).to_dict() == {"success": True}
    assert LoginResult(success=False, error="nope").to_dict() == {"success": False, "error": "nope"}


def test_credentials_repr_hides_password() -> None:
    assert "a1b2c3d4" not in repr(Credentials(username="johndoe", password="a1b2c3d4"))


@pytest.mark.parametrize("token, expected", [(None, None), ("", None), (" \t", None), ("tok", "tok")])
def test_clean_token(token, expected) -> None:
    assert clean_token(token) == expected


def test_http_error_to_dict() -> None:
    error = HttpError(404, "Request failed with status code 404", url="http://localhost:3000/post/9")
    assert error.to_dict()["details"] == {"status": 404, "url": "http://localhost:3000/post/9"}
    assert error.is_unauthorized is False
