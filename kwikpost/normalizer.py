"""Normalization of backend payloads into the frontend schema.

The backend and the frontend disagree on field names (``profileImg`` versus
``avatarUrl``, ``publishDate`` versus ``createdAt``, ``paginator``/``result``
versus ``totalCount``/``items``). Every response that passes through the
gateway is classified into one of a closed set of shapes and mapped through
the matching function below. All functions are pure and never mutate their
input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from shared.exceptions import ValidationError
from shared.models import PaginatedCollection, Post, UserProfile

PLACEHOLDER_SURNAME = "User"
PLACEHOLDER_BIO = "Usuario de KwikPost"
PLACEHOLDER_AVATAR_URL = "https://randomuser.me/api/portraits/men/1.jpg"


class PayloadKind(Enum):
    """Shapes a backend response body can take."""

    PAGINATED_POST_LIST = "paginated_post_list"
    SINGLE_POST = "single_post"
    SINGLE_USER = "single_user"
    OPAQUE = "opaque"


def is_paginated_post_list(body: Any) -> bool:
    return (
        isinstance(body, Mapping)
        and isinstance(body.get("paginator"), Mapping)
        and isinstance(body.get("result"), list)
    )


def is_single_post(body: Any) -> bool:
    return (
        isinstance(body, Mapping)
        and body.get("id") is not None
        and bool(body.get("content"))
        and bool(body.get("publishDate"))
    )


def is_single_user(body: Any) -> bool:
    return isinstance(body, Mapping) and bool(body.get("username")) and bool(body.get("profileImg"))


def classify_payload(body: Any) -> PayloadKind:
    """Detect which shape a response body has. Checks run in priority order."""
    if is_paginated_post_list(body):
        return PayloadKind.PAGINATED_POST_LIST
    if is_single_post(body):
        return PayloadKind.SINGLE_POST
    if is_single_user(body):
        return PayloadKind.SINGLE_USER
    return PayloadKind.OPAQUE


def normalize_user(raw: Optional[Mapping[str, Any]]) -> Optional[UserProfile]:
    """Convert a backend user record into a UserProfile.

    Args:
        raw: Backend user ``{id, username, name, surname, bio, profileImg,
            registrationDate}`` or None

    Returns:
        The normalized profile, or None when no record was given
    """
    if not raw:
        return None

    return UserProfile(
        id=raw.get("id"),
        username=raw.get("username"),
        name=raw.get("name"),
        surname=raw.get("surname"),
        bio=raw.get("bio"),
        avatar_url=raw.get("profileImg"),
        join_date=raw.get("registrationDate"),
    )


def normalize_post(raw: Mapping[str, Any]) -> Post:
    """Convert a backend post record, with its nested replies, into a Post.

    Replies are normalized recursively. Backend reply graphs are finite trees,
    so the recursion terminates.
    """
    return Post(
        id=raw.get("id"),
        content=raw.get("content"),
        created_at=raw.get("publishDate"),
        reply_count=raw.get("nReplies") or 0,
        like_count=raw.get("nLikes") or 0,
        author=normalize_user(raw.get("user")),
        replies=[normalize_post(reply) for reply in raw.get("replies") or []],
    )


def placeholder_author(username: str, user_id: Any = None) -> UserProfile:
    """Build a minimal profile for a post whose author the backend omitted."""
    return UserProfile(
        id=user_id,
        username=username,
        name=username[:1].upper() + username[1:],
        surname=PLACEHOLDER_SURNAME,
        bio=PLACEHOLDER_BIO,
        avatar_url=PLACEHOLDER_AVATAR_URL,
        join_date=datetime.now(timezone.utc).isoformat(),
    )


def normalize_paginated_posts(
    raw: Mapping[str, Any],
    fallback_username: Optional[str] = None
) -> PaginatedCollection[Post]:
    """Convert ``{paginator: {total}, result: [...]}`` into a PaginatedCollection.

    Args:
        raw: Backend paginated response
        fallback_username: When set, posts without an embedded author get a
            placeholder author with this username

    Returns:
        The normalized page of posts

    Raises:
        ValidationError: If the paginator total is not a non-negative integer
    """
    total = raw.get("paginator", {}).get("total")
    try:
        total_count = int(total or 0)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid paginator total", field="paginator.total", value=total) from e
    if total_count < 0:
        raise ValidationError("Negative paginator total", field="paginator.total", value=total)

    items = []
    for record in raw.get("result") or []:
        post = normalize_post(record)
        if fallback_username and post.author is None:
            post.author = placeholder_author(fallback_username, record.get("userId"))
        items.append(post)

    return PaginatedCollection(
        total_count=total_count,
        items=items,
    )
