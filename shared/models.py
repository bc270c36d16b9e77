"""Shared data models for the KwikPost client.

This module contains the frontend-facing data structures produced by the
response normalizer and held by the session manager. Attributes are
snake_case; ``to_dict`` renders the stable camelCase schema consumed by
presentation code and persisted in the session store.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from .exceptions import ValidationError


T = TypeVar("T")


def clean_token(token: Optional[str]) -> Optional[str]:
    """Return the token, or None when it is missing, empty or whitespace."""
    if not isinstance(token, str) or not token.strip():
        return None
    return token


@dataclass(frozen=True)
class Credentials:
    """Login credentials. Never persisted."""

    username: str
    password: str = field(repr=False)

    def to_dict(self) -> Dict[str, str]:
        return {"username": self.username, "password": self.password}


@dataclass(frozen=True)
class UserProfile:
    """Represents a KwikPost user in the frontend shape.

    Attributes:
        id: Backend identifier of the user
        username: Unique handle; fixed for the lifetime of a session
        name: Display first name
        surname: Display surname
        bio: Free-form biography
        avatar_url: URL of the profile picture (backend ``profileImg``)
        join_date: Registration timestamp (backend ``registrationDate``)
    """

    id: Any
    username: str
    name: Optional[str] = None
    surname: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    join_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "surname": self.surname,
            "bio": self.bio,
            "avatarUrl": self.avatar_url,
            "joinDate": self.join_date,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "UserProfile":
        """Rebuild a profile from its frontend dictionary.

        Raises:
            ValidationError: If data is not a mapping with a non-empty username
        """
        if not isinstance(data, Mapping):
            raise ValidationError("User profile must be an object", field="user", value=data)

        username = data.get("username")
        if not isinstance(username, str) or not username:
            raise ValidationError("User profile has no username", field="username", value=username)

        return cls(
            id=data.get("id"),
            username=username,
            name=data.get("name"),
            surname=data.get("surname"),
            bio=data.get("bio"),
            avatar_url=data.get("avatarUrl"),
            join_date=data.get("joinDate"),
        )


@dataclass
class Post:
    """Represents a post (or a reply) in the frontend shape.

    Attributes:
        id: Backend identifier of the post
        content: Text of the post
        created_at: Publication timestamp (backend ``publishDate``)
        reply_count: Number of replies, 0 when the backend omits it
        like_count: Number of likes, 0 when the backend omits it
        author: Normalized author, if the backend embedded one
        replies: Normalized replies, always a list
    """

    id: Any
    content: str
    created_at: Optional[str] = None
    reply_count: int = 0
    like_count: int = 0
    author: Optional[UserProfile] = None
    replies: List["Post"] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Ensure replies is always a list."""
        if self.replies is None:
            self.replies = []

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "createdAt": self.created_at,
            "replyCount": self.reply_count,
            "likeCount": self.like_count,
            "replies": [reply.to_dict() for reply in self.replies],
        }
        if self.author is not None:
            data["author"] = self.author.to_dict()
        return data


@dataclass
class PaginatedCollection(Generic[T]):
    """A page of items together with the total number of items available."""

    total_count: int
    items: List[T] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate pagination data."""
        if self.total_count < 0:
            raise ValueError("Total count must be non-negative")
        if self.items is None:
            self.items = []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCount": self.total_count,
            "items": [item.to_dict() if hasattr(item, "to_dict") else item for item in self.items],
        }


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the authentication state."""

    token: Optional[str] = None
    user: Optional[UserProfile] = None

    @property
    def is_authenticated(self) -> bool:
        """True only when both a token and a user with a username are present."""
        return clean_token(self.token) is not None and self.user is not None and bool(self.user.username)


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login attempt."""

    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True}
        return {"success": False, "error": self.error}
