"""
Pydantic request / response schemas.

Kept separate from ORM models so cached snapshots and HTTP payloads never
carry session-bound objects.
"""
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

T = TypeVar("T")


# ──────────────────────────── Auth ────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("must be at least 2 characters")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthorSummary(BaseModel):
    id: str
    first_name: str
    last_name: str


class UserResponse(AuthorSummary):
    email: str


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    expires_in_seconds: int


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    content: str = Field(..., max_length=500)
    image_url: Optional[str] = Field(None, max_length=2048, pattern=r"^https?://")
    is_public: bool = True

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Post cannot be empty")
        return value


class PostRecord(BaseModel):
    """Viewer-independent post snapshot; this is what gets cached."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    content: str
    image_url: Optional[str] = None
    is_public: bool
    created_at: datetime
    author: AuthorSummary


class PostDTO(PostRecord):
    like_count: int = 0
    comment_count: int = 0
    has_user_liked: bool = False


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    content: str = Field(..., max_length=1000)
    parent_comment_id: Optional[str] = Field(None, max_length=36)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment cannot be empty")
        return value


class CommentDTO(BaseModel):
    id: str
    post_id: str
    content: str
    created_at: datetime
    updated_at: datetime
    parent_comment_id: Optional[str] = None
    author: AuthorSummary
    like_count: int = 0
    reply_count: int = 0
    has_user_liked: bool = False


class CommentNode(CommentDTO):
    """A comment with its replies, as returned by the depth-limited tree view."""
    replies: List["CommentNode"] = Field(default_factory=list)


class CommentTree(BaseModel):
    post_id: str
    max_depth: int
    comments: List[CommentNode]


# ──────────────────────────── Likes & pages ───────────────────────────────

class LikeResult(BaseModel):
    success: bool
    like_count: int
    message: Optional[str] = None


class Page(BaseModel, Generic[T]):
    items: List[T]
    next_cursor: Optional[str] = None
    has_more: bool = False


CommentNode.model_rebuild()
