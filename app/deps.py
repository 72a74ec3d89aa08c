"""FastAPI dependencies: session, cache, viewer identity and services."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheBackend
from app.db import get_db
from app.errors import DomainError
from app.security import decode_access_token
from app.services.auth import AuthService
from app.services.comments import CommentService
from app.services.likes import CommentLikeService, PostLikeService
from app.services.posts import PostService

bearer_scheme = HTTPBearer(auto_error=False)


def get_cache(request: Request) -> CacheBackend:
    return request.app.state.cache


def get_optional_viewer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Viewer id from the bearer token; anonymous when missing or invalid."""
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


def require_viewer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise DomainError.unauthorized()
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise DomainError.unauthorized("Invalid or expired token")
    return user_id


def get_post_service(
    db: AsyncSession = Depends(get_db), cache: CacheBackend = Depends(get_cache)
) -> PostService:
    return PostService(db, cache)


def get_comment_service(
    db: AsyncSession = Depends(get_db), cache: CacheBackend = Depends(get_cache)
) -> CommentService:
    return CommentService(db, cache)


def get_post_like_service(
    db: AsyncSession = Depends(get_db), cache: CacheBackend = Depends(get_cache)
) -> PostLikeService:
    return PostLikeService(db, cache)


def get_comment_like_service(
    db: AsyncSession = Depends(get_db), cache: CacheBackend = Depends(get_cache)
) -> CommentLikeService:
    return CommentLikeService(db, cache)


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)
