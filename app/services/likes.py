# app/services/likes.py
"""
Idempotent like / unlike for posts and comments.

Liking twice reports the current count with an "Already liked" marker
instead of failing; unliking something never liked is a no-op. Cached views
are invalidated on every path, including the no-op ones.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheBackend
from app.errors import DomainError
from app.repositories import CommentLikeRepository, CommentRepository, PostLikeRepository, PostRepository
from app.repositories.likes import LikeRepository
from app.schemas import LikeResult
from app.services.invalidation import invalidate_post_views

logger = logging.getLogger(__name__)

ALREADY_LIKED = "Already liked"


class LikeService:
    """Shared like workflow; subclasses resolve the target and its post."""

    def __init__(self, db: AsyncSession, cache: CacheBackend, likes: LikeRepository):
        self.db = db
        self.cache = cache
        self.likes = likes
        self.posts = PostRepository(db)

    async def _resolve(self, target_id: str, user_id: str) -> str:
        """Return the id of the post owning the target, or raise NotFound."""
        raise NotImplementedError

    async def _invalidate(self, post_id: str, target_id: str) -> None:
        await invalidate_post_views(self.cache, post_id)

    async def _require_visible_post(self, post_id: str, user_id: str, resource: str, target_id: str):
        post = await self.posts.find_by_id(post_id)
        if post is None or (not post.is_public and post.user_id != user_id):
            raise DomainError.not_found(resource, target_id)
        return post

    async def like(self, target_id: str, user_id: str) -> LikeResult:
        post_id = await self._resolve(target_id, user_id)

        message: Optional[str] = None
        if await self.likes.find(user_id, target_id) is not None:
            message = ALREADY_LIKED
        else:
            try:
                await self.likes.create(user_id, target_id)
                await self.db.commit()
                logger.info("User %s liked %s", user_id, target_id)
            except IntegrityError:
                # lost a race on the unique (target, user) constraint
                await self.db.rollback()
                message = ALREADY_LIKED

        await self._invalidate(post_id, target_id)
        like_count = await self.likes.count(target_id)
        return LikeResult(success=True, like_count=like_count, message=message)

    async def unlike(self, target_id: str, user_id: str) -> LikeResult:
        post_id = await self._resolve(target_id, user_id)

        removed = await self.likes.delete(user_id, target_id)
        await self.db.commit()
        if removed:
            logger.info("User %s unliked %s", user_id, target_id)

        await self._invalidate(post_id, target_id)
        like_count = await self.likes.count(target_id)
        return LikeResult(success=True, like_count=like_count)


class PostLikeService(LikeService):
    def __init__(self, db: AsyncSession, cache: CacheBackend):
        super().__init__(db, cache, PostLikeRepository(db))

    async def _resolve(self, target_id: str, user_id: str) -> str:
        await self._require_visible_post(target_id, user_id, "Post", target_id)
        return target_id

    async def like_post(self, post_id: str, user_id: str) -> LikeResult:
        return await self.like(post_id, user_id)

    async def unlike_post(self, post_id: str, user_id: str) -> LikeResult:
        return await self.unlike(post_id, user_id)


class CommentLikeService(LikeService):
    def __init__(self, db: AsyncSession, cache: CacheBackend):
        super().__init__(db, cache, CommentLikeRepository(db))
        self.comments = CommentRepository(db)

    async def _resolve(self, target_id: str, user_id: str) -> str:
        comment = await self.comments.find_by_id(target_id)
        if comment is None:
            raise DomainError.not_found("Comment", target_id)
        post_id = comment.post_id
        await self._require_visible_post(post_id, user_id, "Comment", target_id)
        return post_id

    async def _invalidate(self, post_id: str, target_id: str) -> None:
        await invalidate_post_views(self.cache, post_id, comment_id=target_id)

    async def like_comment(self, comment_id: str, user_id: str) -> LikeResult:
        return await self.like(comment_id, user_id)

    async def unlike_comment(self, comment_id: str, user_id: str) -> LikeResult:
        return await self.unlike(comment_id, user_id)
