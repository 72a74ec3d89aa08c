# app/services/posts.py
"""Post reads and writes with cache-aside feed pages, entities and counts."""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheBackend, CacheKeys
from app.config import COUNT_CACHE_TTL_SECONDS, FEED_CACHE_TTL_SECONDS, POST_CACHE_TTL_SECONDS
from app.errors import DomainError
from app.pagination import clamp_limit
from app.repositories import CommentRepository, PostLikeRepository, PostRepository, UserRepository
from app.repositories.posts import to_post_record
from app.schemas import Page, PostCreate, PostDTO, PostRecord
from app.services.invalidation import invalidate_post_views

logger = logging.getLogger(__name__)


def is_visible(record: PostRecord, viewer_id: Optional[str]) -> bool:
    return record.is_public or (viewer_id is not None and record.author.id == viewer_id)


class PostService:
    """
    Orchestrates the post repository and the cache.

    Cached feed pages and post entries are viewer-independent snapshots;
    counts come from their own short-lived keys and ``has_user_liked`` is
    always read from the store.
    """

    def __init__(self, db: AsyncSession, cache: CacheBackend):
        self.db = db
        self.cache = cache
        self.posts = PostRepository(db)
        self.likes = PostLikeRepository(db)
        self.comments = CommentRepository(db)
        self.users = UserRepository(db)

    async def list_posts(
        self,
        viewer_id: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Page[PostDTO]:
        """
        Return one feed page for ``viewer_id`` (None for anonymous).

        Args:
            viewer_id: Requesting user
            cursor: ``next_cursor`` of the previous page, None for the first
            limit: Requested page size, clamped to the configured bounds

        Returns:
            Page of enriched posts
        """
        limit = clamp_limit(limit)
        key = CacheKeys.posts_feed(viewer_id, cursor, limit)

        async def load_page():
            page = await self.posts.list_page(viewer_id, cursor, limit)
            return page.model_dump(mode="json")

        snapshot = await self.cache.get_or_compute(key, load_page, FEED_CACHE_TTL_SECONDS)
        page = Page[PostRecord].model_validate(snapshot)

        return Page[PostDTO](
            items=await self._enrich(page.items, viewer_id),
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )

    async def get_post_by_id(self, post_id: str, viewer_id: Optional[str] = None) -> PostDTO:
        record = await self._load_record(post_id)
        if not is_visible(record, viewer_id):
            raise DomainError.not_found("Post", post_id)
        return (await self._enrich([record], viewer_id))[0]

    async def create_post(self, author_id: str, payload: PostCreate) -> PostDTO:
        content = (payload.content or "").strip()
        if not content:
            raise DomainError.validation("Post cannot be empty")

        author = await self.users.find_by_id(author_id)
        if author is None:
            raise DomainError.unauthorized("Unknown user")

        post = await self.posts.create(
            user_id=author_id,
            content=content,
            image_url=payload.image_url,
            is_public=payload.is_public,
        )
        record = to_post_record(post, author)
        await self.db.commit()
        logger.info("Created post %s by user %s", post.id, author_id)

        await invalidate_post_views(self.cache, record.id)
        return PostDTO(**record.model_dump())

    async def delete_post(self, post_id: str, requester_id: str) -> None:
        # ownership is checked against the store, never a cached snapshot
        post = await self.posts.find_by_id(post_id)
        if post is None or (not post.is_public and post.user_id != requester_id):
            raise DomainError.not_found("Post", post_id)
        if post.user_id != requester_id:
            raise DomainError.forbidden("You can only delete your own posts")

        await self.posts.delete(post_id)
        await self.db.commit()
        logger.info("Deleted post %s", post_id)

        await invalidate_post_views(self.cache, post_id)

    async def _load_record(self, post_id: str) -> PostRecord:
        async def load():
            record = await self.posts.find_with_author(post_id)
            if record is None:
                raise DomainError.not_found("Post", post_id)
            return record.model_dump(mode="json")

        data = await self.cache.get_or_compute(CacheKeys.post(post_id), load, POST_CACHE_TTL_SECONDS)
        return PostRecord.model_validate(data)

    async def like_count(self, post_id: str) -> int:
        return await self.cache.get_or_compute(
            CacheKeys.post_like_count(post_id),
            lambda: self.likes.count(post_id),
            COUNT_CACHE_TTL_SECONDS,
        )

    async def comment_count(self, post_id: str) -> int:
        return await self.cache.get_or_compute(
            CacheKeys.post_comment_count(post_id),
            lambda: self.comments.count_by_post(post_id),
            COUNT_CACHE_TTL_SECONDS,
        )

    async def _enrich(self, records: List[PostRecord], viewer_id: Optional[str]) -> List[PostDTO]:
        liked = set()
        if viewer_id and records:
            liked = await self.likes.liked_ids(viewer_id, [r.id for r in records])

        items = []
        for record in records:
            items.append(
                PostDTO(
                    **record.model_dump(),
                    like_count=await self.like_count(record.id),
                    comment_count=await self.comment_count(record.id),
                    has_user_liked=record.id in liked,
                )
            )
        return items
