# app/repositories/posts.py
"""Post queries: lookups, writes and newest-first cursor pagination."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import DB_RETRY_ATTEMPTS, DB_RETRY_MAX_WAIT, DB_RETRY_MIN_WAIT
from app.models import Post, User
from app.pagination import decode_cursor, encode_cursor
from app.schemas import AuthorSummary, Page, PostRecord

logger = logging.getLogger(__name__)


def to_author(user: User) -> AuthorSummary:
    return AuthorSummary(id=user.id, first_name=user.first_name, last_name=user.last_name)


def to_post_record(post: Post, author: User) -> PostRecord:
    return PostRecord(
        id=post.id,
        content=post.content,
        image_url=post.image_url,
        is_public=post.is_public,
        created_at=post.created_at,
        author=to_author(author),
    )


class PostRepository:
    """Translates post queries into SQL; never touches the cache."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, post_id: str) -> Optional[Post]:
        return await self.db.get(Post, post_id)

    async def find_with_author(self, post_id: str) -> Optional[PostRecord]:
        stmt = (
            select(Post, User)
            .join(User, Post.user_id == User.id)
            .where(Post.id == post_id)
        )
        row = (await self.db.execute(stmt)).first()
        if row is None:
            return None
        return to_post_record(row[0], row[1])

    async def list_page(
        self, viewer_id: Optional[str], cursor: Optional[str], limit: int
    ) -> Page[PostRecord]:
        """
        Return one page of posts visible to ``viewer_id``, newest first.

        Visible means public, or authored by the viewer. With a cursor only
        posts strictly older than the cursor position on (created_at, id)
        qualify. One extra row is fetched to decide ``has_more``; the cursor
        points at the last row kept.

        Args:
            viewer_id: Requesting user, or None for anonymous
            cursor: Token from a previous page's ``next_cursor``
            limit: Page size, already clamped by the caller

        Returns:
            Page of post records
        """
        position = decode_cursor(cursor) if cursor else None
        rows = await self._fetch_page_rows(viewer_id, position, limit + 1)

        has_more = len(rows) > limit
        kept = rows[:limit]
        next_cursor = None
        if has_more:
            last_post = kept[-1][0]
            next_cursor = encode_cursor(last_post.created_at, last_post.id)

        return Page[PostRecord](
            items=[to_post_record(post, author) for post, author in kept],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(DB_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=DB_RETRY_MIN_WAIT, max=DB_RETRY_MAX_WAIT),
        reraise=True,
    )
    async def _fetch_page_rows(
        self,
        viewer_id: Optional[str],
        position: Optional[Tuple[datetime, str]],
        fetch: int,
    ) -> List[Tuple[Post, User]]:
        if viewer_id:
            visible = or_(Post.is_public.is_(True), Post.user_id == viewer_id)
        else:
            visible = Post.is_public.is_(True)

        stmt = select(Post, User).join(User, Post.user_id == User.id).where(visible)

        if position is not None:
            created_at, last_id = position
            stmt = stmt.where(
                or_(
                    Post.created_at < created_at,
                    and_(Post.created_at == created_at, Post.id < last_id),
                )
            )

        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(fetch)
        result = await self.db.execute(stmt)
        return [(post, author) for post, author in result.all()]

    async def create(
        self,
        user_id: str,
        content: str,
        image_url: Optional[str] = None,
        is_public: bool = True,
    ) -> Post:
        post = Post(
            user_id=user_id,
            content=content.strip(),
            image_url=image_url,
            is_public=is_public,
        )
        self.db.add(post)
        await self.db.flush()
        return post

    async def delete(self, post_id: str) -> None:
        await self.db.execute(delete(Post).where(Post.id == post_id))
