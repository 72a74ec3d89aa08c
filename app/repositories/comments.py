# app/repositories/comments.py
"""Comment queries, including the self-referential reply relation."""

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Comment, User


class CommentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, comment_id: str) -> Optional[Comment]:
        return await self.db.get(Comment, comment_id)

    async def find_with_author(self, comment_id: str) -> Optional[Tuple[Comment, User]]:
        stmt = (
            select(Comment, User)
            .join(User, Comment.user_id == User.id)
            .where(Comment.id == comment_id)
        )
        row = (await self.db.execute(stmt)).first()
        return (row[0], row[1]) if row else None

    async def list_by_post(
        self, post_id: str, parent_comment_id: Optional[str] = None
    ) -> List[Tuple[Comment, User]]:
        """Top-level comments of a post, or the direct replies to one comment."""
        stmt = (
            select(Comment, User)
            .join(User, Comment.user_id == User.id)
            .where(Comment.post_id == post_id)
        )
        if parent_comment_id is None:
            stmt = stmt.where(Comment.parent_comment_id.is_(None))
        else:
            stmt = stmt.where(Comment.parent_comment_id == parent_comment_id)

        stmt = stmt.order_by(Comment.created_at.desc(), Comment.id.desc())
        result = await self.db.execute(stmt)
        return [(comment, author) for comment, author in result.all()]

    async def list_all_for_post(self, post_id: str) -> List[Tuple[Comment, User]]:
        stmt = (
            select(Comment, User)
            .join(User, Comment.user_id == User.id)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        result = await self.db.execute(stmt)
        return [(comment, author) for comment, author in result.all()]

    async def count_by_post(self, post_id: str) -> int:
        stmt = select(func.count(Comment.id)).where(Comment.post_id == post_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_replies(self, comment_id: str) -> int:
        stmt = select(func.count(Comment.id)).where(Comment.parent_comment_id == comment_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def reply_counts(self, comment_ids: Iterable[str]) -> Dict[str, int]:
        comment_ids = list(comment_ids)
        if not comment_ids:
            return {}
        stmt = (
            select(Comment.parent_comment_id, func.count(Comment.id))
            .where(Comment.parent_comment_id.in_(comment_ids))
            .group_by(Comment.parent_comment_id)
        )
        result = await self.db.execute(stmt)
        return {parent_id: count for parent_id, count in result.all()}

    async def create(
        self,
        post_id: str,
        user_id: str,
        content: str,
        parent_comment_id: Optional[str] = None,
    ) -> Comment:
        comment = Comment(
            post_id=post_id,
            user_id=user_id,
            content=content.strip(),
            parent_comment_id=parent_comment_id,
        )
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def delete(self, comment_id: str) -> None:
        await self.db.execute(delete(Comment).where(Comment.id == comment_id))
