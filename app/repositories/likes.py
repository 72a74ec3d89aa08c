# app/repositories/likes.py
"""Like rows for posts and comments.

At most one like per (target, user) is guaranteed by a unique constraint, so
``create`` may raise ``IntegrityError`` when two requests race; callers treat
that as "already liked".
"""

from typing import Iterable, Set

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import CommentLike, PostLike


class LikeRepository:
    model = None
    target_field = None

    def __init__(self, db: AsyncSession):
        self.db = db

    @property
    def _target(self):
        return getattr(self.model, self.target_field)

    async def find(self, user_id: str, target_id: str):
        stmt = select(self.model).where(self._target == target_id, self.model.user_id == user_id)
        return (await self.db.execute(stmt)).scalars().first()

    async def count(self, target_id: str) -> int:
        stmt = select(func.count(self.model.id)).where(self._target == target_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def liked_ids(self, user_id: str, target_ids: Iterable[str]) -> Set[str]:
        """Subset of ``target_ids`` the user has liked, in one query."""
        target_ids = list(target_ids)
        if not target_ids:
            return set()
        stmt = select(self._target).where(
            self.model.user_id == user_id, self._target.in_(target_ids)
        )
        return set((await self.db.execute(stmt)).scalars().all())

    async def create(self, user_id: str, target_id: str):
        like = self.model(user_id=user_id, **{self.target_field: target_id})
        self.db.add(like)
        await self.db.flush()
        return like

    async def delete(self, user_id: str, target_id: str) -> int:
        stmt = delete(self.model).where(self._target == target_id, self.model.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.rowcount or 0


class PostLikeRepository(LikeRepository):
    model = PostLike
    target_field = "post_id"


class CommentLikeRepository(LikeRepository):
    model = CommentLike
    target_field = "comment_id"
