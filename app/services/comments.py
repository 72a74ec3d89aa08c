# app/services/comments.py
"""Comment service: threaded comments, replies and the depth-limited tree view."""

import logging
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheBackend, CacheKeys
from app.config import COMMENT_TREE_MAX_DEPTH, COUNT_CACHE_TTL_SECONDS
from app.errors import DomainError
from app.models import Comment, Post, User
from app.repositories import CommentLikeRepository, CommentRepository, PostRepository, UserRepository
from app.repositories.posts import to_author
from app.schemas import CommentCreate, CommentDTO, CommentNode, CommentTree
from app.services.invalidation import invalidate_post_views

logger = logging.getLogger(__name__)


class CommentService:
    """Creates, lists and deletes comments and keeps post views fresh."""

    def __init__(self, db: AsyncSession, cache: CacheBackend):
        self.db = db
        self.cache = cache
        self.comments = CommentRepository(db)
        self.likes = CommentLikeRepository(db)
        self.posts = PostRepository(db)
        self.users = UserRepository(db)

    async def create_comment(self, post_id: str, user_id: str, payload: CommentCreate) -> CommentDTO:
        """
        Add a comment, or a reply when ``payload.parent_comment_id`` is set.

        Args:
            post_id: Post being commented on
            user_id: Author of the comment
            payload: Validated comment body

        Returns:
            The created comment

        Raises:
            DomainError: validation error for blank content or a parent from
                another post, not found for a missing post or parent
        """
        content = (payload.content or "").strip()
        if not content:
            raise DomainError.validation("Comment content cannot be empty")

        await self._require_visible_post(post_id, user_id)

        parent_id = payload.parent_comment_id
        if parent_id:
            parent = await self.comments.find_by_id(parent_id)
            if parent is None:
                raise DomainError.not_found("Parent comment", parent_id)
            if parent.post_id != post_id:
                raise DomainError.validation("Parent comment does not belong to this post")

        author = await self.users.find_by_id(user_id)
        if author is None:
            raise DomainError.unauthorized("Unknown user")

        comment = await self.comments.create(
            post_id=post_id,
            user_id=user_id,
            content=content,
            parent_comment_id=parent_id or None,
        )
        dto = self._to_dto(comment, author, like_count=0, reply_count=0, has_user_liked=False)
        await self.db.commit()
        logger.info("Created comment %s on post %s", dto.id, post_id)

        await invalidate_post_views(self.cache, post_id)
        return dto

    async def create_reply(self, comment_id: str, user_id: str, content: str) -> CommentDTO:
        parent = await self.comments.find_by_id(comment_id)
        if parent is None:
            raise DomainError.not_found("Comment", comment_id)
        payload = CommentCreate.model_construct(content=content, parent_comment_id=comment_id)
        return await self.create_comment(parent.post_id, user_id, payload)

    async def list_comments(
        self,
        post_id: str,
        viewer_id: Optional[str] = None,
        parent_comment_id: Optional[str] = None,
    ) -> List[CommentDTO]:
        """Top-level comments of a post, or the replies to one of them, newest first."""
        await self._require_visible_post(post_id, viewer_id)
        rows = await self.comments.list_by_post(post_id, parent_comment_id)
        return await self._enrich(rows, viewer_id)

    async def list_replies(self, comment_id: str, viewer_id: Optional[str] = None) -> List[CommentDTO]:
        parent = await self.comments.find_by_id(comment_id)
        if parent is None:
            raise DomainError.not_found("Comment", comment_id)
        return await self.list_comments(parent.post_id, viewer_id, parent_comment_id=comment_id)

    async def get_comment(self, comment_id: str, viewer_id: Optional[str] = None) -> CommentDTO:
        row = await self.comments.find_with_author(comment_id)
        if row is None:
            raise DomainError.not_found("Comment", comment_id)
        post = await self.posts.find_by_id(row[0].post_id)
        if not self._visible(post, viewer_id):
            raise DomainError.not_found("Comment", comment_id)
        return (await self._enrich([row], viewer_id))[0]

    async def delete_comment(self, comment_id: str, requester_id: str) -> None:
        comment = await self.comments.find_by_id(comment_id)
        if comment is None:
            raise DomainError.not_found("Comment", comment_id)
        post_id = comment.post_id
        post = await self.posts.find_by_id(post_id)
        if not self._visible(post, requester_id):
            raise DomainError.not_found("Comment", comment_id)
        if comment.user_id != requester_id:
            raise DomainError.forbidden("You can only delete your own comments")

        await self.comments.delete(comment_id)
        await self.db.commit()
        logger.info("Deleted comment %s", comment_id)

        await invalidate_post_views(self.cache, post_id, comment_id=comment_id)

    async def get_comment_tree(
        self,
        post_id: str,
        viewer_id: Optional[str] = None,
        max_depth: Optional[int] = None,
    ) -> CommentTree:
        """
        Get the nested comment structure of a post.

        Top-level comments sit at depth 1. Replies deeper than ``max_depth``
        are left out, but every node's ``reply_count`` still counts all of
        its direct replies. A comment reachable twice through malformed
        parent links is only rendered once.

        Args:
            post_id: ID of the post
            viewer_id: Requesting user, for ``has_user_liked``
            max_depth: Deepest level to include, defaults to configuration

        Returns:
            CommentTree with top-level comments newest first
        """
        if max_depth is None:
            max_depth = COMMENT_TREE_MAX_DEPTH
        if max_depth < 1:
            raise DomainError.validation("max_depth must be at least 1")

        await self._require_visible_post(post_id, viewer_id)
        rows = await self.comments.list_all_for_post(post_id)
        if not rows:
            return CommentTree(post_id=post_id, max_depth=max_depth, comments=[])

        children: Dict[Optional[str], List[Tuple[Comment, User]]] = {}
        for comment, author in rows:
            children.setdefault(comment.parent_comment_id, []).append((comment, author))

        dtos = {dto.id: dto for dto in await self._enrich(rows, viewer_id, children=children)}
        seen: Set[str] = set()

        def build_tree_node(comment: Comment, depth: int) -> CommentNode:
            seen.add(comment.id)
            replies = []
            if depth < max_depth:
                for child, _ in children.get(comment.id, []):
                    if child.id not in seen:
                        replies.append(build_tree_node(child, depth + 1))
            return CommentNode(**dtos[comment.id].model_dump(), replies=replies)

        roots = [comment for comment, _ in children.get(None, [])]
        return CommentTree(
            post_id=post_id,
            max_depth=max_depth,
            comments=[build_tree_node(root, 1) for root in roots],
        )

    @staticmethod
    def _visible(post: Optional[Post], viewer_id: Optional[str]) -> bool:
        return post is not None and (post.is_public or post.user_id == viewer_id)

    async def _require_visible_post(self, post_id: str, viewer_id: Optional[str]) -> Post:
        post = await self.posts.find_by_id(post_id)
        if not self._visible(post, viewer_id):
            raise DomainError.not_found("Post", post_id)
        return post

    async def like_count(self, comment_id: str) -> int:
        return await self.cache.get_or_compute(
            CacheKeys.comment_like_count(comment_id),
            lambda: self.likes.count(comment_id),
            COUNT_CACHE_TTL_SECONDS,
        )

    async def _enrich(
        self,
        rows: List[Tuple[Comment, User]],
        viewer_id: Optional[str],
        children: Optional[Dict[Optional[str], list]] = None,
    ) -> List[CommentDTO]:
        ids = [comment.id for comment, _ in rows]
        if children is not None:
            reply_counts = {cid: len(children.get(cid, [])) for cid in ids}
        else:
            reply_counts = await self.comments.reply_counts(ids)
        liked = await self.likes.liked_ids(viewer_id, ids) if viewer_id else set()

        result = []
        for comment, author in rows:
            result.append(
                self._to_dto(
                    comment,
                    author,
                    like_count=await self.like_count(comment.id),
                    reply_count=reply_counts.get(comment.id, 0),
                    has_user_liked=comment.id in liked,
                )
            )
        return result

    @staticmethod
    def _to_dto(comment: Comment, author: User, like_count: int, reply_count: int,
                has_user_liked: bool) -> CommentDTO:
        return CommentDTO(
            id=comment.id,
            post_id=comment.post_id,
            content=comment.content,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            parent_comment_id=comment.parent_comment_id,
            author=to_author(author),
            like_count=like_count,
            reply_count=reply_count,
            has_user_liked=has_user_liked,
        )
