# app/services/invalidation.py
"""Write-path cache invalidation shared by the post, like and comment services."""

import logging
from typing import Optional

from app.cache import CacheBackend, CacheKeys

logger = logging.getLogger(__name__)


async def invalidate_post_views(
    cache: CacheBackend, post_id: str, comment_id: Optional[str] = None
) -> None:
    """
    Drop every cached view a write to ``post_id`` could have changed.

    That is the post entry and its counts (everything under ``post:{id}``),
    the like count of ``comment_id`` when a comment was touched, and all feed
    pages. Safe to call repeatedly; failures are absorbed by the cache.

    Args:
        cache: Cache backend held by the calling service
        post_id: Post whose views are stale
        comment_id: Comment whose like count is stale, if any
    """
    removed = await cache.delete_pattern(CacheKeys.post_data_pattern(post_id))
    if comment_id is not None:
        await cache.delete(CacheKeys.comment_like_count(comment_id))
    removed += await cache.delete_pattern(CacheKeys.FEEDS_PATTERN)
    logger.debug("Invalidated %d cache keys for post %s", removed, post_id)
