# app/routes/posts.py
"""FastAPI routes for the feed, posts, post likes and post comments."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from app.config import COMMENT_TREE_MAX_DEPTH, FEED_MAX_LIMIT
from app.deps import (
    get_comment_service,
    get_optional_viewer,
    get_post_like_service,
    get_post_service,
    require_viewer,
)
from app.schemas import CommentCreate, CommentDTO, CommentTree, LikeResult, Page, PostCreate, PostDTO
from app.services.comments import CommentService
from app.services.likes import PostLikeService
from app.services.posts import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("", response_model=Page[PostDTO])
async def list_posts(
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
    limit: Optional[int] = Query(None, ge=1, le=FEED_MAX_LIMIT),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: PostService = Depends(get_post_service),
) -> Page[PostDTO]:
    """
    Get one feed page, newest first.

    Anonymous viewers see public posts only; signed-in viewers also see
    their own private posts.
    """
    return await service.list_posts(viewer_id, cursor, limit)


@router.post("", response_model=PostDTO, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    viewer_id: str = Depends(require_viewer),
    service: PostService = Depends(get_post_service),
) -> PostDTO:
    return await service.create_post(viewer_id, payload)


@router.get("/{post_id}", response_model=PostDTO)
async def get_post(
    post_id: str = Path(..., description="ID of the post"),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: PostService = Depends(get_post_service),
) -> PostDTO:
    return await service.get_post_by_id(post_id, viewer_id)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str = Path(..., description="ID of the post"),
    viewer_id: str = Depends(require_viewer),
    service: PostService = Depends(get_post_service),
) -> Response:
    await service.delete_post(post_id, viewer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/likes", response_model=LikeResult, status_code=status.HTTP_201_CREATED)
async def like_post(
    response: Response,
    post_id: str = Path(..., description="ID of the post to like"),
    viewer_id: str = Depends(require_viewer),
    service: PostLikeService = Depends(get_post_like_service),
) -> LikeResult:
    """Like a post. Repeating the call is harmless and answers 200 with a message."""
    result = await service.like_post(post_id, viewer_id)
    if result.message:
        response.status_code = status.HTTP_200_OK
    return result


@router.delete("/{post_id}/likes", response_model=LikeResult)
async def unlike_post(
    post_id: str = Path(..., description="ID of the post to unlike"),
    viewer_id: str = Depends(require_viewer),
    service: PostLikeService = Depends(get_post_like_service),
) -> LikeResult:
    return await service.unlike_post(post_id, viewer_id)


@router.get("/{post_id}/comments", response_model=List[CommentDTO])
async def list_comments(
    post_id: str = Path(..., description="ID of the post"),
    parent_comment_id: Optional[str] = Query(None, description="List replies to this comment"),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: CommentService = Depends(get_comment_service),
) -> List[CommentDTO]:
    return await service.list_comments(post_id, viewer_id, parent_comment_id)


@router.post("/{post_id}/comments", response_model=CommentDTO, status_code=status.HTTP_201_CREATED)
async def create_comment(
    payload: CommentCreate,
    post_id: str = Path(..., description="ID of the post"),
    viewer_id: str = Depends(require_viewer),
    service: CommentService = Depends(get_comment_service),
) -> CommentDTO:
    return await service.create_comment(post_id, viewer_id, payload)


@router.get("/{post_id}/comments/tree", response_model=CommentTree)
async def get_comment_tree(
    post_id: str = Path(..., description="ID of the post to get the comment tree for"),
    max_depth: int = Query(COMMENT_TREE_MAX_DEPTH, ge=1, le=10),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: CommentService = Depends(get_comment_service),
) -> CommentTree:
    """
    Get the nested comment tree of a post.

    Replies below ``max_depth`` are omitted; ``reply_count`` still
    reports them so clients can load them through the replies endpoint.
    """
    return await service.get_comment_tree(post_id, viewer_id, max_depth)
