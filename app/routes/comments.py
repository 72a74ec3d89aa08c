# app/routes/comments.py
"""FastAPI routes for single comments, replies and comment likes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel, Field

from app.deps import get_comment_like_service, get_comment_service, get_optional_viewer, require_viewer
from app.schemas import CommentDTO, LikeResult
from app.services.comments import CommentService
from app.services.likes import CommentLikeService

router = APIRouter(prefix="/comments", tags=["comments"])


class ReplyCreate(BaseModel):
    content: str = Field(..., max_length=1000)


@router.get("/{comment_id}", response_model=CommentDTO)
async def get_comment(
    comment_id: str = Path(..., description="ID of the comment"),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: CommentService = Depends(get_comment_service),
) -> CommentDTO:
    return await service.get_comment(comment_id, viewer_id)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str = Path(..., description="ID of the comment"),
    viewer_id: str = Depends(require_viewer),
    service: CommentService = Depends(get_comment_service),
) -> Response:
    """Delete a comment you wrote, together with its replies."""
    await service.delete_comment(comment_id, viewer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{comment_id}/replies", response_model=List[CommentDTO])
async def list_replies(
    comment_id: str = Path(..., description="ID of the parent comment"),
    viewer_id: Optional[str] = Depends(get_optional_viewer),
    service: CommentService = Depends(get_comment_service),
) -> List[CommentDTO]:
    return await service.list_replies(comment_id, viewer_id)


@router.post("/{comment_id}/replies", response_model=CommentDTO, status_code=status.HTTP_201_CREATED)
async def create_reply(
    payload: ReplyCreate,
    comment_id: str = Path(..., description="ID of the parent comment"),
    viewer_id: str = Depends(require_viewer),
    service: CommentService = Depends(get_comment_service),
) -> CommentDTO:
    return await service.create_reply(comment_id, viewer_id, payload.content)


@router.post("/{comment_id}/likes", response_model=LikeResult, status_code=status.HTTP_201_CREATED)
async def like_comment(
    response: Response,
    comment_id: str = Path(..., description="ID of the comment to like"),
    viewer_id: str = Depends(require_viewer),
    service: CommentLikeService = Depends(get_comment_like_service),
) -> LikeResult:
    result = await service.like_comment(comment_id, viewer_id)
    if result.message:
        response.status_code = status.HTTP_200_OK
    return result


@router.delete("/{comment_id}/likes", response_model=LikeResult)
async def unlike_comment(
    comment_id: str = Path(..., description="ID of the comment to unlike"),
    viewer_id: str = Depends(require_viewer),
    service: CommentLikeService = Depends(get_comment_like_service),
) -> LikeResult:
    return await service.unlike_comment(comment_id, viewer_id)
