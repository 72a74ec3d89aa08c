from app.repositories.comments import CommentRepository
from app.repositories.likes import CommentLikeRepository, PostLikeRepository
from app.repositories.posts import PostRepository
from app.repositories.users import UserRepository

__all__ = [
    "CommentLikeRepository",
    "CommentRepository",
    "PostLikeRepository",
    "PostRepository",
    "UserRepository",
]
