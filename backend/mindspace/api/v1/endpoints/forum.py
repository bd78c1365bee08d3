"""
Forum API Endpoints.

Peer-support posts, comments and likes.
"""

from datetime import datetime

from fastapi import APIRouter, Body, Depends, Query, status
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from mindspace.core.database import get_db
from mindspace.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    failure_message,
)
from mindspace.models.forum import ANONYMOUS_AUTHOR, Category, is_valid_object_id
from mindspace.modules.forum.service import ForumService

router = APIRouter()


# ==================== Schemas ====================


class CamelModel(BaseModel):
    """Schema exchanged with clients using camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CreatePostRequest(CamelModel):
    """Create new post. Field constraints are enforced by the model layer."""

    title: str | None = None
    content: str | None = None
    author: str | None = None
    category: str | None = None
    is_anonymous: bool = False
    tags: list[str] | None = None


class CreateCommentRequest(CamelModel):
    """Create new comment on a post."""

    content: str | None = None
    author: str | None = None
    post_id: str | None = None
    is_anonymous: bool = False


class UserRequest(CamelModel):
    """Caller identity for likes."""

    user_id: str


class DeletePostRequest(CamelModel):
    """Optional caller identity; anonymous posts need none."""

    user_id: str | None = None


class CommentResponse(CamelModel):
    id: str = Field(alias="_id")
    post_id: str
    content: str
    author: str
    avatar: str
    likes: int
    liked_by: list[str]
    timestamp: datetime
    is_anonymous: bool
    is_moderated: bool
    created_at: datetime
    updated_at: datetime
    is_liked: bool = False


class PostResponse(CamelModel):
    id: str = Field(alias="_id")
    title: str
    content: str
    author: str
    avatar: str
    category: Category
    likes: int
    liked_by: list[str]
    comments: list[CommentResponse]
    timestamp: datetime
    is_anonymous: bool
    tags: list[str]
    is_moderated: bool
    created_at: datetime
    updated_at: datetime
    is_liked: bool = False


class LikeResponse(CamelModel):
    likes: int
    is_liked: bool


class MessageResponse(BaseModel):
    message: str


def _require_object_id(value: str | None, kind: str) -> str:
    """Reject malformed identifiers before any database call."""
    if not is_valid_object_id(value):
        raise BadRequestError(f"Invalid {kind} ID")
    return value.lower()


# ==================== Posts ====================


@router.get("/posts", response_model=list[PostResponse])
async def list_posts(
    category: str | None = Query(None, description='Category name, or "all"'),
    search: str | None = Query(None, description="Keyword in title, content or tags"),
    db: AsyncSession = Depends(get_db),
) -> list[PostResponse]:
    """Get posts, newest first, with their comments."""
    forum = ForumService(db)

    with failure_message("Failed to fetch posts"):
        posts = await forum.list_posts(category=category, search=search)
        return [PostResponse.model_validate(post) for post in posts]


@router.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    request: CreatePostRequest,
    db: AsyncSession = Depends(get_db),
) -> PostResponse:
    """Create new post."""
    forum = ForumService(db)

    with failure_message("Failed to create post"):
        post = await forum.create_post(
            title=request.title,
            content=request.content,
            author=request.author,
            category=request.category,
            is_anonymous=request.is_anonymous,
            tags=request.tags,
        )
        logger.info(f"Created post {post.id} in '{post.category.value}'")
        return PostResponse.model_validate(post)


@router.delete("/posts/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    request: DeletePostRequest | None = Body(None),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Delete a post and its comments.

    Only the author may delete a named post; anonymous posts can be
    deleted by anyone.
    """
    post_id = _require_object_id(post_id, "post")
    user_id = request.user_id if request else None
    forum = ForumService(db)

    with failure_message("Failed to delete post"):
        post = await forum.get_post(post_id)
        if not post:
            raise NotFoundError("Post not found")

        if post.author != user_id and post.author != ANONYMOUS_AUTHOR:
            raise ForbiddenError("You can only delete your own posts")

        await forum.delete_post(post)
        logger.info(f"Deleted post {post_id}")

    return MessageResponse(message="Post deleted successfully")


@router.post("/posts/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: str,
    request: UserRequest,
    db: AsyncSession = Depends(get_db),
) -> LikeResponse:
    """Like a post, or remove the like if the user already liked it."""
    post_id = _require_object_id(post_id, "post")
    forum = ForumService(db)

    with failure_message("Failed to update like"):
        post = await forum.get_post(post_id, for_update=True)
        if not post:
            raise NotFoundError("Post not found")

        is_liked = await forum.toggle_post_like(post, request.user_id)
        return LikeResponse(likes=post.likes, is_liked=is_liked)


@router.delete("/posts/{post_id}/like", response_model=LikeResponse)
async def unlike_post(
    post_id: str,
    request: UserRequest,
    db: AsyncSession = Depends(get_db),
) -> LikeResponse:
    """Remove like from post."""
    post_id = _require_object_id(post_id, "post")
    forum = ForumService(db)

    with failure_message("Failed to unlike post"):
        post = await forum.get_post(post_id, for_update=True)
        if not post:
            raise NotFoundError("Post not found")

        await forum.unlike_post(post, request.user_id)
        return LikeResponse(likes=post.likes, is_liked=False)


# ==================== Comments ====================


@router.get("/posts/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    post_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[CommentResponse]:
    """Get a post's comments, oldest first."""
    post_id = _require_object_id(post_id, "post")
    forum = ForumService(db)

    with failure_message("Failed to fetch comments"):
        comments = await forum.list_comments(post_id)
        return [CommentResponse.model_validate(comment) for comment in comments]


@router.post(
    "/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    request: CreateCommentRequest,
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    """Create new comment on an existing post."""
    post_id = _require_object_id(request.post_id, "post")
    forum = ForumService(db)

    with failure_message("Failed to create comment"):
        post = await forum.get_post(post_id)
        if not post:
            raise NotFoundError("Post not found")

        comment = await forum.create_comment(
            post=post,
            content=request.content,
            author=request.author,
            is_anonymous=request.is_anonymous,
        )
        logger.info(f"Created comment {comment.id} on post {post_id}")
        return CommentResponse.model_validate(comment)


@router.post("/comments/{comment_id}/like", response_model=LikeResponse)
async def like_comment(
    comment_id: str,
    request: UserRequest,
    db: AsyncSession = Depends(get_db),
) -> LikeResponse:
    """Like a comment, or remove the like if the user already liked it."""
    comment_id = _require_object_id(comment_id, "comment")
    forum = ForumService(db)

    with failure_message("Failed to update like"):
        comment = await forum.get_comment(comment_id, for_update=True)
        if not comment:
            raise NotFoundError("Comment not found")

        is_liked = await forum.toggle_comment_like(comment, request.user_id)
        return LikeResponse(likes=comment.likes, is_liked=is_liked)


@router.delete("/comments/{comment_id}/like", response_model=LikeResponse)
async def unlike_comment(
    comment_id: str,
    request: UserRequest,
    db: AsyncSession = Depends(get_db),
) -> LikeResponse:
    """Remove like from comment."""
    comment_id = _require_object_id(comment_id, "comment")
    forum = ForumService(db)

    with failure_message("Failed to unlike comment"):
        comment = await forum.get_comment(comment_id, for_update=True)
        if not comment:
            raise NotFoundError("Comment not found")

        await forum.unlike_comment(comment, request.user_id)
        return LikeResponse(likes=comment.likes, is_liked=False)


# ==================== Categories ====================


@router.get("/categories", response_model=list[str])
async def get_categories() -> list[str]:
    """Get all forum categories."""
    return ForumService.get_categories()
