"""
Forum Service - Post, comment and like management.
"""

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mindspace.models.forum import (
    ANONYMOUS_AUTHOR,
    ANONYMOUS_AVATAR,
    Category,
    Comment,
    Post,
    PostTag,
)


def derive_identity(author: str | None, is_anonymous: bool) -> tuple[str, str]:
    """
    Resolve the stored author name and avatar initials.

    Anonymous submissions discard the supplied name entirely.

    Returns:
        (author, avatar)
    """
    if is_anonymous:
        return ANONYMOUS_AUTHOR, ANONYMOUS_AVATAR
    author = (author or "").strip()
    return author, author[:2].upper()


def toggle_like(target: Post | Comment, user_id: str) -> bool:
    """
    Flip ``user_id``'s like on a post or comment.

    Returns:
        True if the user likes the target afterwards
    """
    liked_by = list(target.liked_by or [])
    if user_id in liked_by:
        target.liked_by = [uid for uid in liked_by if uid != user_id]
        target.likes = max(0, target.likes - 1)
        return False

    target.liked_by = [*liked_by, user_id]
    target.likes = target.likes + 1
    return True


def remove_like(target: Post | Comment, user_id: str) -> None:
    """Drop ``user_id`` from the likers; the count only moves if it was there."""
    # Unconditional decrement would let a non-liker push likes below
    # len(liked_by); likes must always equal the number of likers.
    liked_by = list(target.liked_by or [])
    remaining = [uid for uid in liked_by if uid != user_id]
    if len(remaining) != len(liked_by):
        target.liked_by = remaining
        target.likes = max(0, target.likes - 1)


class ForumService:
    """
    Service for managing forum posts, comments and likes.

    Every mutating method commits its own transaction.

    Usage:
        forum = ForumService(db_session)
        posts = await forum.list_posts(category="Anxiety", search="sleep")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize forum service with database session."""
        self.db = db

    # ==================== Categories ====================

    @staticmethod
    def get_categories() -> list[str]:
        """Get the fixed category list in display order."""
        return [category.value for category in Category]

    # ==================== Posts ====================

    async def list_posts(
        self,
        category: str | None = None,
        search: str | None = None,
    ) -> list[Post]:
        """
        Get posts, newest first, with their comments loaded.

        Args:
            category: Exact category name; None or "all" disables the filter
            search: Case-insensitive substring matched against title,
                content and tags

        Returns:
            List of posts
        """
        query = select(Post)

        if category and category != "all":
            try:
                query = query.where(Post.category == Category(category))
            except ValueError:
                # Unknown categories simply have no posts
                return []

        if search:
            query = query.where(
                or_(
                    Post.title.icontains(search, autoescape=True),
                    Post.content.icontains(search, autoescape=True),
                    Post.tag_rows.any(PostTag.name.icontains(search, autoescape=True)),
                )
            )

        query = query.order_by(Post.timestamp.desc(), Post.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_post(self, post_id: str, for_update: bool = False) -> Post | None:
        """Get post by ID, optionally locking the row for a read-modify-write."""
        query = select(Post).where(Post.id == post_id.lower())
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_post(
        self,
        title: str,
        content: str,
        author: str | None,
        category: str,
        is_anonymous: bool = False,
        tags: list[str] | None = None,
    ) -> Post:
        """
        Create new forum post.

        Args:
            title: Post title (10-200 characters)
            content: Post body (20-2000 characters)
            author: Display name; ignored for anonymous posts
            category: One of the Category values
            is_anonymous: Hide the author's name
            tags: Optional free-form tags

        Returns:
            Created post

        Raises:
            ForumValidationError: A field violates its constraints
        """
        stored_author, avatar = derive_identity(author, is_anonymous)

        post = Post(
            title=title,
            content=content,
            author=stored_author,
            avatar=avatar,
            category=category,
            is_anonymous=is_anonymous,
            is_moderated=False,
            likes=0,
            liked_by=[],
            comments=[],
            tags=tags or [],
        )

        self.db.add(post)
        await self.db.commit()
        return post

    async def delete_post(self, post: Post) -> None:
        """Delete a post together with all of its comments."""
        await self.db.execute(delete(Comment).where(Comment.post_id == post.id))
        await self.db.execute(delete(PostTag).where(PostTag.post_id == post.id))
        await self.db.execute(delete(Post).where(Post.id == post.id))
        await self.db.commit()

    async def toggle_post_like(self, post: Post, user_id: str) -> bool:
        """Toggle a like on a post; returns the new like state."""
        is_liked = toggle_like(post, user_id)
        await self.db.commit()
        return is_liked

    async def unlike_post(self, post: Post, user_id: str) -> None:
        """Remove a user's like from a post if present."""
        remove_like(post, user_id)
        await self.db.commit()

    # ==================== Comments ====================

    async def list_comments(self, post_id: str) -> list[Comment]:
        """Get a post's comments in chronological order."""
        query = (
            select(Comment)
            .where(Comment.post_id == post_id.lower())
            .order_by(Comment.timestamp, Comment.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_comment(self, comment_id: str, for_update: bool = False) -> Comment | None:
        """Get comment by ID."""
        query = select(Comment).where(Comment.id == comment_id.lower())
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_comment(
        self,
        post: Post,
        content: str,
        author: str | None,
        is_anonymous: bool = False,
    ) -> Comment:
        """
        Create a comment on an existing post.

        The comment row and the post's comment list change in one commit,
        so a failure never leaves an orphaned comment behind.

        Raises:
            ForumValidationError: A field violates its constraints
        """
        stored_author, avatar = derive_identity(author, is_anonymous)

        comment = Comment(
            content=content,
            author=stored_author,
            avatar=avatar,
            is_anonymous=is_anonymous,
            is_moderated=False,
            likes=0,
            liked_by=[],
        )
        post.comments.append(comment)

        await self.db.commit()
        return comment

    async def toggle_comment_like(self, comment: Comment, user_id: str) -> bool:
        """Toggle a like on a comment; returns the new like state."""
        is_liked = toggle_like(comment, user_id)
        await self.db.commit()
        return is_liked

    async def unlike_comment(self, comment: Comment, user_id: str) -> None:
        """Remove a user's like from a comment if present."""
        remove_like(comment, user_id)
        await self.db.commit()
