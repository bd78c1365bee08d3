"""
Forum models for peer-support discussions.

Includes:
- Categories (closed enumeration)
- Posts
- Post tags
- Comments
"""

import itertools
import os
import re
import time
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from mindspace.core.database import Base

ANONYMOUS_AUTHOR = "Anonymous"
ANONYMOUS_AVATAR = "AN"

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

_object_id_counter = itertools.count(int.from_bytes(os.urandom(3), "big"))
_object_id_process = os.urandom(5)


class ForumValidationError(ValueError):
    """Field value rejected when assigned on a forum record."""


class Category(str, Enum):
    """Forum post categories."""

    ACADEMIC_STRESS = "Academic Stress"
    ANXIETY = "Anxiety"
    DEPRESSION = "Depression"
    SLEEP_ISSUES = "Sleep Issues"
    SOCIAL_LIFE = "Social Life"
    RELATIONSHIP = "Relationship"
    SELF_CARE = "Self Care"
    STUDY_TIPS = "Study Tips"
    GENERAL_SUPPORT = "General Support"


def generate_object_id() -> str:
    """
    Generate a 24-character hex identifier.

    Layout: 4-byte creation time, 5 bytes fixed per process, 3-byte counter.
    """
    seconds = int(time.time()) & 0xFFFFFFFF
    counter = next(_object_id_counter) & 0xFFFFFF
    raw = seconds.to_bytes(4, "big") + _object_id_process + counter.to_bytes(3, "big")
    return raw.hex()


def is_valid_object_id(value: str | None) -> bool:
    """Check identifier syntax without touching the database."""
    return bool(value) and OBJECT_ID_PATTERN.match(value) is not None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _bounded_text(field: str, value: str | None, min_length: int, max_length: int) -> str:
    if value is None:
        raise ForumValidationError(f"{field} is required")
    value = value.strip()
    if len(value) < min_length:
        raise ForumValidationError(
            f"{field} must be at least {min_length} characters (got {len(value)})"
        )
    if len(value) > max_length:
        raise ForumValidationError(
            f"{field} must be at most {max_length} characters (got {len(value)})"
        )
    return value


def _required_text(field: str, value: str | None) -> str:
    if value is None or not value.strip():
        raise ForumValidationError(f"{field} is required")
    return value.strip()


class LikeableMixin:
    """Shared columns for records that carry authorship and likes."""

    author: Mapped[str] = mapped_column(String(100))
    avatar: Mapped[str] = mapped_column(String(10))
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    is_moderated: Mapped[bool] = mapped_column(Boolean, default=False)

    likes: Mapped[int] = mapped_column(Integer, default=0)
    # Ordered list of user identifiers; membership drives the like count
    liked_by: Mapped[list[str]] = mapped_column(JSON, default=list)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    @validates("author")
    def validate_author(self, key: str, value: str | None) -> str:
        return _required_text("author", value)

    @validates("avatar")
    def validate_avatar(self, key: str, value: str | None) -> str:
        return _required_text("avatar", value)

    @validates("likes")
    def validate_likes(self, key: str, value: int) -> int:
        if value < 0:
            raise ForumValidationError("likes cannot be negative")
        return value


class Post(LikeableMixin, Base):
    """Top-level forum submission."""

    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=generate_object_id)
    title: Mapped[str] = mapped_column(String(200))
    content: Mapped[str] = mapped_column(Text)
    category: Mapped[Category] = mapped_column(
        SQLEnum(
            Category,
            name="post_category",
            native_enum=False,
            length=32,
            validate_strings=True,
            values_callable=lambda enum: [member.value for member in enum],
        )
    )

    # Relationships
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="post",
        order_by="Comment.timestamp",
        lazy="selectin",
        passive_deletes=True,
    )
    tag_rows: Mapped[list["PostTag"]] = relationship(
        back_populates="post",
        order_by="PostTag.position",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index(
            "ix_posts_fulltext",
            text("to_tsvector('english', title || ' ' || content)"),
            postgresql_using="gin",
        ).ddl_if(dialect="postgresql"),
    )

    @property
    def tags(self) -> list[str]:
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, values: list[str]) -> None:
        self.tag_rows = [
            PostTag(name=value, position=position) for position, value in enumerate(values)
        ]

    @validates("title")
    def validate_title(self, key: str, value: str | None) -> str:
        return _bounded_text("title", value, 10, 200)

    @validates("content")
    def validate_content(self, key: str, value: str | None) -> str:
        return _bounded_text("content", value, 20, 2000)

    @validates("category")
    def validate_category(self, key: str, value: Category | str | None) -> Category:
        if value is None:
            raise ForumValidationError("category is required")
        try:
            return Category(value)
        except ValueError:
            raise ForumValidationError(f"'{value}' is not a valid category") from None

    def __repr__(self) -> str:
        return f"<Post {self.id} {self.title[:30]}>"


class PostTag(Base):
    """Free-form tag attached to a post, kept in submission order."""

    __tablename__ = "post_tags"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(100), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    post: Mapped["Post"] = relationship(back_populates="tag_rows")

    @validates("name")
    def validate_name(self, key: str, value: str) -> str:
        return value.strip()


class Comment(LikeableMixin, Base):
    """Reply attached to exactly one post."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=generate_object_id)
    post_id: Mapped[str] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"))
    content: Mapped[str] = mapped_column(Text)

    post: Mapped["Post"] = relationship(back_populates="comments")

    @validates("content")
    def validate_content(self, key: str, value: str | None) -> str:
        return _bounded_text("content", value, 5, 500)

    def __repr__(self) -> str:
        return f"<Comment {self.id} on post {self.post_id}>"


# Category-filtered listing, newest first
Index("ix_posts_category_timestamp", Post.category, Post.timestamp.desc())

# A post's comments in chronological order
Index("ix_comments_post_timestamp", Comment.post_id, Comment.timestamp)
