# apps/api/models.py
import uuid
from sqlalchemy import Column, String, DateTime, Integer, SmallInteger, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy import MetaData

from sqlalchemy import CheckConstraint, ForeignKey, Index, UniqueConstraint

# Naming convention helps Alembic autogenerate predictable constraint names
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)
Base = declarative_base(metadata=metadata)

# proposal | program | video | comment
TARGET_TYPE_CHECK = "target_type IN ('proposal', 'program', 'video', 'comment')"


class User(Base):
    __tablename__ = "users"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    email = Column(String(320), unique=True, nullable=True)  # owned by the auth service
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Video(Base):
    __tablename__ = "videos"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    owner_user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # What the video is attached to
    target_type = Column(String, nullable=False)
    target_id = Column(UUID(as_uuid=True), nullable=False)

    storage_bucket = Column(String, nullable=False)
    storage_key = Column(String, nullable=False)  # e.g., videos/{owner}/{video_id}.mp4
    content_type = Column(String, nullable=False)
    duration_seconds = Column(Integer, nullable=True)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(TARGET_TYPE_CHECK, name="target_type"),
        Index("ix_videos_target", "target_type", "target_id"),
        Index("ix_videos_owner_user_id", "owner_user_id"),
        Index("ix_videos_created_at", "created_at"),
    )


class Vote(Base):
    __tablename__ = "votes"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_type = Column(String, nullable=False)
    target_id = Column(UUID(as_uuid=True), nullable=False)
    value = Column(SmallInteger, nullable=False)  # +1 | -1; a cleared vote is a deleted row

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "target_type", "target_id"),
        CheckConstraint("value IN (-1, 1)", name="value"),
        CheckConstraint(TARGET_TYPE_CHECK, name="target_type"),
        Index("ix_votes_target", "target_type", "target_id"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    author_user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_type = Column(String, nullable=False)
    target_id = Column(UUID(as_uuid=True), nullable=False)
    parent_comment_id = Column(
        UUID(as_uuid=True), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    body_markdown = Column(Text, nullable=False)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_comments_target", "target_type", "target_id", "created_at"),
    )


class VideoView(Base):
    __tablename__ = "video_views"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    video_id = Column(
        UUID(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "video_id"),
        Index("ix_video_views_user_created", "user_id", "created_at"),
        Index("ix_video_views_video_id", "video_id"),
    )


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    video_id = Column(
        UUID(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "video_id"),
        Index("ix_bookmarks_user_created", "user_id", "created_at"),
        Index("ix_bookmarks_video_id", "video_id"),
    )
