# apps/api/feed_store.py
"""
Feed store abstraction.

Supplies candidate rows for the three feed sources and records the per-user
facts (views, bookmarks, votes) those sources filter on. SqlFeedStore runs
against the request's SQLAlchemy session; tests use an in-memory store with
the same contract.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional, Protocol, Sequence, Tuple
from uuid import UUID

from fastapi import Depends
from sqlalchemy import and_, exists, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from db import get_db
from errors import StoreUnavailable
from models import Bookmark, Comment, Video, VideoView, Vote
from video_rows import ContentTargetType

log = logging.getLogger("feed_store")

VIDEO_TARGET = ContentTargetType.VIDEO.value


class FeedStore(Protocol):
    """Read/write capability the feed needs. Every row carries the video_rows.VIDEO_COLUMNS."""

    def collaborative_candidates(self, user_id: UUID, limit: int) -> Sequence[Any]:
        """
        Unviewed videos upvoted by users who share at least one upvoted video with user_id.
        Most recent neighbor upvote first, then video id.
        """
        ...

    def popular_candidates(self, user_id: UUID, since: datetime, limit: int) -> Sequence[Any]:
        """Unviewed videos created after `since`, by net vote score descending."""
        ...

    def interactive_candidates(self, user_id: UUID, since: datetime, limit: int) -> Sequence[Any]:
        """Unviewed videos created after `since`, by votes + 2 * comments descending."""
        ...

    def reset_views(self, user_id: UUID) -> int:
        """Delete every view record of user_id. Returns the number removed."""
        ...

    def video_exists(self, video_id: UUID) -> bool:
        ...

    def record_view(self, user_id: UUID, video_id: UUID) -> None:
        """Insert-or-ignore one view record."""
        ...

    def toggle_bookmark(self, user_id: UUID, video_id: UUID) -> bool:
        """Add the bookmark if absent, remove it if present. Returns the new state."""
        ...

    def bookmarked_videos(self, user_id: UUID, limit: int, offset: int) -> Sequence[Any]:
        """Bookmarked videos, newest bookmark first."""
        ...

    def target_videos(
        self, target_type: ContentTargetType, target_id: UUID, limit: int, offset: int
    ) -> Sequence[Any]:
        """Videos attached to one target, newest first."""
        ...

    def set_vote(
        self, user_id: UUID, target_type: ContentTargetType, target_id: UUID, value: int
    ) -> None:
        """Upsert a +1/-1 vote; value 0 removes it."""
        ...

    def vote_state(
        self, user_id: UUID, target_type: ContentTargetType, target_id: UUID
    ) -> Tuple[int, Optional[int]]:
        """(live score of the target, user's own vote or None)."""
        ...


class SqlFeedStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            log.warning("feed_store_failed op=%s", op, exc_info=exc)
            try:
                self.db.rollback()
            except SQLAlchemyError:
                log.debug("feed_store_rollback_failed op=%s", op)
            raise StoreUnavailable(f"{op} failed") from exc

    def _vote_totals(self):
        return (
            self.db.query(
                Vote.target_id.label("video_id"),
                func.sum(Vote.value).label("vote_score"),
                func.count(Vote.id).label("vote_count"),
            )
            .filter(Vote.target_type == VIDEO_TARGET)
            .group_by(Vote.target_id)
            .subquery("vote_totals")
        )

    def _comment_totals(self):
        return (
            self.db.query(
                Comment.target_id.label("video_id"),
                func.count(Comment.id).label("comment_count"),
            )
            .filter(Comment.target_type == VIDEO_TARGET)
            .group_by(Comment.target_id)
            .subquery("comment_totals")
        )

    def _video_query(self, totals, *extra):
        vote_score = func.coalesce(totals.c.vote_score, 0)
        return self.db.query(
            Video.id,
            Video.owner_user_id,
            Video.target_type,
            Video.target_id,
            Video.storage_bucket,
            Video.storage_key,
            Video.content_type,
            Video.duration_seconds,
            Video.created_at,
            vote_score.label("vote_score"),
            *extra,
        ).outerjoin(totals, totals.c.video_id == Video.id)

    @staticmethod
    def _not_viewed_by(user_id: UUID):
        return ~exists().where(
            VideoView.user_id == user_id,
            VideoView.video_id == Video.id,
        )

    def collaborative_candidates(self, user_id: UUID, limit: int) -> List[Any]:
        mine = aliased(Vote)
        theirs = aliased(Vote)
        neighbors = (
            self.db.query(theirs.user_id)
            .join(
                mine,
                and_(
                    mine.target_type == VIDEO_TARGET,
                    mine.value == 1,
                    mine.user_id == user_id,
                    mine.target_id == theirs.target_id,
                ),
            )
            .filter(
                theirs.target_type == VIDEO_TARGET,
                theirs.value == 1,
                theirs.user_id != user_id,
            )
            .distinct()
        )
        neighbor_upvotes = (
            self.db.query(
                Vote.target_id.label("video_id"),
                func.max(Vote.updated_at).label("last_upvoted_at"),
            )
            .filter(
                Vote.target_type == VIDEO_TARGET,
                Vote.value == 1,
                Vote.user_id.in_(neighbors.statement),
            )
            .group_by(Vote.target_id)
            .subquery("neighbor_upvotes")
        )
        totals = self._vote_totals()
        with self._guard("collaborative_candidates"):
            return (
                self._video_query(totals)
                .join(neighbor_upvotes, neighbor_upvotes.c.video_id == Video.id)
                .filter(self._not_viewed_by(user_id))
                .order_by(neighbor_upvotes.c.last_upvoted_at.desc(), Video.id)
                .limit(limit)
                .all()
            )

    def popular_candidates(self, user_id: UUID, since: datetime, limit: int) -> List[Any]:
        totals = self._vote_totals()
        vote_score = func.coalesce(totals.c.vote_score, 0)
        with self._guard("popular_candidates"):
            return (
                self._video_query(totals)
                .filter(Video.created_at > since, self._not_viewed_by(user_id))
                .order_by(vote_score.desc(), Video.created_at.desc(), Video.id)
                .limit(limit)
                .all()
            )

    def interactive_candidates(self, user_id: UUID, since: datetime, limit: int) -> List[Any]:
        totals = self._vote_totals()
        comments = self._comment_totals()
        interaction = (
            func.coalesce(totals.c.vote_count, 0)
            + func.coalesce(comments.c.comment_count, 0) * 2
        )
        with self._guard("interactive_candidates"):
            return (
                self._video_query(totals, interaction.label("interaction_score"))
                .outerjoin(comments, comments.c.video_id == Video.id)
                .filter(Video.created_at > since, self._not_viewed_by(user_id))
                .order_by(interaction.desc(), Video.created_at.desc(), Video.id)
                .limit(limit)
                .all()
            )

    def reset_views(self, user_id: UUID) -> int:
        with self._guard("reset_views"):
            removed = (
                self.db.query(VideoView)
                .filter(VideoView.user_id == user_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        return int(removed or 0)

    def video_exists(self, video_id: UUID) -> bool:
        with self._guard("video_exists"):
            return self.db.get(Video, video_id) is not None

    def record_view(self, user_id: UUID, video_id: UUID) -> None:
        # Atomic insert-or-ignore; repeated views are no-ops
        stmt = (
            pg_insert(VideoView)
            .values(user_id=user_id, video_id=video_id)
            .on_conflict_do_nothing(index_elements=["user_id", "video_id"])
        )
        with self._guard("record_view"):
            self.db.execute(stmt)
            self.db.commit()

    def toggle_bookmark(self, user_id: UUID, video_id: UUID) -> bool:
        with self._guard("toggle_bookmark"):
            removed = (
                self.db.query(Bookmark)
                .filter(Bookmark.user_id == user_id, Bookmark.video_id == video_id)
                .delete(synchronize_session=False)
            )
            if removed:
                self.db.commit()
                return False
            stmt = (
                pg_insert(Bookmark)
                .values(user_id=user_id, video_id=video_id)
                .on_conflict_do_nothing(index_elements=["user_id", "video_id"])
            )
            self.db.execute(stmt)
            self.db.commit()
            return True

    def bookmarked_videos(self, user_id: UUID, limit: int, offset: int) -> List[Any]:
        totals = self._vote_totals()
        with self._guard("bookmarked_videos"):
            return (
                self._video_query(totals)
                .join(Bookmark, Bookmark.video_id == Video.id)
                .filter(Bookmark.user_id == user_id)
                .order_by(Bookmark.created_at.desc(), Video.id)
                .offset(offset)
                .limit(limit)
                .all()
            )

    def target_videos(
        self, target_type: ContentTargetType, target_id: UUID, limit: int, offset: int
    ) -> List[Any]:
        totals = self._vote_totals()
        with self._guard("target_videos"):
            return (
                self._video_query(totals)
                .filter(Video.target_type == target_type.value, Video.target_id == target_id)
                .order_by(Video.created_at.desc(), Video.id)
                .offset(offset)
                .limit(limit)
                .all()
            )

    def set_vote(
        self, user_id: UUID, target_type: ContentTargetType, target_id: UUID, value: int
    ) -> None:
        with self._guard("set_vote"):
            if value == 0:
                self.db.query(Vote).filter(
                    Vote.user_id == user_id,
                    Vote.target_type == target_type.value,
                    Vote.target_id == target_id,
                ).delete(synchronize_session=False)
            else:
                stmt = (
                    pg_insert(Vote)
                    .values(
                        user_id=user_id,
                        target_type=target_type.value,
                        target_id=target_id,
                        value=value,
                    )
                    .on_conflict_do_update(
                        index_elements=["user_id", "target_type", "target_id"],
                        set_={"value": value, "updated_at": func.now()},
                    )
                )
                self.db.execute(stmt)
            self.db.commit()

    def vote_state(
        self, user_id: UUID, target_type: ContentTargetType, target_id: UUID
    ) -> Tuple[int, Optional[int]]:
        with self._guard("vote_state"):
            score = (
                self.db.query(func.coalesce(func.sum(Vote.value), 0))
                .filter(Vote.target_type == target_type.value, Vote.target_id == target_id)
                .scalar()
            )
            mine = (
                self.db.query(Vote.value)
                .filter(
                    Vote.user_id == user_id,
                    Vote.target_type == target_type.value,
                    Vote.target_id == target_id,
                )
                .scalar()
            )
        return int(score or 0), (int(mine) if mine is not None else None)


def get_feed_store(db: Session = Depends(get_db)) -> FeedStore:
    return SqlFeedStore(db)
