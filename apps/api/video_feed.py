# apps/api/video_feed.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple, TypeVar
from uuid import UUID

from feed_store import FeedStore
from video_rows import (
    ContentTargetType,
    FeedVideo,
    decode_video_rows,
    parse_identifier,
)

# Feed configuration
COLLABORATIVE_LIMIT = 20
POPULAR_LIMIT = 15
INTERACTIVE_LIMIT = 15
RECENT_WINDOW_DAYS = 7

SOURCE_COLLABORATIVE = 0
SOURCE_POPULAR = 1
SOURCE_INTERACTIVE = 2
SOURCE_NAMES = ("collaborative", "popular", "interactive")

# 4:3:3 per cycle of ten slots
SOURCE_PATTERN = (0, 0, 0, 0, 1, 1, 1, 2, 2, 2)

log = logging.getLogger("video_feed")

T = TypeVar("T")

KeyFn = Callable[[T], Hashable]


@dataclass(frozen=True)
class FeedConfig:
    pattern: Tuple[int, ...] = SOURCE_PATTERN
    collaborative_limit: int = COLLABORATIVE_LIMIT
    popular_limit: int = POPULAR_LIMIT
    interactive_limit: int = INTERACTIVE_LIMIT
    recent_window_days: int = RECENT_WINDOW_DAYS

    def __post_init__(self) -> None:
        if not self.pattern:
            raise ValueError("pattern must have at least one slot")
        for slot in self.pattern:
            if slot not in (SOURCE_COLLABORATIVE, SOURCE_POPULAR, SOURCE_INTERACTIVE):
                raise ValueError(f"unknown source index in pattern: {slot}")
        for name in ("collaborative_limit", "popular_limit", "interactive_limit"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.recent_window_days <= 0:
            raise ValueError("recent_window_days must be > 0")


DEFAULT_FEED_CONFIG = FeedConfig()


@dataclass
class FeedResult:
    videos: List[FeedVideo]
    total: int
    sources: Dict[UUID, str] = field(default_factory=dict)
    reset_performed: bool = False

    def source_counts(self) -> Dict[str, int]:
        counts = {name: 0 for name in SOURCE_NAMES}
        for name in self.sources.values():
            counts[name] = counts.get(name, 0) + 1
        return counts


def _video_key(video: FeedVideo) -> Hashable:
    return video.id


def _check_window(offset: int, limit: int) -> None:
    if offset < 0 or limit < 0:
        raise ValueError("offset and limit must be >= 0")


def paginate(items: Sequence[T], offset: int, limit: int) -> List[T]:
    _check_window(offset, limit)
    total = len(items)
    start = min(offset, total)
    end = min(offset + limit, total)
    return list(items[start:end])


def interleave_weighted(
    sources: Sequence[Sequence[T]],
    pattern: Sequence[int] = SOURCE_PATTERN,
    *,
    key: KeyFn = _video_key,
) -> List[Tuple[int, T]]:
    """
    Weighted round-robin over the source lists.

    Each pattern slot takes the next unconsumed item of its source. An exhausted
    source leaves its slot empty; nothing is borrowed from other sources. Items
    whose key was already emitted are dropped, so the first source to offer an
    item owns it. Returns (source index, item) pairs.
    """
    if not pattern:
        raise ValueError("pattern must have at least one slot")
    for slot in pattern:
        if slot < 0 or slot >= len(sources):
            raise ValueError(f"pattern slot {slot} has no source")

    cursors = [0] * len(sources)
    scheduled = sorted(set(pattern))
    seen: set = set()
    merged: List[Tuple[int, T]] = []

    def exhausted() -> bool:
        return all(cursors[idx] >= len(sources[idx]) for idx in scheduled)

    # Every full cycle consumes at least one item until the scheduled sources
    # run dry, so the total input length bounds the number of cycles.
    max_cycles = sum(len(items) for items in sources)
    for _ in range(max_cycles):
        for slot in pattern:
            items = sources[slot]
            idx = cursors[slot]
            if idx >= len(items):
                continue
            cursors[slot] = idx + 1
            item = items[idx]
            item_key = key(item)
            if item_key in seen:
                continue
            seen.add(item_key)
            merged.append((slot, item))
        if exhausted():
            break

    return merged


def merge_weighted(
    sources: Sequence[Sequence[T]],
    pattern: Sequence[int] = SOURCE_PATTERN,
    *,
    key: KeyFn = _video_key,
) -> List[T]:
    return [item for _, item in interleave_weighted(sources, pattern, key=key)]


def collaborative_source(
    store: FeedStore, user_id: UUID, config: FeedConfig = DEFAULT_FEED_CONFIG
) -> List[FeedVideo]:
    limit = config.collaborative_limit
    if limit <= 0:
        return []
    return decode_video_rows(store.collaborative_candidates(user_id, limit))[:limit]


def popular_source(
    store: FeedStore,
    user_id: UUID,
    config: FeedConfig = DEFAULT_FEED_CONFIG,
    now: Optional[datetime] = None,
) -> List[FeedVideo]:
    limit = config.popular_limit
    if limit <= 0:
        return []
    since = _window_start(config, now)
    return decode_video_rows(store.popular_candidates(user_id, since, limit))[:limit]


def interactive_source(
    store: FeedStore,
    user_id: UUID,
    config: FeedConfig = DEFAULT_FEED_CONFIG,
    now: Optional[datetime] = None,
) -> List[FeedVideo]:
    limit = config.interactive_limit
    if limit <= 0:
        return []
    since = _window_start(config, now)
    return decode_video_rows(store.interactive_candidates(user_id, since, limit))[:limit]


def _window_start(config: FeedConfig, now: Optional[datetime]) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=config.recent_window_days)


def _build_feed(
    store: FeedStore,
    user_id: UUID,
    config: FeedConfig,
    now: Optional[datetime],
) -> List[Tuple[int, FeedVideo]]:
    collaborative = collaborative_source(store, user_id, config)
    popular = popular_source(store, user_id, config, now)
    interactive = interactive_source(store, user_id, config, now)

    log.debug(
        "video_feed_sources collaborative=%d popular=%d interactive=%d",
        len(collaborative), len(popular), len(interactive),
    )
    return interleave_weighted([collaborative, popular, interactive], config.pattern)


def list_feed(
    store: FeedStore,
    user_id: Any,
    limit: int,
    offset: int,
    *,
    config: FeedConfig = DEFAULT_FEED_CONFIG,
    now: Optional[datetime] = None,
) -> FeedResult:
    """
    Personalized feed page for one user.

    Blends the collaborative, popular and interactive sources 4:3:3. If the
    user has seen everything the sources can offer, their whole view history
    is cleared and the sources run once more. An empty page after that means
    there is simply no content.
    """
    uid = parse_identifier(user_id, "user_id")
    _check_window(offset, limit)

    feed = _build_feed(store, uid, config, now)
    reset_performed = False
    if not feed:
        log.info("video_feed_exhausted_reset user_id=%s", uid)
        removed = store.reset_views(uid)
        reset_performed = True
        feed = _build_feed(store, uid, config, now)
        log.info(
            "video_feed_after_reset user_id=%s views_removed=%d total=%d",
            uid, removed, len(feed),
        )

    page = paginate(feed, offset, limit)
    result = FeedResult(
        videos=[video for _, video in page],
        total=len(feed),
        sources={video.id: SOURCE_NAMES[slot] for slot, video in page},
        reset_performed=reset_performed,
    )
    log.debug(
        "video_feed_page user_id=%s total=%d offset=%d returning=%d",
        uid, result.total, offset, len(result.videos),
    )
    return result


def list_single_content_feed(
    store: FeedStore,
    target_type: Any,
    target_id: Any,
    limit: int,
    offset: int,
) -> List[FeedVideo]:
    """Videos attached to one proposal/program/video/comment. No personalization."""
    kind = ContentTargetType.parse(target_type)
    tid = parse_identifier(target_id, "target_id")
    _check_window(offset, limit)
    if limit == 0:
        return []
    videos = decode_video_rows(store.target_videos(kind, tid, limit, offset))
    log.debug(
        "video_feed_single_content target_type=%s target_id=%s count=%d",
        kind.value, tid, len(videos),
    )
    return videos


def mark_viewed(store: FeedStore, user_id: Any, video_id: Any) -> None:
    uid = parse_identifier(user_id, "user_id")
    vid = parse_identifier(video_id, "video_id")
    store.record_view(uid, vid)
    log.info("video_feed_mark_viewed user_id=%s video_id=%s", uid, vid)


def toggle_bookmark(store: FeedStore, user_id: Any, video_id: Any) -> bool:
    uid = parse_identifier(user_id, "user_id")
    vid = parse_identifier(video_id, "video_id")
    bookmarked = store.toggle_bookmark(uid, vid)
    log.info(
        "video_feed_bookmark user_id=%s video_id=%s bookmarked=%s",
        uid, vid, bookmarked,
    )
    return bookmarked


def list_bookmarks(store: FeedStore, user_id: Any, limit: int, offset: int) -> List[FeedVideo]:
    uid = parse_identifier(user_id, "user_id")
    _check_window(offset, limit)
    if limit == 0:
        return []
    return decode_video_rows(store.bookmarked_videos(uid, limit, offset))
