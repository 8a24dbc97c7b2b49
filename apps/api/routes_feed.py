# apps/api/routes_feed.py
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from config import settings
from csrf import require_csrf
from errors import DecodeError, FeedError, InvalidIdentifier, InvalidVoteValue, StoreUnavailable
from feed_store import FeedStore, get_feed_store
from models import User
from schemas import BookmarkState, FeedPage, FeedVideoOut, Ok, VideoPage, VideoRef
from session import get_current_user
from storage import build_public_url
from video_feed import list_bookmarks, list_feed, list_single_content_feed, mark_viewed, toggle_bookmark
from video_rows import FeedVideo, parse_identifier

router = APIRouter(prefix="/feed", tags=["feed"])

log = logging.getLogger("routes_feed")


def raise_for_feed_error(exc: FeedError) -> None:
    if isinstance(exc, (InvalidIdentifier, InvalidVoteValue)):
        raise HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, StoreUnavailable):
        raise HTTPException(status_code=503, detail="Video store unavailable")
    if isinstance(exc, DecodeError):
        log.error("routes_feed_decode_failed column=%s", exc.column, exc_info=exc)
        raise HTTPException(status_code=500, detail="Malformed video data")
    raise HTTPException(status_code=500, detail="Feed request failed")


def _page_size(limit: int) -> int:
    return min(limit, settings.feed_max_page_size)


def _video_out(v: FeedVideo, source: Optional[str] = None) -> FeedVideoOut:
    return FeedVideoOut(
        id=str(v.id),
        owner_user_id=str(v.owner_user_id),
        target_type=v.target_type.value,
        target_id=str(v.target_id),
        content_type=v.content_type,
        duration_seconds=v.duration_seconds,
        created_at=v.created_at,
        vote_score=v.vote_score,
        public_url=build_public_url(v.storage_bucket, v.storage_key),
        source=source,
    )


def _next_offset(offset: int, returned: int, has_more: bool) -> Optional[int]:
    return offset + returned if has_more and returned > 0 else None


@router.get("", response_model=FeedPage)
def feed(
    user: User = Depends(get_current_user),
    store: FeedStore = Depends(get_feed_store),
    limit: int = Query(settings.feed_default_page_size, ge=0),
    offset: int = Query(0, ge=0),
):
    limit = _page_size(limit)
    try:
        result = list_feed(store, user.id, limit, offset)
    except FeedError as exc:
        raise_for_feed_error(exc)

    items: List[FeedVideoOut] = [
        _video_out(v, result.sources.get(v.id)) for v in result.videos
    ]
    has_more = offset + len(items) < result.total

    if not items:
        return FeedPage(items=[], next_offset=None, source="empty")

    counts: Dict[str, int] = result.source_counts()
    source_label = (
        f"blended(collaborative={counts['collaborative']},"
        f"popular={counts['popular']},interactive={counts['interactive']})"
    )
    if result.reset_performed:
        source_label = f"reset+{source_label}"
    return FeedPage(items=items, next_offset=_next_offset(offset, len(items), has_more), source=source_label)


@router.get("/content/{target_type}/{target_id}", response_model=VideoPage)
def single_content_feed(
    target_type: str,
    target_id: str,
    store: FeedStore = Depends(get_feed_store),
    limit: int = Query(settings.feed_default_page_size, ge=0),
    offset: int = Query(0, ge=0),
):
    limit = _page_size(limit)
    try:
        # One extra row tells us whether another page exists
        videos = list_single_content_feed(store, target_type, target_id, limit + 1, offset)
    except FeedError as exc:
        raise_for_feed_error(exc)
    has_more = len(videos) > limit
    videos = videos[:limit]
    return VideoPage(
        items=[_video_out(v) for v in videos],
        next_offset=_next_offset(offset, len(videos), has_more),
    )


@router.post("/viewed", response_model=Ok, dependencies=[Depends(require_csrf)])
def viewed(
    body: VideoRef,
    user: User = Depends(get_current_user),
    store: FeedStore = Depends(get_feed_store),
):
    try:
        vid = parse_identifier(body.video_id, "video_id")
        if not store.video_exists(vid):
            raise HTTPException(status_code=404, detail="Video not found")
        mark_viewed(store, user.id, vid)
    except FeedError as exc:
        raise_for_feed_error(exc)
    return Ok(ok=True)


@router.post("/bookmarks", response_model=BookmarkState, dependencies=[Depends(require_csrf)])
def bookmark(
    body: VideoRef,
    user: User = Depends(get_current_user),
    store: FeedStore = Depends(get_feed_store),
):
    try:
        vid = parse_identifier(body.video_id, "video_id")
        if not store.video_exists(vid):
            raise HTTPException(status_code=404, detail="Video not found")
        bookmarked = toggle_bookmark(store, user.id, vid)
    except FeedError as exc:
        raise_for_feed_error(exc)
    return BookmarkState(video_id=str(vid), bookmarked=bookmarked)


@router.get("/bookmarks", response_model=VideoPage)
def bookmarks(
    user: User = Depends(get_current_user),
    store: FeedStore = Depends(get_feed_store),
    limit: int = Query(settings.feed_default_page_size, ge=0),
    offset: int = Query(0, ge=0),
):
    limit = _page_size(limit)
    try:
        videos = list_bookmarks(store, user.id, limit + 1, offset)
    except FeedError as exc:
        raise_for_feed_error(exc)
    has_more = len(videos) > limit
    videos = videos[:limit]
    return VideoPage(
        items=[_video_out(v) for v in videos],
        next_offset=_next_offset(offset, len(videos), has_more),
    )
