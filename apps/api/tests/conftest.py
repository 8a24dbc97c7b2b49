import itertools
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set, Tuple

import pytest

from errors import StoreUnavailable
from video_rows import ContentTargetType


class InMemoryFeedStore:
    """FeedStore with the same filtering and ordering rules as SqlFeedStore."""

    def __init__(self):
        self.videos: Dict[uuid.UUID, dict] = {}
        self.votes: Dict[Tuple[uuid.UUID, str, uuid.UUID], Tuple[int, int]] = {}
        self.comments: List[Tuple[str, uuid.UUID]] = []
        self.views: Set[Tuple[uuid.UUID, uuid.UUID]] = set()
        self.bookmarks: Dict[Tuple[uuid.UUID, uuid.UUID], int] = {}
        self.reset_calls: List[uuid.UUID] = []
        self.failing: Set[str] = set()
        self._clock = itertools.count(1)

    # -- seeding helpers -------------------------------------------------

    def add_video(
        self,
        *,
        owner: Optional[uuid.UUID] = None,
        age: timedelta = timedelta(hours=1),
        target_type: str = "proposal",
        target_id: Optional[uuid.UUID] = None,
    ) -> uuid.UUID:
        vid = uuid.uuid4()
        self.videos[vid] = {
            "id": vid,
            "owner_user_id": owner or uuid.uuid4(),
            "target_type": target_type,
            "target_id": target_id or uuid.uuid4(),
            "storage_bucket": "videos",
            "storage_key": f"videos/{vid}.mp4",
            "content_type": "video/mp4",
            "duration_seconds": 30,
            "created_at": datetime.now(timezone.utc) - age,
            "seq": next(self._clock),
        }
        return vid

    def vote(self, user_id: uuid.UUID, video_id: uuid.UUID, value: int) -> None:
        self.set_vote(user_id, ContentTargetType.VIDEO, video_id, value)

    def comment(self, video_id: uuid.UUID, count: int = 1) -> None:
        for _ in range(count):
            self.comments.append(("video", video_id))

    def view(self, user_id: uuid.UUID, *video_ids: uuid.UUID) -> None:
        for vid in video_ids:
            self.views.add((user_id, vid))

    # -- internals -------------------------------------------------------

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise StoreUnavailable(f"{op} failed")

    def _video_votes(self, video_id: uuid.UUID) -> List[int]:
        return [
            value
            for (_, kind, target), (value, _) in self.votes.items()
            if kind == "video" and target == video_id
        ]

    def _row(self, video_id: uuid.UUID) -> dict:
        row = {k: v for k, v in self.videos[video_id].items() if k != "seq"}
        row["vote_score"] = sum(self._video_votes(video_id))
        return row

    def _unviewed(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        return [vid for vid in self.videos if (user_id, vid) not in self.views]

    def _recent_unviewed(self, user_id: uuid.UUID, since: datetime) -> List[uuid.UUID]:
        return [vid for vid in self._unviewed(user_id) if self.videos[vid]["created_at"] > since]

    def _newest_first(self, vid: uuid.UUID):
        return (-self.videos[vid]["created_at"].timestamp(), str(vid))

    # -- FeedStore -------------------------------------------------------

    def collaborative_candidates(self, user_id, limit):
        self._check("collaborative_candidates")
        upvotes = [
            (user, target, stamp)
            for (user, kind, target), (value, stamp) in self.votes.items()
            if kind == "video" and value == 1
        ]
        mine = {target for user, target, _ in upvotes if user == user_id}
        neighbors = {user for user, target, _ in upvotes if target in mine and user != user_id}
        last_upvote: Dict[uuid.UUID, int] = {}
        for user, target, stamp in upvotes:
            if user in neighbors and target in self.videos:
                last_upvote[target] = max(stamp, last_upvote.get(target, 0))
        candidates = [vid for vid in last_upvote if (user_id, vid) not in self.views]
        candidates.sort(key=lambda vid: (-last_upvote[vid], str(vid)))
        return [self._row(vid) for vid in candidates[:limit]]

    def popular_candidates(self, user_id, since, limit):
        self._check("popular_candidates")
        candidates = self._recent_unviewed(user_id, since)
        candidates.sort(key=lambda vid: (-sum(self._video_votes(vid)), self._newest_first(vid)))
        return [self._row(vid) for vid in candidates[:limit]]

    def interactive_candidates(self, user_id, since, limit):
        self._check("interactive_candidates")

        def interaction(vid):
            comments = sum(1 for kind, target in self.comments if kind == "video" and target == vid)
            return len(self._video_votes(vid)) + comments * 2

        candidates = self._recent_unviewed(user_id, since)
        candidates.sort(key=lambda vid: (-interaction(vid), self._newest_first(vid)))
        rows = []
        for vid in candidates[:limit]:
            row = self._row(vid)
            row["interaction_score"] = interaction(vid)
            rows.append(row)
        return rows

    def reset_views(self, user_id):
        self._check("reset_views")
        self.reset_calls.append(user_id)
        mine = {pair for pair in self.views if pair[0] == user_id}
        self.views -= mine
        return len(mine)

    def video_exists(self, video_id):
        self._check("video_exists")
        return video_id in self.videos

    def record_view(self, user_id, video_id):
        self._check("record_view")
        self.views.add((user_id, video_id))

    def toggle_bookmark(self, user_id, video_id):
        self._check("toggle_bookmark")
        key = (user_id, video_id)
        if key in self.bookmarks:
            del self.bookmarks[key]
            return False
        self.bookmarks[key] = next(self._clock)
        return True

    def bookmarked_videos(self, user_id, limit, offset):
        self._check("bookmarked_videos")
        mine = [(stamp, vid) for (user, vid), stamp in self.bookmarks.items() if user == user_id]
        mine.sort(key=lambda item: (-item[0], str(item[1])))
        return [self._row(vid) for _, vid in mine[offset:offset + limit]]

    def target_videos(self, target_type, target_id, limit, offset):
        self._check("target_videos")
        matches = [
            vid
            for vid, video in self.videos.items()
            if video["target_type"] == target_type.value and video["target_id"] == target_id
        ]
        matches.sort(key=self._newest_first)
        return [self._row(vid) for vid in matches[offset:offset + limit]]

    def set_vote(self, user_id, target_type, target_id, value):
        self._check("set_vote")
        key = (user_id, target_type.value, target_id)
        if value == 0:
            self.votes.pop(key, None)
        else:
            self.votes[key] = (value, next(self._clock))

    def vote_state(self, user_id, target_type, target_id):
        self._check("vote_state")
        score = sum(
            value
            for (_, kind, target), (value, _) in self.votes.items()
            if kind == target_type.value and target == target_id
        )
        mine = self.votes.get((user_id, target_type.value, target_id))
        return score, (mine[0] if mine else None)


@pytest.fixture
def store() -> InMemoryFeedStore:
    return InMemoryFeedStore()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()
