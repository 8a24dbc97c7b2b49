# apps/api/votes.py
import logging
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from errors import InvalidVoteValue
from feed_store import FeedStore
from video_rows import ContentTargetType, parse_identifier

VOTE_VALUES = (-1, 0, 1)

log = logging.getLogger("votes")


@dataclass
class VoteState:
    target_type: ContentTargetType
    target_id: UUID
    score: int
    my_vote: Optional[int]


def get_vote_state(store: FeedStore, user_id: Any, target_type: Any, target_id: Any) -> VoteState:
    uid = parse_identifier(user_id, "user_id")
    kind = ContentTargetType.parse(target_type)
    tid = parse_identifier(target_id, "target_id")
    score, mine = store.vote_state(uid, kind, tid)
    return VoteState(target_type=kind, target_id=tid, score=score, my_vote=mine)


def set_vote(
    store: FeedStore, user_id: Any, target_type: Any, target_id: Any, value: int
) -> VoteState:
    """
    Record the user's vote on any content.

    value = 1 upvotes, -1 downvotes, 0 clears. The returned score is the live
    sum of votes on the target.
    """
    if isinstance(value, bool) or value not in VOTE_VALUES:
        raise InvalidVoteValue(value)
    uid = parse_identifier(user_id, "user_id")
    kind = ContentTargetType.parse(target_type)
    tid = parse_identifier(target_id, "target_id")

    store.set_vote(uid, kind, tid, value)
    if value == 0:
        log.info("votes_cleared user_id=%s target_type=%s target_id=%s", uid, kind.value, tid)
    else:
        log.info(
            "votes_set user_id=%s target_type=%s target_id=%s value=%d",
            uid, kind.value, tid, value,
        )

    score, mine = store.vote_state(uid, kind, tid)
    return VoteState(target_type=kind, target_id=tid, score=score, my_vote=mine)
