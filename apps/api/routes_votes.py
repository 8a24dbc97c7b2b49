# apps/api/routes_votes.py
from fastapi import APIRouter, Depends

from csrf import require_csrf
from errors import FeedError
from feed_store import FeedStore, get_feed_store
from models import User
from routes_feed import raise_for_feed_error
from schemas import VoteRequest, VoteStateOut
from session import get_current_user
from votes import VoteState, get_vote_state, set_vote

router = APIRouter(prefix="/votes", tags=["votes"])


def _state_out(state: VoteState) -> VoteStateOut:
    return VoteStateOut(
        target_type=state.target_type.value,
        target_id=str(state.target_id),
        score=state.score,
        my_vote=state.my_vote,
    )


@router.post("", response_model=VoteStateOut, dependencies=[Depends(require_csrf)])
def vote(
    body: VoteRequest,
    user: User = Depends(get_current_user),
    store: FeedStore = Depends(get_feed_store),
):
    try:
        state = set_vote(store, user.id, body.target_type, body.target_id, body.value)
    except FeedError as exc:
        raise_for_feed_error(exc)
    return _state_out(state)


@router.get("/{target_type}/{target_id}", response_model=VoteStateOut)
def vote_state(
    target_type: str,
    target_id: str,
    user: User = Depends(get_current_user),
    store: FeedStore = Depends(get_feed_store),
):
    try:
        state = get_vote_state(store, user.id, target_type, target_id)
    except FeedError as exc:
        raise_for_feed_error(exc)
    return _state_out(state)
