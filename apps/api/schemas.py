# apps/api/schemas.py
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

class Ok(BaseModel):
    ok: bool

class VideoRef(BaseModel):
    video_id: str

class FeedVideoOut(BaseModel):
    id: str
    owner_user_id: str
    target_type: str
    target_id: str
    content_type: str
    duration_seconds: Optional[int] = None
    created_at: datetime
    vote_score: int
    public_url: str
    source: Optional[str] = None  # collaborative | popular | interactive

class FeedPage(BaseModel):
    items: List[FeedVideoOut]
    next_offset: Optional[int] = None
    source: str

class VideoPage(BaseModel):
    items: List[FeedVideoOut]
    next_offset: Optional[int] = None

class BookmarkState(BaseModel):
    video_id: str
    bookmarked: bool

class VoteRequest(BaseModel):
    target_type: str
    target_id: str
    value: int

class VoteStateOut(BaseModel):
    target_type: str
    target_id: str
    score: int
    my_vote: Optional[int] = None
