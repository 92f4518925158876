from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class SessionStartRequest(BaseModel):
    streamer_id: int
    started_at: Optional[datetime] = None


class SessionStopRequest(BaseModel):
    streamer_id: int
    ended_at: Optional[datetime] = None


class SessionStartResult(BaseModel):
    session_id: int
    stream_id: int
    state: str
    started_at: datetime
    already_open: bool = False
    stream_key: Optional[str] = None
    push_url: Optional[str] = None
    view_url: Optional[str] = None


class SessionStopResult(BaseModel):
    session_id: int
    stream_id: int
    state: str
    started_at: datetime
    ended_at: datetime
    duration_hours: float
    hours_total: float
    leveled_up: bool
    new_level: int


class StreamCreateRequest(BaseModel):
    streamer_id: int
    title: Optional[str] = Field(default=None, max_length=200)
    start_now: bool = True
    started_at: Optional[datetime] = None


class StreamCreateResult(BaseModel):
    stream_id: int
    streamer_id: int
    title: str
    status: str
    session_id: Optional[int] = None
    started_at: Optional[datetime] = None
    stream_key: Optional[str] = None
    push_url: Optional[str] = None
    view_url: Optional[str] = None


class StreamSummary(BaseModel):
    id: int
    streamer_id: int
    title: str
    status: str
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    view_url: Optional[str] = None
    streamer_name: Optional[str] = None
    avatar_url: Optional[str] = None


class StreamDetail(StreamSummary):
    # 推流地址和 key 只返回给主播本人
    stream_key: Optional[str] = None
    push_url: Optional[str] = None


class StreamerDashboard(BaseModel):
    streamer_id: int
    account_id: int
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    level: int
    hours_total: float
    channel_title: Optional[str] = None
    last_stream_at: Optional[datetime] = None
    live_stream_id: Optional[int] = None
