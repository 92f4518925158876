from typing import List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.broadcast import get_broadcaster
from app.database import get_db
from app.errors import OwnershipMismatch
from app.security import get_request_account_id
from app.services import queries, sessions
from models.profile import StreamerProfile
from schemas.level import LevelProgressResponse
from schemas.stream import (
    SessionStartRequest,
    SessionStartResult,
    SessionStopRequest,
    SessionStopResult,
    StreamCreateRequest,
    StreamCreateResult,
    StreamDetail,
    StreamerDashboard,
    StreamSummary,
)

router = APIRouter()


async def _check_streamer_identity(db: AsyncSession, streamer_id: int, account_id: int | None) -> None:
    if account_id is None:
        return
    profile = await db.get(StreamerProfile, streamer_id)
    if profile is not None and profile.account_id != account_id:
        raise OwnershipMismatch("登录用户与主播不一致")


@router.post("/streams", response_model=StreamCreateResult, status_code=201)
async def create_stream(
    payload: StreamCreateRequest,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
):
    await _check_streamer_identity(db, payload.streamer_id, account_id)
    return await sessions.create_stream(
        db,
        streamer_id=payload.streamer_id,
        title=payload.title,
        start_now=payload.start_now,
        started_at=payload.started_at,
    )


# 注意：需在 /streams/{stream_id} 之前注册
@router.get("/streams/live", response_model=List[StreamSummary])
async def list_live_streams(
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await queries.live_streams(db, limit=limit)


@router.get("/streams/{stream_id}", response_model=StreamDetail)
async def get_stream(
    stream_id: int,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
):
    return await queries.stream_detail(db, stream_id, account_id=account_id)


@router.post("/streams/{stream_id}/start", response_model=SessionStartResult)
async def start_stream(
    stream_id: int,
    payload: SessionStartRequest,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
):
    await _check_streamer_identity(db, payload.streamer_id, account_id)
    return await sessions.start_session(
        db,
        stream_id=stream_id,
        streamer_id=payload.streamer_id,
        started_at=payload.started_at,
    )


@router.post("/streams/{stream_id}/stop", response_model=SessionStopResult)
async def stop_stream(
    stream_id: int,
    payload: SessionStopRequest,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
    broadcaster=Depends(get_broadcaster),
):
    await _check_streamer_identity(db, payload.streamer_id, account_id)
    return await sessions.stop_session(
        db,
        stream_id=stream_id,
        streamer_id=payload.streamer_id,
        ended_at=payload.ended_at,
        broadcaster=broadcaster,
    )


@router.get("/streamers/{streamer_id}/dashboard", response_model=StreamerDashboard)
async def streamer_dashboard(streamer_id: int, db: AsyncSession = Depends(get_db)):
    return await queries.streamer_dashboard(db, streamer_id)


@router.get("/streamers/{streamer_id}/level-progress", response_model=LevelProgressResponse)
async def streamer_level_progress(streamer_id: int, db: AsyncSession = Depends(get_db)):
    return await queries.streamer_progress(db, streamer_id)


@router.get("/streams/{stream_id}/events")
async def stream_events(stream_id: int, request: Request):
    # 长连接：connected / chat_message / gift_sent / viewer_level_up / streamer_level_up + 心跳
    broadcaster = get_broadcaster(request)
    return StreamingResponse(
        broadcaster.events(stream_id, request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )
