import logging
import secrets
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.broadcast import emit
from app.config import settings
from app.database import atomic, utcnow
from app.errors import NoOpenSession, NotFound, OwnershipMismatch
from app.services import levels
from app.services.actors import account_display
from models.profile import StreamerProfile
from models.stream import BroadcastSession, Stream
from schemas.stream import SessionStartResult, SessionStopResult, StreamCreateResult

logger = logging.getLogger("livegift.sessions")


def as_naive_utc(value: datetime | None) -> datetime:
    if value is None:
        return utcnow()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def build_video_links(key: str) -> tuple[str, str]:
    return (
        settings.VIDEO_PUSH_URL_TEMPLATE.format(key=key),
        settings.VIDEO_VIEW_URL_TEMPLATE.format(key=key),
    )


async def _lock_owned_stream(db: AsyncSession, stream_id: int, streamer_id: int) -> Stream:
    stream = (await db.execute(
        select(Stream).where(Stream.id == stream_id).with_for_update()
    )).scalar_one_or_none()
    if not stream:
        raise NotFound("直播间不存在")
    if stream.streamer_id != streamer_id:
        raise OwnershipMismatch("直播间不属于该主播")
    return stream


async def _open_session(db: AsyncSession, stream_id: int, *, lock: bool = False) -> BroadcastSession | None:
    query = (
        select(BroadcastSession)
        .where(BroadcastSession.stream_id == stream_id, BroadcastSession.ended_at.is_(None))
        .order_by(BroadcastSession.started_at.desc())
        .limit(1)
    )
    if lock:
        query = query.with_for_update()
    return (await db.execute(query)).scalar_one_or_none()


def _start_result(stream: Stream, session: BroadcastSession, already_open: bool) -> SessionStartResult:
    return SessionStartResult(
        session_id=session.id,
        stream_id=stream.id,
        state="live",
        started_at=session.started_at,
        already_open=already_open,
        stream_key=stream.stream_key,
        push_url=stream.push_url,
        view_url=stream.view_url,
    )


async def _begin_session(db: AsyncSession, stream: Stream, start: datetime) -> tuple[BroadcastSession, bool]:
    # 返回 (场次, 是否原本就已开播)
    session = await _open_session(db, stream.id)
    if session:
        return session, True
    try:
        async with db.begin_nested():
            session = BroadcastSession(stream_id=stream.id, started_at=start)
            db.add(session)
    except IntegrityError:
        # 并发开播时唯一索引只放行一个，其余读取已存在的场次
        session = await _open_session(db, stream.id)
        if session is None:
            raise
        logger.info("SESSION_START_RACE stream=%s session=%s", stream.id, session.id)
        return session, True

    if not stream.stream_key:
        stream.stream_key = secrets.token_hex(6)
    stream.push_url, stream.view_url = build_video_links(stream.stream_key)
    stream.status = "live"
    if stream.started_at is None:
        stream.started_at = start
    return session, False


async def start_session(
    db: AsyncSession,
    *,
    stream_id: int,
    streamer_id: int,
    started_at: datetime | None = None,
) -> SessionStartResult:
    # 幂等：已有未结束场次时原样返回
    async with atomic(db):
        stream = await _lock_owned_stream(db, stream_id, streamer_id)
        session, already_open = await _begin_session(db, stream, as_naive_utc(started_at))

    if not already_open:
        logger.info("SESSION_START stream=%s session=%s streamer=%s", stream.id, session.id, streamer_id)
    return _start_result(stream, session, already_open)


async def create_stream(
    db: AsyncSession,
    *,
    streamer_id: int,
    title: str | None = None,
    start_now: bool = True,
    started_at: datetime | None = None,
) -> StreamCreateResult:
    title = (title or "").strip()
    async with atomic(db):
        profile = (await db.execute(
            select(StreamerProfile).where(StreamerProfile.id == streamer_id)
        )).scalar_one_or_none()
        if not profile:
            raise NotFound("主播不存在")
        stream = Stream(streamer_id=profile.id, title=title, status="offline")
        db.add(stream)
        await db.flush()
        session = None
        if start_now:
            session, _ = await _begin_session(db, stream, as_naive_utc(started_at))

    logger.info(
        "STREAM_CREATED stream=%s streamer=%s session=%s",
        stream.id, profile.id, session.id if session else None,
    )
    return StreamCreateResult(
        stream_id=stream.id,
        streamer_id=profile.id,
        title=stream.title,
        status=stream.status,
        session_id=session.id if session else None,
        started_at=session.started_at if session else None,
        stream_key=stream.stream_key,
        push_url=stream.push_url,
        view_url=stream.view_url,
    )


async def stop_session(
    db: AsyncSession,
    *,
    stream_id: int,
    streamer_id: int,
    ended_at: datetime | None = None,
    broadcaster=None,
) -> SessionStopResult:
    # 结束场次、累计时长，并检查主播升级
    async with atomic(db):
        stream = await _lock_owned_stream(db, stream_id, streamer_id)
        session = await _open_session(db, stream.id, lock=True)
        if not session:
            raise NoOpenSession()

        started = as_naive_utc(session.started_at)
        end = as_naive_utc(ended_at)
        if end < started:
            end = started
        duration = max((end - started).total_seconds() / 3600, 0.0)
        session.ended_at = end
        session.duration_hours = duration
        stream.status = "ended"
        stream.ended_at = end

        profile = (await db.execute(
            select(StreamerProfile).where(StreamerProfile.id == stream.streamer_id).with_for_update()
        )).scalar_one_or_none()
        if not profile:
            raise NotFound("主播不存在")
        previous = profile.level
        profile.hours_total = float(profile.hours_total or 0) + duration
        profile.last_stream_at = end
        rules = await levels.streamer_rules(db, profile.id, previous)
        level = levels.evaluate(profile.hours_total, previous, rules)
        if level.leveled_up:
            profile.level = level.new_level
        display = await account_display(db, profile.account_id) if level.leveled_up else None

    logger.info(
        "SESSION_STOP stream=%s session=%s hours=%.4f total=%.4f level=%s",
        stream.id, session.id, duration, profile.hours_total, profile.level,
    )
    if level.leveled_up:
        logger.info("STREAMER_LEVEL_UP streamer=%s from=%s to=%s", profile.id, previous, level.new_level)
        emit(broadcaster, stream.id, [("streamer_level_up", {
            "streamer_id": profile.id,
            "account_id": profile.account_id,
            "streamer_name": display["name"],
            "avatar_url": display["avatar_url"],
            "previous_level": previous,
            "new_level": level.new_level,
            "hours_total": profile.hours_total,
            "session_id": session.id,
        })])
    return SessionStopResult(
        session_id=session.id,
        stream_id=stream.id,
        state="ended",
        started_at=started,
        ended_at=end,
        duration_hours=duration,
        hours_total=profile.hours_total,
        leveled_up=level.leveled_up,
        new_level=profile.level,
    )
