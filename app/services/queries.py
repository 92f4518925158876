from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFound
from app.services import levels
from models.account import Account
from models.chat import ChatMessage
from models.coins import CoinPackage
from models.gift import Gift
from models.profile import StreamerProfile, ViewerProfile
from models.stream import Stream
from models.wallet import Movement, Wallet
from schemas.chat import ChatHistoryResponse, MessageResponse
from schemas.level import LevelProgressResponse
from schemas.stream import StreamDetail, StreamerDashboard, StreamSummary
from schemas.wallet import MovementResponse, WalletResponse


async def chat_history(db: AsyncSession, stream_id: int, limit: int = 200) -> ChatHistoryResponse:
    stream = (await db.execute(select(Stream.id).where(Stream.id == stream_id))).scalar_one_or_none()
    if stream is None:
        raise NotFound("直播间不存在")
    # 取最近 limit 条，再按提交顺序（时间 + id）返回
    rows = await db.execute(
        select(ChatMessage, Account)
        .outerjoin(Account, Account.id == ChatMessage.account_id)
        .where(ChatMessage.stream_id == stream_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
    )
    pairs = list(reversed(rows.all()))
    messages = [
        MessageResponse(
            id=m.id,
            stream_id=m.stream_id,
            account_id=m.account_id,
            sender_name=a.display_name if a else None,
            avatar_url=a.avatar_url if a else None,
            kind=m.kind or "text",
            content=m.content,
            gift_id=m.gift_id,
            gift_send_id=m.gift_send_id,
            sender_level=m.sender_level,
            created_at=m.created_at,
        ) for m, a in pairs
    ]
    return ChatHistoryResponse(messages=messages, last_message_id=messages[-1].id if messages else None)


async def wallet_summary(db: AsyncSession, viewer_id: int, limit: int = 50) -> WalletResponse:
    viewer = (await db.execute(select(ViewerProfile).where(ViewerProfile.id == viewer_id))).scalar_one_or_none()
    if not viewer:
        raise NotFound("观众不存在")
    wallet = (await db.execute(select(Wallet).where(Wallet.account_id == viewer.account_id))).scalar_one_or_none()
    if not wallet:
        return WalletResponse(viewer_id=viewer.id, account_id=viewer.account_id, balance=0, movements=[])
    rows = await db.execute(
        select(Movement)
        .where(Movement.wallet_id == wallet.id)
        .order_by(Movement.created_at.desc(), Movement.id.desc())
        .limit(limit)
    )
    return WalletResponse(
        viewer_id=viewer.id,
        account_id=viewer.account_id,
        balance=wallet.balance,
        movements=[MovementResponse.model_validate(m) for m in rows.scalars().all()],
    )


async def list_gifts(db: AsyncSession, streamer_id: int) -> list[Gift]:
    rows = await db.execute(
        select(Gift)
        .where(Gift.active.is_(True), or_(Gift.streamer_id == streamer_id, Gift.streamer_id.is_(None)))
        .order_by(Gift.cost_coins, Gift.id)
    )
    return list(rows.scalars().all())


async def list_packages(db: AsyncSession) -> list[CoinPackage]:
    rows = await db.execute(
        select(CoinPackage).where(CoinPackage.active.is_(True)).order_by(CoinPackage.price, CoinPackage.id)
    )
    return list(rows.scalars().all())


async def viewer_progress(db: AsyncSession, viewer_id: int) -> LevelProgressResponse:
    viewer = (await db.execute(select(ViewerProfile).where(ViewerProfile.id == viewer_id))).scalar_one_or_none()
    if not viewer:
        raise NotFound("观众不存在")
    rules = await levels.viewer_rules(db)
    progress = levels.level_progress(viewer.points, viewer.level, rules)
    reward = next((r.reward_coins for r in rules if r.level == progress["next_level"]), None)
    return LevelProgressResponse(profile_id=viewer.id, reward_coins=reward, **progress)


async def streamer_progress(db: AsyncSession, streamer_id: int) -> LevelProgressResponse:
    profile = (await db.execute(
        select(StreamerProfile).where(StreamerProfile.id == streamer_id)
    )).scalar_one_or_none()
    if not profile:
        raise NotFound("主播不存在")
    rules = await levels.streamer_rules(db, profile.id, profile.level)
    progress = levels.level_progress(profile.hours_total, profile.level, rules)
    return LevelProgressResponse(profile_id=profile.id, **progress)


def _stream_summary(stream: Stream, account: Account | None) -> dict:
    return {
        "id": stream.id,
        "streamer_id": stream.streamer_id,
        "title": stream.title or "",
        "status": stream.status,
        "started_at": stream.started_at,
        "ended_at": stream.ended_at,
        "view_url": stream.view_url,
        "streamer_name": account.display_name if account else None,
        "avatar_url": account.avatar_url if account else None,
    }


def _stream_with_owner():
    return (
        select(Stream, StreamerProfile, Account)
        .join(StreamerProfile, StreamerProfile.id == Stream.streamer_id)
        .outerjoin(Account, Account.id == StreamerProfile.account_id)
    )


async def live_streams(db: AsyncSession, limit: int = 100) -> list[StreamSummary]:
    rows = await db.execute(
        _stream_with_owner()
        .where(Stream.status == "live")
        .order_by(Stream.started_at.is_(None), Stream.started_at.desc(), Stream.id.desc())
        .limit(limit)
    )
    return [StreamSummary(**_stream_summary(s, a)) for s, _, a in rows.all()]


async def stream_detail(db: AsyncSession, stream_id: int, account_id: int | None = None) -> StreamDetail:
    row = (await db.execute(_stream_with_owner().where(Stream.id == stream_id))).first()
    if row is None:
        raise NotFound("直播间不存在")
    stream, profile, account = row
    detail = StreamDetail(**_stream_summary(stream, account))
    if account_id is not None and account_id == profile.account_id:
        detail.stream_key = stream.stream_key
        detail.push_url = stream.push_url
    return detail


async def streamer_dashboard(db: AsyncSession, streamer_id: int) -> StreamerDashboard:
    row = (await db.execute(
        select(StreamerProfile, Account)
        .outerjoin(Account, Account.id == StreamerProfile.account_id)
        .where(StreamerProfile.id == streamer_id)
    )).first()
    if row is None:
        raise NotFound("主播不存在")
    profile, account = row
    live_id = (await db.execute(
        select(Stream.id)
        .where(Stream.streamer_id == profile.id, Stream.status == "live")
        .order_by(Stream.id.desc())
        .limit(1)
    )).scalar_one_or_none()
    return StreamerDashboard(
        streamer_id=profile.id,
        account_id=profile.account_id,
        name=account.display_name if account else None,
        avatar_url=account.avatar_url if account else None,
        level=profile.level,
        hours_total=profile.hours_total or 0.0,
        channel_title=profile.channel_title,
        last_stream_at=profile.last_stream_at,
        live_stream_id=live_id,
    )
