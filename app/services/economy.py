import logging
import random
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.broadcast import emit
from app.config import settings
from app.database import atomic, utcnow
from app.errors import AlreadyClaimed, NotFound, OwnershipMismatch, ValidationError
from app.services import levels
from app.services.actors import Actor, account_display, resolve_viewer_actor
from app.services.ledger import apply_movement, lock_wallet, record_points
from app.utils.operation_log import add_operation_log
from models.bonus import DailyBonusClaim
from models.chat import ChatMessage
from models.coins import CoinOrder, CoinPackage
from models.gift import Gift, GiftSend
from models.stream import Stream
from models.wallet import Wallet
from schemas.bonus import DailyBonusResult
from schemas.chat import PostMessageResult
from schemas.gift import SendGiftResult
from schemas.wallet import PurchaseResult

logger = logging.getLogger("livegift.economy")

# 每日转盘奖励表，均匀随机抽取
DAILY_BONUS_REWARDS = (
    ("coins", 10),
    ("coins", 25),
    ("coins", 50),
    ("coins", 100),
    ("points", 5),
    ("points", 15),
    ("points", 30),
)


async def _credit_points(db: AsyncSession, actor: Actor, delta: int, wallet: Wallet | None):
    # 加积分并检查升级；需要发奖励时才去锁钱包
    previous = actor.viewer.level
    points_total = await record_points(db, actor.viewer, delta)
    if delta <= 0:
        return levels.LevelResult(previous, False), previous, wallet
    result = levels.evaluate(points_total, previous, await levels.viewer_rules(db))
    if not result.leveled_up:
        return result, previous, wallet
    actor.viewer.level = result.new_level
    reward = sum(rule.reward_coins for rule in result.crossed)
    if reward > 0:
        if wallet is None:
            wallet = await lock_wallet(db, actor.account_id)
        await apply_movement(
            db, wallet, reward, kind="level_reward", ref_type="viewer_level", ref_id=result.new_level,
        )
    logger.info(
        "VIEWER_LEVEL_UP viewer=%s from=%s to=%s points=%s reward=%s",
        actor.viewer_id, previous, result.new_level, points_total, reward,
    )
    return result, previous, wallet


def _level_up_event(actor: Actor, display: dict, previous: int, result: levels.LevelResult) -> tuple:
    return ("viewer_level_up", {
        "viewer_id": actor.viewer_id,
        "account_id": actor.account_id,
        "sender_name": display["name"],
        "avatar_url": display["avatar_url"],
        "previous_level": previous,
        "new_level": result.new_level,
        "points_total": actor.viewer.points,
    })


async def send_gift(
    db: AsyncSession,
    *,
    sender_id: int,
    stream_id: int,
    gift_id: int,
    quantity: int = 1,
    message: str | None = None,
    authenticated_account_id: int | None = None,
    broadcaster=None,
) -> SendGiftResult:
    if quantity is None or int(quantity) < 1:
        raise ValidationError("数量必须为正整数")
    quantity = int(quantity)
    message = (message or "").strip() or None

    async with atomic(db):
        actor = await resolve_viewer_actor(db, sender_id, authenticated_account_id=authenticated_account_id)
        wallet = await lock_wallet(db, actor.account_id)
        stream = (await db.execute(
            select(Stream).where(Stream.id == stream_id).with_for_update()
        )).scalar_one_or_none()
        if not stream:
            raise NotFound("直播间不存在")
        gift = (await db.execute(
            select(Gift).where(Gift.id == gift_id, Gift.active.is_(True))
        )).scalar_one_or_none()
        if not gift:
            raise NotFound("礼物不存在或已下架")
        if gift.streamer_id is not None and gift.streamer_id != stream.streamer_id:
            raise OwnershipMismatch("礼物不属于该主播")

        total_coins = int(gift.cost_coins) * quantity
        total_points = int(gift.points) * quantity
        send = GiftSend(
            gift_id=gift.id,
            stream_id=stream.id,
            sender_id=actor.viewer_id,
            streamer_id=stream.streamer_id,
            quantity=quantity,
            coins_spent=total_coins,
            points_generated=total_points,
            message=message,
        )
        db.add(send)
        await db.flush()
        await apply_movement(db, wallet, -total_coins, kind="gift", ref_type="gift_send", ref_id=send.id)
        level, previous, wallet = await _credit_points(db, actor, total_points, wallet)

        # 礼物播报消息使用升级后的等级
        announcement = ChatMessage(
            stream_id=stream.id,
            account_id=actor.account_id,
            kind="gift",
            content=message,
            gift_id=gift.id,
            gift_send_id=send.id,
            sender_level=actor.viewer.level,
        )
        db.add(announcement)
        add_operation_log(
            db,
            account_id=actor.account_id,
            action="gift_send",
            stream_id=stream.id,
            detail={"gift_send_id": send.id, "gift_id": gift.id, "quantity": quantity, "coins": total_coins},
        )
        display = await account_display(db, actor.account_id)

    result = SendGiftResult(
        event_id=send.id,
        stream_id=stream.id,
        streamer_id=stream.streamer_id,
        viewer_id=actor.viewer_id,
        gift_id=gift.id,
        quantity=quantity,
        coins_spent=total_coins,
        points_generated=total_points,
        points_total=actor.viewer.points,
        new_balance=wallet.balance,
        leveled_up=level.leveled_up,
        new_level=actor.viewer.level,
        created_at=send.created_at,
    )
    logger.info(
        "GIFT_SENT event=%s viewer=%s stream=%s gift=%s qty=%s coins=%s balance=%s",
        send.id, actor.viewer_id, stream.id, gift.id, quantity, total_coins, wallet.balance,
    )
    events = [("gift_sent", {
        **result.model_dump(),
        "gift_name": gift.name,
        "message": message,
        "chat_message_id": announcement.id,
        "sender_name": display["name"],
        "sender_avatar_url": display["avatar_url"],
    })]
    if level.leveled_up:
        events.append(_level_up_event(actor, display, previous, level))
    emit(broadcaster, stream.id, events)
    return result


async def purchase_coins(
    db: AsyncSession,
    *,
    viewer_id: int,
    package_id: int,
    authenticated_account_id: int | None = None,
) -> PurchaseResult:
    async with atomic(db):
        actor = await resolve_viewer_actor(db, viewer_id, authenticated_account_id=authenticated_account_id)
        wallet = await lock_wallet(db, actor.account_id)
        package = (await db.execute(
            select(CoinPackage).where(CoinPackage.id == package_id, CoinPackage.active.is_(True))
        )).scalar_one_or_none()
        if not package:
            raise NotFound("充值套餐不存在或已下架")
        order = CoinOrder(
            account_id=actor.account_id,
            package_id=package.id,
            coins_delivered=package.coins,
            price_paid=package.price,
            status="paid",
        )
        db.add(order)
        await db.flush()
        await apply_movement(db, wallet, package.coins, kind="recharge", ref_type="coin_order", ref_id=order.id)
        add_operation_log(
            db,
            account_id=actor.account_id,
            action="coin_purchase",
            detail={"order_id": order.id, "package_id": package.id, "coins": package.coins},
        )

    logger.info(
        "COINS_PURCHASED order=%s viewer=%s package=%s coins=%s balance=%s",
        order.id, actor.viewer_id, package.id, package.coins, wallet.balance,
    )
    return PurchaseResult(
        order_id=order.id,
        viewer_id=actor.viewer_id,
        account_id=actor.account_id,
        package_id=package.id,
        coins_delivered=package.coins,
        price_paid=package.price,
        currency=package.currency,
        new_balance=wallet.balance,
        created_at=order.created_at,
    )


async def post_chat_message(
    db: AsyncSession,
    *,
    viewer_id: int,
    stream_id: int,
    text: str,
    authenticated_account_id: int | None = None,
    broadcaster=None,
) -> PostMessageResult:
    text = (text or "").strip()
    if not text:
        raise ValidationError("消息不能为空")

    async with atomic(db):
        actor = await resolve_viewer_actor(db, viewer_id, authenticated_account_id=authenticated_account_id)
        stream = (await db.execute(select(Stream).where(Stream.id == stream_id))).scalar_one_or_none()
        if not stream:
            raise NotFound("直播间不存在")
        level, previous, _ = await _credit_points(db, actor, settings.CHAT_MESSAGE_POINTS, None)
        msg = ChatMessage(
            stream_id=stream.id,
            account_id=actor.account_id,
            kind="text",
            content=text,
            sender_level=actor.viewer.level,
        )
        db.add(msg)
        await db.flush()
        display = await account_display(db, actor.account_id)

    result = PostMessageResult(
        message_id=msg.id,
        stream_id=stream.id,
        viewer_id=actor.viewer_id,
        points_total=actor.viewer.points,
        leveled_up=level.leveled_up,
        new_level=actor.viewer.level,
        created_at=msg.created_at,
    )
    events = [("chat_message", {
        "id": msg.id,
        "stream_id": stream.id,
        "account_id": actor.account_id,
        "viewer_id": actor.viewer_id,
        "kind": msg.kind,
        "content": msg.content,
        "sender_level": msg.sender_level,
        "sender_name": display["name"],
        "avatar_url": display["avatar_url"],
        "points_total": result.points_total,
        "leveled_up": result.leveled_up,
        "new_level": result.new_level,
        "created_at": msg.created_at,
    })]
    if level.leveled_up:
        events.append(_level_up_event(actor, display, previous, level))
    emit(broadcaster, stream.id, events)
    return result


async def claim_daily_bonus(
    db: AsyncSession,
    *,
    viewer_id: int,
    rng: random.Random | None = None,
    today: date | None = None,
    authenticated_account_id: int | None = None,
) -> DailyBonusResult:
    reward_kind, reward_amount = (rng or random).choice(DAILY_BONUS_REWARDS)
    claim_date = today or utcnow().date()

    async with atomic(db):
        actor = await resolve_viewer_actor(db, viewer_id, authenticated_account_id=authenticated_account_id)
        claimant_id = actor.viewer_id
        claim = DailyBonusClaim(
            viewer_id=claimant_id,
            claim_date=claim_date,
            reward_kind=reward_kind,
            reward_amount=reward_amount,
        )
        try:
            # 唯一约束 (viewer, date) 决定谁是当天唯一的领取者
            async with db.begin_nested():
                db.add(claim)
        except IntegrityError:
            logger.info("DAILY_BONUS_DENIED viewer=%s date=%s", claimant_id, claim_date)
            raise AlreadyClaimed()
        wallet = await lock_wallet(db, actor.account_id)
        level = levels.LevelResult(actor.viewer.level, False)
        if reward_kind == "coins":
            await apply_movement(
                db, wallet, reward_amount, kind="daily_bonus", ref_type="daily_bonus_claim", ref_id=claim.id,
            )
        else:
            level, _, wallet = await _credit_points(db, actor, reward_amount, wallet)
        add_operation_log(
            db,
            account_id=actor.account_id,
            action="daily_bonus",
            detail={"claim_id": claim.id, "kind": reward_kind, "amount": reward_amount},
        )

    logger.info(
        "DAILY_BONUS viewer=%s date=%s kind=%s amount=%s",
        actor.viewer_id, claim_date, reward_kind, reward_amount,
    )
    return DailyBonusResult(
        claim_id=claim.id,
        viewer_id=actor.viewer_id,
        reward_kind=reward_kind,
        reward_amount=reward_amount,
        new_balance=wallet.balance,
        points_total=actor.viewer.points,
        leveled_up=level.leveled_up,
        new_level=actor.viewer.level,
    )
