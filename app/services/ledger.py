import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.errors import InsufficientFunds
from models.profile import ViewerProfile
from models.wallet import Movement, Wallet

logger = logging.getLogger("livegift.ledger")

GET_OR_CREATE_ATTEMPTS = 3


async def get_or_create(db: AsyncSession, model, *, lock: bool = False, defaults: dict | None = None, **keys):
    # 在保存点里插入；并发事务抢先写入唯一键时回滚保存点，改为读取对方的行
    query = select(model).filter_by(**keys)
    if lock:
        query = query.with_for_update()
    last_error = None
    for _ in range(GET_OR_CREATE_ATTEMPTS):
        row = (await db.execute(query)).scalar_one_or_none()
        if row:
            return row
        try:
            async with db.begin_nested():
                row = model(**keys, **(defaults or {}))
                db.add(row)
            return row
        except IntegrityError as exc:
            last_error = exc
            logger.info("CREATE_CONFLICT table=%s keys=%s", model.__tablename__, keys)
    row = (await db.execute(query)).scalar_one_or_none()
    if row:
        return row
    # 读不到对方的行说明不是并发冲突，而是真实的约束错误
    raise last_error


async def lock_wallet(db: AsyncSession, account_id: int) -> Wallet:
    # 任何读取余额的操作之前先拿钱包锁
    return await get_or_create(db, Wallet, lock=True, account_id=account_id, defaults={"balance": 0})


async def apply_movement(
    db: AsyncSession,
    wallet: Wallet,
    amount: int,
    *,
    kind: str,
    ref_type: str | None = None,
    ref_id: int | None = None,
) -> int:
    # 余额是否足够在 UPDATE 的条件里判断，两笔扣款不可能同时通过
    amount = int(amount)
    result = await db.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id, Wallet.balance + amount >= 0)
        .values(balance=Wallet.balance + amount)
        .returning(Wallet.balance)
        .execution_options(synchronize_session=False)
    )
    new_balance = result.scalar_one_or_none()
    if new_balance is None:
        logger.info("DEBIT_DENIED wallet=%s amount=%s", wallet.id, amount)
        raise InsufficientFunds()
    set_committed_value(wallet, "balance", new_balance)
    db.add(Movement(wallet_id=wallet.id, kind=kind, amount=amount, ref_type=ref_type, ref_id=ref_id))
    return new_balance


async def record_points(db: AsyncSession, viewer: ViewerProfile, delta: int) -> int:
    result = await db.execute(
        update(ViewerProfile)
        .where(ViewerProfile.id == viewer.id)
        .values(points=ViewerProfile.points + int(delta))
        .returning(ViewerProfile.points)
        .execution_options(synchronize_session=False)
    )
    total = result.scalar_one()
    set_committed_value(viewer, "points", total)
    return total
