import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFound, OwnershipMismatch
from app.services.ledger import get_or_create
from models.account import Account
from models.profile import StreamerProfile, ViewerProfile

logger = logging.getLogger("livegift.economy")


class ActorKind(str, Enum):
    VIEWER = "viewer"
    STREAMER = "streamer"  # 主播以观众身份送礼 / 发言


@dataclass
class Actor:
    kind: ActorKind
    account_id: int
    viewer: ViewerProfile

    @property
    def viewer_id(self) -> int:
        return self.viewer.id


async def resolve_viewer_actor(
    db: AsyncSession,
    actor_id: int,
    *,
    authenticated_account_id: int | None = None,
) -> Actor:
    # 观众 id 直接命中；否则按主播 id 找到其账号，首次使用时补建观众档案
    row = await db.execute(select(ViewerProfile).where(ViewerProfile.id == actor_id).with_for_update())
    viewer = row.scalar_one_or_none()
    if viewer:
        actor = Actor(ActorKind.VIEWER, viewer.account_id, viewer)
    else:
        streamer = (await db.execute(
            select(StreamerProfile).where(StreamerProfile.id == actor_id)
        )).scalar_one_or_none()
        if not streamer:
            raise NotFound("观众不存在")
        viewer = await get_or_create(
            db,
            ViewerProfile,
            lock=True,
            account_id=streamer.account_id,
            defaults={"level": 1, "points": 0},
        )
        logger.debug("ACTOR_STREAMER streamer=%s viewer=%s", streamer.id, viewer.id)
        actor = Actor(ActorKind.STREAMER, streamer.account_id, viewer)
    if authenticated_account_id is not None and actor.account_id != authenticated_account_id:
        raise OwnershipMismatch("登录用户与操作者不一致")
    return actor


async def account_display(db: AsyncSession, account_id: int) -> dict:
    account = (await db.execute(select(Account).where(Account.id == account_id))).scalar_one_or_none()
    if not account:
        return {"name": None, "avatar_url": None}
    return {"name": account.display_name, "avatar_url": account.avatar_url}
