from typing import Iterable, NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.level import StreamerLevelRule, ViewerLevelRule


class LevelRule(NamedTuple):
    level: int
    threshold: float
    active: bool = True
    reward_coins: int = 0


class LevelResult(NamedTuple):
    new_level: int
    leveled_up: bool
    crossed: tuple[LevelRule, ...] = ()


def evaluate(score, current_level: int, rules: Iterable[LevelRule]) -> LevelResult:
    # 取满足阈值且高于当前等级的最高一级，可一次连升多级；crossed 按等级从低到高，等级只升不降
    qualifying = sorted(
        (r for r in rules if r.active and r.threshold <= score and r.level > current_level),
        key=lambda r: r.level,
    )
    if not qualifying:
        return LevelResult(current_level, False)
    return LevelResult(qualifying[-1].level, True, tuple(qualifying))


def level_progress(score, current_level: int, rules: Iterable[LevelRule]) -> dict:
    upcoming = sorted((r for r in rules if r.active and r.level > current_level), key=lambda r: r.level)
    if not upcoming:
        return {
            "current_level": current_level,
            "score": score,
            "is_max_level": True,
            "next_level": None,
            "required": None,
            "remaining": 0,
            "progress_pct": 100.0,
        }
    nxt = upcoming[0]
    remaining = max(nxt.threshold - score, 0)
    pct = 100.0 if nxt.threshold <= 0 else min(100.0, round(score / nxt.threshold * 100, 2))
    return {
        "current_level": current_level,
        "score": score,
        "is_max_level": False,
        "next_level": nxt.level,
        "required": nxt.threshold,
        "remaining": remaining,
        "progress_pct": pct,
    }


async def viewer_rules(db: AsyncSession) -> list[LevelRule]:
    rows = await db.execute(
        select(ViewerLevelRule).where(ViewerLevelRule.active.is_(True)).order_by(ViewerLevelRule.level)
    )
    return [
        LevelRule(r.level, r.min_points, bool(r.active), int(r.reward_coins or 0))
        for r in rows.scalars().all()
    ]


async def streamer_rules(db: AsyncSession, streamer_id: int, current_level: int) -> list[LevelRule]:
    # 主播专属规则优先；没有更高一级的专属规则时才用全局表
    own = await db.execute(
        select(StreamerLevelRule)
        .where(StreamerLevelRule.active.is_(True), StreamerLevelRule.streamer_id == streamer_id)
        .order_by(StreamerLevelRule.level)
    )
    rules = own.scalars().all()
    if not any(r.level > current_level for r in rules):
        glob = await db.execute(
            select(StreamerLevelRule)
            .where(StreamerLevelRule.active.is_(True), StreamerLevelRule.streamer_id.is_(None))
            .order_by(StreamerLevelRule.level)
        )
        rules = glob.scalars().all()
    return [LevelRule(r.level, r.min_hours, bool(r.active)) for r in rules]
