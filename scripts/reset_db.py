import asyncio
import sys
from decimal import Decimal
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_VIEWER_LEVELS = [
    # (level, min_points, reward_coins)
    (2, 100, 10),
    (3, 500, 50),
    (4, 1500, 100),
    (5, 5000, 300),
]
DEFAULT_STREAMER_LEVELS = [
    # (level, min_hours)
    (2, 10.0),
    (3, 50.0),
    (4, 150.0),
]
DEFAULT_PACKAGES = [
    ("Starter", 100, Decimal("0.99")),
    ("Fan", 550, Decimal("4.99")),
    ("Superfan", 1200, Decimal("9.99")),
]
DEFAULT_GIFTS = [
    ("Rose", 1, 1),
    ("Heart", 10, 10),
    ("Rocket", 500, 600),
]


async def seed_defaults(session):
    # 写入默认的全局礼物、套餐和等级配置，id 由数据库分配
    from models.coins import CoinPackage
    from models.gift import Gift
    from models.level import StreamerLevelRule, ViewerLevelRule

    for level, points, reward in DEFAULT_VIEWER_LEVELS:
        session.add(ViewerLevelRule(level=level, min_points=points, reward_coins=reward, active=True))
    for level, hours in DEFAULT_STREAMER_LEVELS:
        session.add(StreamerLevelRule(streamer_id=None, level=level, min_hours=hours, active=True))
    for name, coins, price in DEFAULT_PACKAGES:
        session.add(CoinPackage(name=name, coins=coins, price=price, currency="USD", active=True))
    for name, cost, points in DEFAULT_GIFTS:
        session.add(Gift(streamer_id=None, name=name, cost_coins=cost, points=points, active=True))
    await session.commit()


async def recreate_db(db_path: Path | None = None):
    # Ensure backend root on import path
    sys.path.insert(0, str(BACKEND_ROOT))
    from app.database import build_engine, build_sessionmaker, create_tables  # type: ignore

    db_path = Path(db_path or BACKEND_ROOT / "livegift.db")
    if db_path.exists():
        db_path.unlink()
    engine = build_engine(f"sqlite+aiosqlite:///{db_path}")
    try:
        await create_tables(engine)
        async with build_sessionmaker(engine)() as session:
            await seed_defaults(session)
    finally:
        await engine.dispose()
    return db_path


if __name__ == "__main__":
    path = asyncio.run(recreate_db(Path(sys.argv[1]) if len(sys.argv) > 1 else None))
    print(f"Database recreated and seeded: {path}")
