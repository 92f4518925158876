import json
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

from sqlalchemy import func, select

from app.database import build_engine, build_sessionmaker, create_tables
from models.account import Account
from models.coins import CoinPackage
from models.gift import Gift
from models.level import StreamerLevelRule, ViewerLevelRule
from models.profile import StreamerProfile, ViewerProfile
from models.stream import Stream
from models.wallet import Movement, Wallet


def parse_frame(frame: str):
    """Split one SSE frame into (event, data)."""
    event, data = None, None
    for line in frame.strip().splitlines():
        if line.startswith("event: "):
            event = line[len("event: "):]
        elif line.startswith("data: "):
            data = json.loads(line[len("data: "):])
    return event, data


class RecordingBroadcaster:
    def __init__(self):
        self.published = []

    def publish(self, stream_id, event, payload):
        self.published.append((stream_id, event, payload))

    @property
    def names(self):
        return [event for _, event, _ in self.published]


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Each test gets its own SQLite file so concurrent transactions really race."""

    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.engine = build_engine(f"sqlite+aiosqlite:///{Path(self._tmp.name) / 'test.db'}", echo=False)
        await create_tables(self.engine)
        self.Session = build_sessionmaker(self.engine)
        self.broadcaster = RecordingBroadcaster()

    async def asyncTearDown(self):
        await self.engine.dispose()
        self._tmp.cleanup()

    async def _add(self, *objs):
        async with self.Session() as db:
            db.add_all(objs)
            await db.commit()
        return objs

    async def make_account(self, name="user"):
        (account,) = await self._add(Account(display_name=name, avatar_url=f"https://img.test/{name}.png"))
        return account

    async def fund(self, account_id, balance):
        async with self.Session() as db:
            wallet = Wallet(account_id=account_id, balance=balance)
            db.add(wallet)
            await db.flush()
            if balance:
                db.add(Movement(wallet_id=wallet.id, kind="recharge", amount=balance, ref_type="seed"))
            await db.commit()
        return wallet

    async def make_viewer(self, name="viewer", balance=0, points=0, level=1):
        account = await self.make_account(name)
        (viewer,) = await self._add(ViewerProfile(account_id=account.id, level=level, points=points))
        await self.fund(account.id, balance)
        return SimpleNamespace(id=viewer.id, account_id=account.id)

    async def make_streamer(self, name="streamer", balance=None):
        account = await self.make_account(name)
        (profile,) = await self._add(StreamerProfile(account_id=account.id, level=1, hours_total=0.0))
        (stream,) = await self._add(Stream(streamer_id=profile.id, title=f"{name} live"))
        if balance is not None:
            await self.fund(account.id, balance)
        return SimpleNamespace(id=profile.id, account_id=account.id, stream_id=stream.id)

    async def make_gift(self, cost, points, streamer_id=None, active=True, name="gift"):
        (gift,) = await self._add(
            Gift(streamer_id=streamer_id, name=name, cost_coins=cost, points=points, active=active)
        )
        return gift

    async def make_package(self, coins, price=Decimal("4.99"), active=True):
        (package,) = await self._add(CoinPackage(name=f"{coins} coins", coins=coins, price=price, active=active))
        return package

    async def add_viewer_rule(self, level, min_points, reward=0, active=True):
        await self._add(ViewerLevelRule(level=level, min_points=min_points, reward_coins=reward, active=active))

    async def add_streamer_rule(self, level, min_hours, streamer_id=None):
        await self._add(StreamerLevelRule(streamer_id=streamer_id, level=level, min_hours=min_hours, active=True))

    async def balance(self, account_id):
        async with self.Session() as db:
            wallet = (await db.execute(select(Wallet).where(Wallet.account_id == account_id))).scalar_one()
            movements = (await db.execute(
                select(func.coalesce(func.sum(Movement.amount), 0)).where(Movement.wallet_id == wallet.id)
            )).scalar_one()
        # 余额必须等于流水之和
        self.assertEqual(wallet.balance, movements)
        return wallet.balance

    async def get(self, model, ident):
        async with self.Session() as db:
            return await db.get(model, ident)

    async def count(self, model, *where):
        async with self.Session() as db:
            return (await db.execute(select(func.count()).select_from(model).where(*where))).scalar_one()
