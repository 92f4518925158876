import tempfile
import unittest
from pathlib import Path

from sqlalchemy import func, select

from app.database import build_engine, build_sessionmaker
from models.coins import CoinPackage
from models.gift import Gift
from models.level import StreamerLevelRule, ViewerLevelRule
from scripts.reset_db import (
    DEFAULT_GIFTS,
    DEFAULT_PACKAGES,
    DEFAULT_STREAMER_LEVELS,
    DEFAULT_VIEWER_LEVELS,
    recreate_db,
)


class RecreateDbTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "seed.db"

    async def asyncTearDown(self):
        self._tmp.cleanup()

    async def counts(self):
        engine = build_engine(f"sqlite+aiosqlite:///{self.path}")
        try:
            async with build_sessionmaker(engine)() as db:
                result = {}
                for model in (ViewerLevelRule, StreamerLevelRule, CoinPackage, Gift):
                    result[model] = (await db.execute(select(func.count()).select_from(model))).scalar_one()
                return result
        finally:
            await engine.dispose()

    async def test_seeds_default_catalog(self):
        path = await recreate_db(self.path)
        self.assertEqual(path, self.path)
        counts = await self.counts()
        self.assertEqual(counts[ViewerLevelRule], len(DEFAULT_VIEWER_LEVELS))
        self.assertEqual(counts[StreamerLevelRule], len(DEFAULT_STREAMER_LEVELS))
        self.assertEqual(counts[CoinPackage], len(DEFAULT_PACKAGES))
        self.assertEqual(counts[Gift], len(DEFAULT_GIFTS))

    async def test_recreate_replaces_existing_file(self):
        await recreate_db(self.path)
        await recreate_db(self.path)
        counts = await self.counts()
        self.assertEqual(counts[Gift], len(DEFAULT_GIFTS))
