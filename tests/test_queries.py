from datetime import datetime, timedelta

from app.errors import NotFound
from app.services import queries, sessions
from tests.support import DatabaseTestCase

T0 = datetime(2024, 5, 1, 20, 0, 0)


class StreamQueryTests(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.alice = await self.make_streamer("alice")
        self.bob = await self.make_streamer("bob")

    async def go_live(self, streamer, started_at, title="live"):
        async with self.Session() as db:
            return await sessions.create_stream(db, streamer_id=streamer.id, title=title, started_at=started_at)

    async def stop(self, streamer, stream_id, ended_at):
        async with self.Session() as db:
            return await sessions.stop_session(
                db, stream_id=stream_id, streamer_id=streamer.id, ended_at=ended_at, broadcaster=self.broadcaster,
            )

    async def test_live_feed_newest_first(self):
        early = await self.go_live(self.alice, T0, title="早场")
        late = await self.go_live(self.bob, T0 + timedelta(hours=1), title="晚场")
        ended = await self.go_live(self.bob, T0 + timedelta(hours=2))
        await self.stop(self.bob, ended.stream_id, T0 + timedelta(hours=3))

        async with self.Session() as db:
            feed = await queries.live_streams(db)

        self.assertEqual([s.id for s in feed], [late.stream_id, early.stream_id])
        self.assertEqual(feed[0].streamer_name, "bob")
        self.assertEqual(feed[0].avatar_url, "https://img.test/bob.png")
        self.assertEqual(feed[0].view_url, late.view_url)
        self.assertFalse(hasattr(feed[0], "push_url"))

        async with self.Session() as db:
            self.assertEqual(len(await queries.live_streams(db, limit=1)), 1)

    async def test_detail_shows_push_url_only_to_owner(self):
        created = await self.go_live(self.alice, T0)

        async with self.Session() as db:
            public = await queries.stream_detail(db, created.stream_id)
            stranger = await queries.stream_detail(db, created.stream_id, account_id=self.bob.account_id)
            owner = await queries.stream_detail(db, created.stream_id, account_id=self.alice.account_id)

        for detail in (public, stranger):
            self.assertIsNone(detail.stream_key)
            self.assertIsNone(detail.push_url)
            self.assertEqual(detail.view_url, created.view_url)
        self.assertEqual(owner.stream_key, created.stream_key)
        self.assertEqual(owner.push_url, created.push_url)
        self.assertEqual(owner.streamer_name, "alice")
        self.assertEqual(owner.status, "live")

    async def test_detail_unknown_stream(self):
        async with self.Session() as db:
            with self.assertRaises(NotFound):
                await queries.stream_detail(db, 999)

    async def test_dashboard(self):
        async with self.Session() as db:
            idle = await queries.streamer_dashboard(db, self.alice.id)
        self.assertEqual(idle.name, "alice")
        self.assertEqual(idle.account_id, self.alice.account_id)
        self.assertEqual(idle.level, 1)
        self.assertIsNone(idle.live_stream_id)

        created = await self.go_live(self.alice, T0)
        async with self.Session() as db:
            live = await queries.streamer_dashboard(db, self.alice.id)
        self.assertEqual(live.live_stream_id, created.stream_id)

        await self.stop(self.alice, created.stream_id, T0 + timedelta(hours=2))
        async with self.Session() as db:
            after = await queries.streamer_dashboard(db, self.alice.id)
        self.assertIsNone(after.live_stream_id)
        self.assertAlmostEqual(after.hours_total, 2.0)
        self.assertEqual(after.last_stream_at, T0 + timedelta(hours=2))

    async def test_dashboard_unknown_streamer(self):
        async with self.Session() as db:
            with self.assertRaises(NotFound):
                await queries.streamer_dashboard(db, 999)
