import asyncio
import unittest

from app.broadcast import KEEPALIVE_FRAME, EventBroadcaster, emit, format_event
from tests.support import parse_frame


async def next_frame(sub, timeout=1.0):
    return await asyncio.wait_for(sub.queue.get(), timeout=timeout)


class EventBroadcasterTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.broadcaster = EventBroadcaster(heartbeat_seconds=0.05, queue_size=4)

    async def test_subscribe_starts_with_connected_event(self):
        sub = self.broadcaster.subscribe(7)
        event, data = parse_frame(await next_frame(sub))
        self.assertEqual(event, "connected")
        self.assertEqual(data, {"stream_id": 7})
        self.assertEqual(self.broadcaster.subscriber_count(7), 1)

    async def test_publish_reaches_only_the_channel(self):
        a = self.broadcaster.subscribe(1)
        b = self.broadcaster.subscribe(1)
        other = self.broadcaster.subscribe(2)
        for sub in (a, b, other):
            await next_frame(sub)

        self.broadcaster.publish(1, "chat_message", {"id": 5, "content": "hola"})

        for sub in (a, b):
            event, data = parse_frame(await next_frame(sub))
            self.assertEqual(event, "chat_message")
            self.assertEqual(data["content"], "hola")
        self.assertTrue(other.queue.empty())

    async def test_publish_keeps_call_order(self):
        sub = self.broadcaster.subscribe(1)
        await next_frame(sub)
        self.broadcaster.publish(1, "gift_sent", {"n": 1})
        self.broadcaster.publish(1, "viewer_level_up", {"n": 2})
        names = [parse_frame(await next_frame(sub))[0] for _ in range(2)]
        self.assertEqual(names, ["gift_sent", "viewer_level_up"])

    async def test_slow_subscriber_is_dropped_without_affecting_others(self):
        slow = self.broadcaster.subscribe(3)
        fast = self.broadcaster.subscribe(3)
        for i in range(6):
            self.broadcaster.publish(3, "chat_message", {"i": i})
            # 快的订阅者持续消费
            while not fast.queue.empty():
                fast.queue.get_nowait()
        self.assertTrue(slow.closed)
        self.assertFalse(fast.closed)
        self.assertEqual(self.broadcaster.subscriber_count(3), 1)

    async def test_unsubscribe_removes_empty_channel(self):
        sub = self.broadcaster.subscribe(9)
        self.broadcaster.unsubscribe(9, sub)
        self.assertEqual(self.broadcaster.subscriber_count(9), 0)
        self.assertEqual(self.broadcaster.subscriber_count(), 0)
        self.assertTrue(sub.closed)
        # 没有订阅者时发布不报错
        self.broadcaster.publish(9, "chat_message", {"id": 1})

    async def test_idle_connection_gets_keepalive(self):
        stream = self.broadcaster.events(4)
        first = await asyncio.wait_for(stream.__anext__(), timeout=1)
        second = await asyncio.wait_for(stream.__anext__(), timeout=1)
        await stream.aclose()
        self.assertEqual(parse_frame(first)[0], "connected")
        self.assertEqual(second, KEEPALIVE_FRAME)

    async def test_events_generator_unsubscribes_on_close(self):
        stream = self.broadcaster.events(5)
        await asyncio.wait_for(stream.__anext__(), timeout=1)
        self.assertEqual(self.broadcaster.subscriber_count(5), 1)
        await stream.aclose()
        self.assertEqual(self.broadcaster.subscriber_count(5), 0)

    async def test_events_stop_when_request_disconnects(self):
        class GoneRequest:
            async def is_disconnected(self):
                return True

        frames = [frame async for frame in self.broadcaster.events(6, GoneRequest())]
        self.assertEqual(frames, [])
        self.assertEqual(self.broadcaster.subscriber_count(6), 0)

    async def test_close_ends_every_stream(self):
        stream = self.broadcaster.events(8)
        await asyncio.wait_for(stream.__anext__(), timeout=1)
        self.broadcaster.close()
        with self.assertRaises(StopAsyncIteration):
            await stream.__anext__()
        self.assertEqual(self.broadcaster.subscriber_count(), 0)

    async def test_unserializable_payload_is_not_raised(self):
        sub = self.broadcaster.subscribe(1)
        await next_frame(sub)
        self.broadcaster.publish(1, "chat_message", object())
        self.assertTrue(sub.queue.empty())


class EmitTests(unittest.TestCase):
    def test_emit_swallows_publisher_errors(self):
        class Broken:
            def __init__(self):
                self.calls = 0

            def publish(self, stream_id, event, payload):
                self.calls += 1
                raise RuntimeError("socket gone")

        broken = Broken()
        emit(broken, 1, [("gift_sent", {}), ("viewer_level_up", {})])
        self.assertEqual(broken.calls, 2)

    def test_format_event(self):
        frame = format_event("gift_sent", {"coins": 40})
        self.assertEqual(frame, 'event: gift_sent\ndata: {"coins": 40}\n\n')
