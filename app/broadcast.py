# 直播间实时事件（SSE）分发
# 订阅表只存在于当前进程：导入时创建，订阅时加入，断开时移除；重启后客户端需重新订阅
import asyncio
import json
import logging
import threading
from typing import AsyncIterator, Dict, Set

from fastapi import Request
from fastapi.encoders import jsonable_encoder

from app.config import settings

logger = logging.getLogger("livegift.broadcast")

KEEPALIVE_FRAME = ":ping\n\n"


def format_event(event: str, payload) -> str:
    data = json.dumps(jsonable_encoder(payload), ensure_ascii=False)
    return f"event: {event}\ndata: {data}\n\n"


class Subscription:
    def __init__(self, stream_id: int, queue_size: int):
        self.stream_id = stream_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def send(self, frame: str) -> None:
        self.queue.put_nowait(frame)

    def close(self) -> None:
        self.closed = True
        try:
            # 唤醒正在等待的消费者
            self.queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def frames(self, heartbeat: float) -> AsyncIterator[str]:
        loop = asyncio.get_running_loop()
        next_ping = loop.time() + heartbeat
        while not self.closed:
            timeout = max(0.0, next_ping - loop.time())
            try:
                frame = await asyncio.wait_for(self.queue.get(), timeout=timeout)
            except asyncio.TimeoutError:
                next_ping = loop.time() + heartbeat
                yield KEEPALIVE_FRAME
                continue
            if frame is None or self.closed:
                return
            yield frame


class EventBroadcaster:
    def __init__(self, heartbeat_seconds: float | None = None, queue_size: int | None = None):
        self.heartbeat_seconds = heartbeat_seconds or settings.SSE_HEARTBEAT_SECONDS
        self.queue_size = queue_size or settings.SSE_QUEUE_SIZE
        self._channels: Dict[int, Set[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, stream_id: int) -> Subscription:
        sub = Subscription(stream_id, self.queue_size)
        sub.send(format_event("connected", {"stream_id": stream_id}))
        with self._lock:
            self._channels.setdefault(stream_id, set()).add(sub)
        logger.debug("SSE_SUBSCRIBE stream=%s", stream_id)
        return sub

    def unsubscribe(self, stream_id: int, sub: Subscription) -> None:
        with self._lock:
            subs = self._channels.get(stream_id)
            if subs is not None:
                subs.discard(sub)
                if not subs:
                    del self._channels[stream_id]
        sub.close()
        logger.debug("SSE_UNSUBSCRIBE stream=%s", stream_id)

    def subscriber_count(self, stream_id: int | None = None) -> int:
        with self._lock:
            if stream_id is None:
                return sum(len(s) for s in self._channels.values())
            return len(self._channels.get(stream_id, ()))

    def publish(self, stream_id: int, event: str, payload) -> None:
        # 尽力投递：某个订阅者塞不下就把它踢掉，其余照常收到，从不抛异常
        try:
            frame = format_event(event, payload)
        except (TypeError, ValueError):
            logger.exception("SSE_ENCODE_FAILED stream=%s event=%s", stream_id, event)
            return
        with self._lock:
            subs = list(self._channels.get(stream_id, ()))
        for sub in subs:
            try:
                sub.send(frame)
            except asyncio.QueueFull:
                logger.warning("SSE_DROP_SLOW stream=%s event=%s", stream_id, event)
                self.unsubscribe(stream_id, sub)

    async def events(self, stream_id: int, request=None) -> AsyncIterator[str]:
        sub = self.subscribe(stream_id)
        try:
            async for frame in sub.frames(self.heartbeat_seconds):
                if request is not None and await request.is_disconnected():
                    break
                yield frame
        finally:
            self.unsubscribe(stream_id, sub)

    def close(self) -> None:
        with self._lock:
            subs = [sub for group in self._channels.values() for sub in group]
            self._channels.clear()
        for sub in subs:
            sub.close()


event_broadcaster = EventBroadcaster()


def get_broadcaster(request: Request) -> EventBroadcaster:
    # 订阅与发布都从 app.state 取同一个实例
    return getattr(request.app.state, "broadcaster", None) or event_broadcaster


def emit(broadcaster, stream_id: int, events) -> None:
    # 提交之后调用；发布失败只记日志
    broadcaster = broadcaster or event_broadcaster
    for name, payload in events:
        try:
            broadcaster.publish(stream_id, name, payload)
        except Exception:
            logger.exception("SSE_PUBLISH_FAILED stream=%s event=%s", stream_id, name)
