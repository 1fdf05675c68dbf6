from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Iterable, Optional, Set

from loguru import logger


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_sse(message: Dict[str, Any]) -> str:
    return f"data: {json.dumps(message, default=str)}\n\n"


def connected_message() -> Dict[str, Any]:
    return {
        "type": "connected",
        "timestamp": _now_iso(),
        "message": "Real-time notifications connected",
    }


def heartbeat_message() -> Dict[str, Any]:
    return {"type": "heartbeat", "timestamp": _now_iso()}


def notification_message(notification: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "notification", "data": notification, "timestamp": _now_iso()}


@dataclass(eq=False)
class Subscription:
    user_id: str
    queue: asyncio.Queue
    loop: asyncio.AbstractEventLoop
    dropped: int = field(default=0)


class NotificationBroker:
    """
    Fan-out of notifications to users holding an open event stream.

    One user may hold several streams (tabs, devices). Publishing is safe from
    worker threads: delivery is always scheduled on the subscriber's own loop.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscriptions: Dict[str, Set[Subscription]] = {}
        self._lock = threading.Lock()

    # ----------------------------
    # connection registry
    # ----------------------------
    def subscribe(self, user_id: str) -> Subscription:
        sub = Subscription(
            user_id=user_id,
            queue=asyncio.Queue(maxsize=self.queue_size),
            loop=asyncio.get_running_loop(),
        )
        with self._lock:
            self._subscriptions.setdefault(user_id, set()).add(sub)
        logger.info(f"SSE subscribed | user={user_id}")
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(sub.user_id)
            if not subs:
                return
            subs.discard(sub)
            if not subs:
                del self._subscriptions[sub.user_id]
        logger.info(f"SSE unsubscribed | user={sub.user_id}")

    def connected_users_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def is_user_connected(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._subscriptions

    # ----------------------------
    # publishing
    # ----------------------------
    def publish_to_user(self, user_id: str, notification: Dict[str, Any]) -> bool:
        with self._lock:
            subs = list(self._subscriptions.get(user_id, ()))

        if not subs:
            return False

        message = notification_message(notification)
        for sub in subs:
            self._dispatch(sub, message)
        return True

    def publish_to_users(self, user_ids: Iterable[str], notification: Dict[str, Any]) -> int:
        return sum(1 for uid in user_ids if self.publish_to_user(uid, notification))

    def _dispatch(self, sub: Subscription, message: Dict[str, Any]) -> None:
        try:
            running: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is sub.loop:
            self._deliver(sub, message)
            return

        try:
            sub.loop.call_soon_threadsafe(self._deliver, sub, message)
        except RuntimeError:
            # loop already closed; the stream is gone
            logger.warning(f"SSE dispatch to closed loop | user={sub.user_id}")
            self.unsubscribe(sub)

    def _deliver(self, sub: Subscription, message: Dict[str, Any]) -> None:
        try:
            sub.queue.put_nowait(message)
        except asyncio.QueueFull:
            sub.dropped += 1
            logger.warning(f"SSE queue full, dropping message | user={sub.user_id} dropped={sub.dropped}")

    # ----------------------------
    # stream
    # ----------------------------
    async def stream(self, user_id: str, heartbeat_seconds: float = 30.0) -> AsyncIterator[str]:
        sub = self.subscribe(user_id)
        try:
            yield format_sse(connected_message())

            while True:
                try:
                    message = await asyncio.wait_for(sub.queue.get(), timeout=heartbeat_seconds)
                except asyncio.TimeoutError:
                    message = heartbeat_message()
                yield format_sse(message)
        finally:
            self.unsubscribe(sub)
