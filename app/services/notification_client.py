from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx
from loguru import logger

STREAM_PATH = "/v1/notifications/stream"


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class RealtimeNotificationClient:
    """
    Consumes the notification event stream and reconnects with exponential
    backoff (base_delay * 2**attempt) until max_reconnect_attempts is reached.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        on_notification: Optional[Callable[[Dict[str, Any]], None]] = None,
        max_reconnect_attempts: int = 5,
        base_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
        stream_path: str = STREAM_PATH,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.on_notification = on_notification
        self.max_reconnect_attempts = max_reconnect_attempts
        self.base_delay = base_delay
        self.stream_path = stream_path

        self.status = ConnectionStatus.DISCONNECTED
        self.last_notification: Optional[Dict[str, Any]] = None
        self.reconnect_attempts = 0

        self._client = client
        self._owns_client = client is None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    # ----------------------------
    # message handling
    # ----------------------------
    def handle_line(self, line: str) -> None:
        if not line.startswith("data:"):
            return

        raw = line[len("data:"):].strip()
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.error(f"Error parsing SSE message | raw={raw[:200]}")
            return

        if not isinstance(message, dict):
            logger.error(f"Error parsing SSE message | not an object: raw={raw[:200]}")
            return

        kind = message.get("type")
        if kind == "connected":
            logger.info("Real-time notifications connected")
        elif kind == "heartbeat":
            pass
        elif kind == "notification":
            data = message.get("data")
            if data:
                self._handle_notification(data)
        elif kind == "error":
            logger.error(f"SSE error message: {message.get('message')}")

    def _handle_notification(self, notification: Dict[str, Any]) -> None:
        self.last_notification = notification
        if self.on_notification is not None:
            try:
                self.on_notification(notification)
            except Exception:
                logger.exception("Notification callback failed")

    # ----------------------------
    # connection loop
    # ----------------------------
    async def _consume(self, client: httpx.AsyncClient) -> None:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }
        async with client.stream("GET", f"{self.base_url}{self.stream_path}", headers=headers) as resp:
            resp.raise_for_status()

            logger.info("SSE connection opened")
            self.status = ConnectionStatus.CONNECTED
            self.reconnect_attempts = 0

            async for line in resp.aiter_lines():
                self.handle_line(line)

    async def run(self) -> None:
        client = self._client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))
        try:
            while True:
                self.status = ConnectionStatus.CONNECTING
                try:
                    await self._consume(client)
                    logger.warning("SSE stream closed by server")
                except httpx.HTTPError as e:
                    logger.error(f"SSE connection error: {e!r}")
                self.status = ConnectionStatus.ERROR

                if self.reconnect_attempts >= self.max_reconnect_attempts:
                    logger.error("Max reconnection attempts reached")
                    self.status = ConnectionStatus.DISCONNECTED
                    return

                delay = self.base_delay * (2 ** self.reconnect_attempts)
                self.reconnect_attempts += 1
                logger.info(
                    f"Attempting to reconnect in {delay:.1f}s "
                    f"(attempt {self.reconnect_attempts}/{self.max_reconnect_attempts})"
                )
                await asyncio.sleep(delay)
        finally:
            if self._owns_client:
                await client.aclose()

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def disconnect(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.status = ConnectionStatus.DISCONNECTED
        self.reconnect_attempts = 0

    async def reconnect(self) -> asyncio.Task:
        await self.disconnect()
        return self.start()
