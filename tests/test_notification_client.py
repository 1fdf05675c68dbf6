"""
Unit tests for RealtimeNotificationClient against a mocked event stream.
"""

import asyncio
import json

import httpx
import pytest

from app.services.notification_client import ConnectionStatus, RealtimeNotificationClient

pytestmark = pytest.mark.asyncio


def _frame(message: dict) -> bytes:
    return f"data: {json.dumps(message)}\n\n".encode()


def _stream_response(*messages: dict) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=b"".join(_frame(m) for m in messages),
    )


NOTIFICATION = {"id": "n1", "title": "Inspection Scheduled", "message": "..."}


async def test_receives_notifications_and_stops_after_retries():
    seen_headers = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_headers.append(request.headers.get("authorization"))
        return _stream_response(
            {"type": "connected", "message": "Real-time notifications connected"},
            {"type": "heartbeat"},
            {"type": "notification", "data": NOTIFICATION},
        )

    received = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = RealtimeNotificationClient(
            "http://test",
            token="tok",
            on_notification=received.append,
            max_reconnect_attempts=0,
            base_delay=0,
            client=http,
        )
        await client.run()

    assert received == [NOTIFICATION]
    assert client.last_notification == NOTIFICATION
    assert client.status == ConnectionStatus.DISCONNECTED
    assert seen_headers == ["Bearer tok"]


async def test_reconnects_after_connection_error():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        if len(calls) == 2:
            return _stream_response({"type": "notification", "data": NOTIFICATION})
        return httpx.Response(503, request=request)

    received = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = RealtimeNotificationClient(
            "http://test/",
            token="tok",
            on_notification=received.append,
            max_reconnect_attempts=1,
            base_delay=0,
            client=http,
        )
        await client.run()

    # refused -> retry -> stream (counter reset) -> ended -> retry -> 503 -> give up
    assert calls == ["/v1/notifications/stream"] * 3
    assert received == [NOTIFICATION]
    assert client.status == ConnectionStatus.DISCONNECTED


async def test_backoff_doubles_each_attempt(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("app.services.notification_client.asyncio.sleep", fake_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = RealtimeNotificationClient("http://test", token="tok", client=http)
        await client.run()

    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0]
    assert client.reconnect_attempts == 5


async def test_malformed_and_unknown_lines_are_ignored():
    client = RealtimeNotificationClient("http://test", token="tok")

    client.handle_line("data: {not json")
    client.handle_line(": comment")
    client.handle_line("")
    client.handle_line('data: {"type": "error", "message": "boom"}')
    assert client.last_notification is None

    client.handle_line('data: {"type": "notification", "data": {"id": "x"}}')
    assert client.last_notification == {"id": "x"}


async def test_non_object_payload_is_skipped_without_ending_stream():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=b"data: 5\n\ndata: [1, 2]\n\n" + _frame({"type": "notification", "data": NOTIFICATION}),
        )

    received = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = RealtimeNotificationClient(
            "http://test",
            token="tok",
            on_notification=received.append,
            max_reconnect_attempts=0,
            base_delay=0,
            client=http,
        )
        await client.run()

    assert received == [NOTIFICATION]
    assert client.status == ConnectionStatus.DISCONNECTED


async def test_failing_callback_does_not_stop_delivery():
    second = {"id": "n2", "title": "Payment Received", "message": "..."}

    def handler(request: httpx.Request) -> httpx.Response:
        return _stream_response(
            {"type": "notification", "data": NOTIFICATION},
            {"type": "notification", "data": second},
        )

    received = []

    def on_notification(notification):
        received.append(notification)
        if notification["id"] == "n1":
            raise ValueError("ui failed")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = RealtimeNotificationClient(
            "http://test",
            token="tok",
            on_notification=on_notification,
            max_reconnect_attempts=0,
            base_delay=0,
            client=http,
        )
        await client.run()

    assert received == [NOTIFICATION, second]
    assert client.last_notification == second
    assert client.status == ConnectionStatus.DISCONNECTED


async def test_disconnect_cancels_running_stream():
    opened = asyncio.Event()

    async def endless_stream():
        opened.set()
        yield _frame({"type": "connected"})
        while True:
            await asyncio.sleep(0.01)
            yield b": keepalive\n\n"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=endless_stream())

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = RealtimeNotificationClient("http://test", token="tok", client=http)
        task = client.start()
        await asyncio.wait_for(opened.wait(), timeout=1)
        for _ in range(100):
            if client.is_connected:
                break
            await asyncio.sleep(0.01)
        assert client.is_connected

        await client.disconnect()

    assert task.cancelled()
    assert client.status == ConnectionStatus.DISCONNECTED
    assert client.reconnect_attempts == 0
