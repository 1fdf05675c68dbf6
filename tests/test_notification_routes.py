"""
API tests for /v1/notifications and /v1/admin.
"""

import json

import pytest

from app.api.routes.notifications import stream_notifications
from app.main import app
from app.schemas.enums import NotificationType, UserRole
from app.services import notifications as service
from app.services.sse import NotificationBroker, connected_message, format_sse


@pytest.fixture
def admin(create_user):
    return create_user(role=UserRole.PLATFORM_ADMIN)


@pytest.fixture
def member(create_user):
    return create_user(role=UserRole.CLIENT)


def _seed(db, user, count=3):
    return [
        service.notify_inspection_scheduled(db, user.id, f"insp-{i}", f"Flat {i}")
        for i in range(count)
    ]


def test_list_paginates_newest_first(client, db, member, auth_headers):
    created = _seed(db, member, count=3)

    resp = client.get("/v1/notifications", params={"limit": 2}, headers=auth_headers(member))
    assert resp.status_code == 200
    body = resp.json()

    assert [n["id"] for n in body["notifications"]] == [created[2].id, created[1].id]
    assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
    assert body["unread_count"] == 3
    assert body["notifications"][0]["type"] == "INSPECTION_SCHEDULED"
    assert body["notifications"][0]["message"] == 'Your inspection for "Flat 2" has been scheduled successfully.'


def test_list_only_returns_own_notifications(client, db, member, admin, auth_headers):
    _seed(db, admin, count=2)
    body = client.get("/v1/notifications", headers=auth_headers(member)).json()
    assert body["notifications"] == []
    assert body["unread_count"] == 0


def test_mark_read_unread_and_ownership(client, db, member, admin, auth_headers):
    [note] = _seed(db, member, count=1)

    resp = client.put(f"/v1/notifications/{note.id}/read", headers=auth_headers(member))
    assert resp.status_code == 200
    assert resp.json()["notification"]["read"] is True

    body = client.get("/v1/notifications", params={"unreadOnly": "true"}, headers=auth_headers(member)).json()
    assert body["notifications"] == []
    assert body["unread_count"] == 0

    resp = client.delete(f"/v1/notifications/{note.id}/read", headers=auth_headers(member))
    assert resp.json()["message"] == "Notification marked as unread"
    assert resp.json()["notification"]["read"] is False

    assert client.put(f"/v1/notifications/{note.id}/read", headers=auth_headers(admin)).status_code == 403
    assert client.put("/v1/notifications/nope/read", headers=auth_headers(member)).status_code == 404


def test_mark_all_read_invalidates_cached_count(client, db, member, auth_headers):
    _seed(db, member, count=2)
    assert client.get("/v1/notifications", headers=auth_headers(member)).json()["unread_count"] == 2

    resp = client.put("/v1/notifications/mark-all-read", headers=auth_headers(member))
    assert resp.json() == {"success": True, "message": "Marked 2 notifications as read", "updated_count": 2}

    assert client.get("/v1/notifications", headers=auth_headers(member)).json()["unread_count"] == 0


def test_create_requires_platform_admin(client, member, auth_headers):
    payload = {"user_id": member.id, "type": "SYSTEM", "title": "Hello", "message": "World"}
    resp = client.post("/v1/notifications", json=payload, headers=auth_headers(member))
    assert resp.status_code == 403


def test_admin_creates_notification(client, member, admin, auth_headers):
    payload = {
        "user_id": member.id,
        "type": "VERIFICATION_APPROVED",
        "title": "Verified",
        "message": "You are verified",
        "meta": {"source": "admin"},
    }
    resp = client.post("/v1/notifications", json=payload, headers=auth_headers(admin))
    assert resp.status_code == 200
    created = resp.json()["notification"]
    assert created["user_id"] == member.id
    assert created["meta"] == {"source": "admin"}

    body = client.get("/v1/notifications", headers=auth_headers(member)).json()
    assert [n["id"] for n in body["notifications"]] == [created["id"]]
    assert body["unread_count"] == 1


def test_create_rejects_missing_fields(client, admin, auth_headers):
    resp = client.post("/v1/notifications", json={"user_id": "x"}, headers=auth_headers(admin))
    assert resp.status_code == 422


def test_cache_stats_for_admin_only(client, admin, member, auth_headers):
    client.get("/v1/notifications", headers=auth_headers(member))

    assert client.get("/v1/admin/cache/stats", headers=auth_headers(member)).status_code == 403

    body = client.get("/v1/admin/cache/stats", headers=auth_headers(admin)).json()
    assert body["size"] == 1
    assert body["stats"]["sets"] == 1
    assert body["connected_users"] == 0


def test_create_invalidates_cached_unread_count(db, member):
    cache = app.state.cache
    cache.set(f"notifications:{member.id}", 99)

    service.create_notification(
        db, member.id, NotificationType.SYSTEM, "t", "m", cache=cache,
    )
    assert cache.get(f"notifications:{member.id}") is None


def test_templates():
    assert service.payment_received("p1", 250000)["message"] == "Payment of ₦250,000 has been received."
    assert service.payment_received("p1", 1234.5)["message"] == "Payment of ₦1,234.5 has been received."
    assert service.verification_rejected()["message"] == (
        "Your account verification was rejected. Please contact support."
    )
    assert service.verification_rejected("blurry ID")["message"] == (
        "Your account verification was rejected: blurry ID"
    )
    assert service.inquiry_received("l1", "Duplex", "Ada")["listing_id"] == "l1"


def test_bulk_notifications(db, member, admin):
    rows = service.create_bulk_notifications(
        db, [member.id, admin.id], NotificationType.SYSTEM, "Maintenance", "Tonight"
    )
    assert {r.user_id for r in rows} == {member.id, admin.id}
    assert service.count_unread(db, member.id) == 1


def test_unread_only_accepts_snake_and_camel_case(client, db, member, auth_headers):
    [first, _] = _seed(db, member, count=2)
    service.set_read(db, first.id, member.id, True)

    for params in ({"unread_only": "true"}, {"unreadOnly": "true"}):
        body = client.get("/v1/notifications", params=params, headers=auth_headers(member)).json()
        assert len(body["notifications"]) == 1
        assert body["pagination"]["total"] == 1

    body = client.get("/v1/notifications", headers=auth_headers(member)).json()
    assert body["pagination"]["total"] == 2


def test_unread_count_not_cached_when_write_lands_during_count(client, db, member, auth_headers, monkeypatch):
    _seed(db, member, count=2)
    real_count = service.count_unread

    def count_then_new_notification(session, user_id):
        count = real_count(session, user_id)
        # another request commits and invalidates before the count is stored
        service.create_notification(
            db, member.id, NotificationType.SYSTEM, "t", "m", cache=app.state.cache,
        )
        return count

    monkeypatch.setattr(service, "count_unread", count_then_new_notification)
    assert client.get("/v1/notifications", headers=auth_headers(member)).json()["unread_count"] == 2
    monkeypatch.setattr(service, "count_unread", real_count)

    assert client.get("/v1/notifications", headers=auth_headers(member)).json()["unread_count"] == 3


# =============================================================================
# STREAM
# =============================================================================

def test_stream_requires_auth(client):
    assert client.get("/v1/notifications/stream").status_code == 401
    resp = client.get("/v1/notifications/stream", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


def test_stream_serves_event_stream(client, member, auth_headers, monkeypatch):
    subscribed = []

    async def one_frame(user_id, heartbeat_seconds=30.0):
        subscribed.append(user_id)
        yield format_sse(connected_message())

    monkeypatch.setattr(app.state.broker, "stream", one_frame)

    resp = client.get("/v1/notifications/stream", headers=auth_headers(member))
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.headers["cache-control"] == "no-cache"
    assert resp.text.startswith("data: ")
    assert json.loads(resp.text[len("data: "):])["type"] == "connected"
    assert subscribed == [member.id]


@pytest.mark.asyncio
async def test_stream_route_subscribes_caller_to_broker(member):
    broker = NotificationBroker()
    resp = stream_notifications(user=member, broker=broker)

    assert resp.media_type == "text/event-stream"
    first = await resp.body_iterator.__anext__()
    assert json.loads(first[len("data: "):])["type"] == "connected"
    assert broker.is_user_connected(member.id)

    await resp.body_iterator.aclose()
    assert not broker.is_user_connected(member.id)
