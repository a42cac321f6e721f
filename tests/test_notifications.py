"""
Tests for notification builders, best-effort dispatch and the Expo notifier.
"""

from __future__ import annotations

import asyncio

import pytest
import requests

from core.access.notifications import (
    EXPO_PUSH_URL,
    USERS_COLLECTION,
    ExpoPushNotifier,
    LoggingNotifier,
    Notifier,
    Notification,
    build_creation_notifications,
    build_status_notifications,
    dispatch_best_effort,
)
from core.models import AccessRequest, AccessStatus, RequestType


def make_request(**overrides):
    fields = dict(
        id="req-1",
        condo_id="C1",
        status=AccessStatus.PENDING,
        resident_id="R1",
        driver_id="D1",
        unit="101",
        block="A",
        driver_name="Carlos Pereira",
        created_by="D1",
    )
    fields.update(overrides)
    return AccessRequest(**fields)


class TestBuilders:

    def test_creation_skips_creator(self):
        messages = build_creation_notifications(make_request())
        assert [m.target_actor_id for m in messages] == ["R1", "C1"]
        assert all(m.data == {"request_id": "req-1", "type": "new_request"} for m in messages)
        assert "Carlos Pereira" in messages[0].body

    def test_creation_without_resident_goes_to_gatehouse(self):
        messages = build_creation_notifications(make_request(resident_id=None))
        assert [m.target_actor_id for m in messages] == ["C1"]

    def test_status_change_skips_actor(self):
        messages = build_status_notifications(make_request(), AccessStatus.AUTHORIZED, "R1")
        assert [m.target_actor_id for m in messages] == ["D1", "C1"]
        assert messages[0].title == "Access authorized"
        assert messages[0].data["status"] == "authorized"

    def test_delivery_subject(self):
        request = make_request(type=RequestType.DELIVERY, driver_name=None)
        messages = build_status_notifications(request, AccessStatus.ARRIVED, "C1")
        assert messages[0].body.startswith("Delivery for")


class RecordingSink(Notifier):

    def __init__(self, results):
        self.results = dict(results)

    async def notify(self, target_actor_id, title, body, data):
        result = self.results[target_actor_id]
        if isinstance(result, BaseException):
            raise result
        return result


class TestDispatch:

    def test_counts_delivered(self):
        sink = RecordingSink({"a": True, "b": False, "c": True})
        batch = [Notification(t, "t", "b") for t in ("a", "b", "c")]
        assert asyncio.run(dispatch_best_effort(sink, batch)) == 2

    def test_failures_are_swallowed(self, caplog):
        sink = RecordingSink({"a": RuntimeError("boom"), "b": True})
        batch = [Notification(t, "t", "b") for t in ("a", "b")]

        assert asyncio.run(dispatch_best_effort(sink, batch)) == 1
        assert "Notification to a failed" in caplog.text

    def test_cancelled_send_is_not_delivered(self, caplog):
        sink = RecordingSink({"a": asyncio.CancelledError(), "b": True})
        batch = [Notification(t, "t", "b") for t in ("a", "b")]

        assert asyncio.run(dispatch_best_effort(sink, batch)) == 1
        assert "Notification to a failed" in caplog.text

    def test_empty_batch(self):
        assert asyncio.run(dispatch_best_effort(LoggingNotifier(), [])) == 0


# =============================================================================
# Expo
# =============================================================================


class StubResponse:

    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class StubSession:

    def __init__(self, response):
        self.response = response
        self.posts = []
        self.headers = {}

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json})
        return self.response


@pytest.fixture
def token_store(store):
    asyncio.run(store.create_with_id(USERS_COLLECTION, "R1", {"notification_token": "ExponentPushToken[abc]"}))
    return store


class TestExpoPushNotifier:

    def test_sends_to_registered_token(self, token_store):
        session = StubSession(StubResponse({"data": {"status": "ok", "id": "t-1"}}))
        notifier = ExpoPushNotifier(token_store, session=session)

        delivered = asyncio.run(notifier.notify("R1", "Title", "Body", {"request_id": "req-1"}))

        assert delivered is True
        post = session.posts[0]
        assert post["url"] == EXPO_PUSH_URL
        assert post["json"]["to"] == "ExponentPushToken[abc]"
        assert post["json"]["data"] == {"request_id": "req-1"}

    def test_no_token_is_not_sent(self, token_store):
        session = StubSession(StubResponse({}))
        notifier = ExpoPushNotifier(token_store, session=session)

        assert asyncio.run(notifier.notify("D1", "Title", "Body", {})) is False
        assert session.posts == []

    def test_rejected_ticket(self, token_store):
        session = StubSession(StubResponse({"data": {"status": "error", "message": "DeviceNotRegistered"}}))
        notifier = ExpoPushNotifier(token_store, session=session)
        assert asyncio.run(notifier.notify("R1", "Title", "Body", {})) is False

    def test_http_error_raises(self, token_store):
        notifier = ExpoPushNotifier(token_store, session=StubSession(StubResponse({}, status_code=500)))
        with pytest.raises(requests.HTTPError):
            asyncio.run(notifier.notify("R1", "Title", "Body", {}))
