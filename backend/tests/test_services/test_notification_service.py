"""
Unit tests for the notification dispatcher and outbox

The edge function is replaced with httpx.MockTransport.
"""
import asyncio
import json

import httpx
import pytest

from storefront.core.config import Settings
from storefront.core.exceptions import NotificationDeliveryError
from storefront.services.notification_service import (
    NotificationDispatcher, NotificationOutbox, OrderStatusChanged,
)

CONFIG = Settings(
    SUPABASE_URL="https://project.supabase.test/",
    SUPABASE_ANON_KEY="anon-key",
    SUPABASE_SERVICE_ROLE_KEY="service-key",
)


def _event(**overrides):
    data = dict(
        order_id="o1",
        order_number="TRK-ABC",
        customer_email="mona@example.com",
        customer_name="Mona Adel",
        status="rejected",
        reason="Screenshot unclear",
    )
    data.update(overrides)
    return OrderStatusChanged(**data)


class RecordingHandler:
    """MockTransport handler that records requests and fails the first N"""

    def __init__(self, failures: int = 0, status_code: int = 500):
        self.failures = failures
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.requests) <= self.failures:
            return httpx.Response(self.status_code, text="boom")
        return httpx.Response(200, json={"success": True})


class TestNotificationDispatcher:

    def test_posts_payload_to_edge_function(self):
        handler = RecordingHandler()
        dispatcher = NotificationDispatcher(CONFIG, transport=httpx.MockTransport(handler))

        asyncio.run(dispatcher.send(_event()))

        [request] = handler.requests
        assert str(request.url) == "https://project.supabase.test/functions/v1/send-order-notification"
        assert request.headers["Authorization"] == "Bearer service-key"
        assert json.loads(request.content) == {
            "orderId": "o1",
            "orderNumber": "TRK-ABC",
            "customerEmail": "mona@example.com",
            "customerName": "Mona Adel",
            "status": "rejected",
            "reason": "Screenshot unclear",
        }

    def test_approved_payload_has_no_reason(self):
        payload = _event(status="approved", reason=None).to_payload()

        assert "reason" not in payload

    def test_non_2xx_raises_delivery_error(self):
        dispatcher = NotificationDispatcher(CONFIG, transport=httpx.MockTransport(RecordingHandler(failures=1)))

        with pytest.raises(NotificationDeliveryError):
            asyncio.run(dispatcher.send(_event()))

    def test_transport_error_raises_delivery_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        dispatcher = NotificationDispatcher(CONFIG, transport=httpx.MockTransport(handler))

        with pytest.raises(NotificationDeliveryError):
            asyncio.run(dispatcher.send(_event()))


class TestNotificationOutbox:

    def test_drain_sends_pending_events(self):
        handler = RecordingHandler()
        outbox = NotificationOutbox(NotificationDispatcher(CONFIG, transport=httpx.MockTransport(handler)))
        outbox.enqueue(_event(order_id="o1"))
        outbox.enqueue(_event(order_id="o2"))

        report = asyncio.run(outbox.drain())

        assert report.to_dict() == {"sent": 2, "failed": 0, "dropped": 0}
        assert outbox.pending == []

    def test_failed_event_is_retried_on_next_drain(self):
        handler = RecordingHandler(failures=1)
        outbox = NotificationOutbox(NotificationDispatcher(CONFIG, transport=httpx.MockTransport(handler)))
        outbox.enqueue(_event())

        first = asyncio.run(outbox.drain())
        second = asyncio.run(outbox.drain())

        assert first.failed == 1
        assert second.sent == 1
        assert outbox.pending == []

    def test_event_is_dropped_after_max_attempts(self):
        handler = RecordingHandler(failures=100)
        outbox = NotificationOutbox(
            NotificationDispatcher(CONFIG, transport=httpx.MockTransport(handler)),
            max_attempts=2,
        )
        outbox.enqueue(_event())

        asyncio.run(outbox.drain())
        report = asyncio.run(outbox.drain())

        assert report.dropped == 1
        assert outbox.pending == []
        assert len(handler.requests) == 2

    def test_pending_events_are_serializable(self):
        outbox = NotificationOutbox(NotificationDispatcher(CONFIG))
        outbox.enqueue(_event())

        [pending] = [event.to_dict() for event in outbox.pending]

        assert pending["attempts"] == 0
        assert pending["status"] == "rejected"
