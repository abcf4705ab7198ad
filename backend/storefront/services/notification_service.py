"""
Notification Service
Customer emails for order status changes, delivered through an outbox

The status transition commits first; it only enqueues an OrderStatusChanged
event here. Draining the outbox calls the send-order-notification edge
function. Delivery failures are logged and retried on the next drain; they
never touch the order.
"""
import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Optional

import httpx

from storefront.core.config import Settings, settings as default_settings
from storefront.core.exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)


@dataclass
class OrderStatusChanged:
    """Event emitted when an order is approved or rejected"""

    order_id: str
    order_number: str
    customer_email: str
    customer_name: str
    status: str  # 'approved' | 'rejected'
    reason: Optional[str] = None
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict:
        """Request body expected by the edge function"""
        payload = {
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "customerEmail": self.customer_email,
            "customerName": self.customer_name,
            "status": self.status,
        }
        if self.reason:
            payload["reason"] = self.reason
        return payload

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_email": self.customer_email,
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
        }


class NotificationDispatcher:
    """
    Calls the Supabase edge function that sends the email

    Args:
        config: Settings with SUPABASE_URL, key and function name
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(self, config: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or default_settings
        self.transport = transport

    @property
    def function_url(self) -> str:
        return f"{self.config.SUPABASE_URL.rstrip('/')}/functions/v1/{self.config.NOTIFICATION_FUNCTION}"

    async def send(self, event: OrderStatusChanged) -> None:
        key = self.config.SUPABASE_SERVICE_ROLE_KEY or self.config.SUPABASE_ANON_KEY
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {key}",
            "apikey": key,
        }

        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.post(
                    self.function_url,
                    json=event.to_payload(),
                    headers=headers,
                    timeout=self.config.NOTIFICATION_TIMEOUT,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise NotificationDeliveryError(
                    f"Notification function returned {e.response.status_code}: {e.response.text[:200]}"
                )
            except httpx.HTTPError as e:
                raise NotificationDeliveryError(f"Notification request failed: {e}")

        logger.info(f"Sent '{event.status}' notification for order {event.order_number}")


@dataclass
class DrainReport:
    sent: int = 0
    failed: int = 0
    dropped: int = 0

    def to_dict(self) -> dict:
        return {"sent": self.sent, "failed": self.failed, "dropped": self.dropped}


class NotificationOutbox:
    """
    In-process FIFO of pending notification events

    An event is attempted at most max_attempts times across drains, then
    dropped with an error log.
    """

    def __init__(self, dispatcher: NotificationDispatcher, max_attempts: int = 5):
        self.dispatcher = dispatcher
        self.max_attempts = max_attempts
        self._pending: Deque[OrderStatusChanged] = deque()
        self._lock = asyncio.Lock()

    def enqueue(self, event: OrderStatusChanged) -> None:
        self._pending.append(event)
        logger.debug(f"Queued '{event.status}' notification for order {event.order_number}")

    @property
    def pending(self) -> List[OrderStatusChanged]:
        return list(self._pending)

    async def drain(self) -> DrainReport:
        """Try every event pending at call time once"""
        report = DrainReport()
        async with self._lock:
            for _ in range(len(self._pending)):
                event = self._pending.popleft()
                event.attempts += 1
                try:
                    await self.dispatcher.send(event)
                    report.sent += 1
                except NotificationDeliveryError as e:
                    event.last_error = str(e)
                    if event.attempts >= self.max_attempts:
                        logger.error(
                            f"Dropping notification for order {event.order_number} "
                            f"after {event.attempts} attempts: {e}"
                        )
                        report.dropped += 1
                    else:
                        logger.warning(
                            f"Notification for order {event.order_number} failed "
                            f"(attempt {event.attempts}/{self.max_attempts}): {e}"
                        )
                        self._pending.append(event)
                        report.failed += 1
        return report
