# storefront/services/notification_service.py
import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import NOTIFICATION_TIMEOUT_SECONDS, NOTIFICATION_ANDROID_CHANNEL
from storefront.models.order_models import Order
from storefront.notifications.fcm_push import FcmPushAdapter
from storefront.notifications.messages import PushMessage
from storefront.notifications.push_port import PushPort
from storefront.services.user_service import get_admin_device_tokens

logger = logging.getLogger(__name__)

NEW_ORDER = "new_order"
STATUS_UPDATE = "status_update"
EVENT_TYPES = (NEW_ORDER, STATUS_UPDATE)


class NotificationResult(BaseModel):
    success_count: int = 0
    failure_count: int = 0


def build_message(event_type: str, order: Order) -> PushMessage:
    number = order.order_id if order.order_id is not None else "N/A"
    data = {
        "type": event_type,
        "order_id": str(order.id),
        "order_number": str(number),
    }

    if event_type == NEW_ORDER:
        title = "New Order Received"
        body = f"Order #{number} from {order.customer_name} has been received."
        data["total_amount"] = f"{order.total_amount:.2f}"
    elif event_type == STATUS_UPDATE:
        title = "Order Status Updated"
        body = f"Order #{number} status changed to {order.status}."
        data["status"] = str(order.status)
    else:
        raise ValueError(f"Unknown notification event: {event_type}")

    return PushMessage(
        title=title,
        body=body,
        data=data,
        channel_id=NOTIFICATION_ANDROID_CHANNEL,
    )


class NotificationDispatcher:
    """
    Fans one order event out to every admin device.

    Each token gets its own send, all in flight at once and each bounded by
    ``timeout``. One bad token never affects the others, and ``notify`` never
    raises: callers treat notification as a best-effort step.
    """

    def __init__(self, push: PushPort, timeout: float = NOTIFICATION_TIMEOUT_SECONDS):
        self.push = push
        self.timeout = timeout

    async def _send_one(self, token: str, message: PushMessage) -> str:
        return await asyncio.wait_for(self.push.send(token, message), timeout=self.timeout)

    async def deliver(self, tokens: List[str], message: PushMessage) -> NotificationResult:
        results = await asyncio.gather(
            *(self._send_one(token, message) for token in tokens),
            return_exceptions=True,
        )

        result = NotificationResult()
        for token, outcome in zip(tokens, results):
            if isinstance(outcome, BaseException):
                result.failure_count += 1
                logger.warning("Push to token %s... failed: %r", token[:12], outcome)
            else:
                result.success_count += 1
        return result

    async def notify(self, db: AsyncSession, event_type: str, order: Order) -> NotificationResult:
        try:
            if not self.push.is_ready:
                logger.error("Push transport is not configured, skipping %s notification", event_type)
                return NotificationResult()

            tokens = await get_admin_device_tokens(db)
            if not tokens:
                logger.info("No admin tokens found to notify about %s", event_type)
                return NotificationResult()

            message = build_message(event_type, order)
            result = await self.deliver(tokens, message)
            logger.info(
                "%s notifications for order #%s: %d successful, %d failed",
                event_type, order.order_id, result.success_count, result.failure_count,
            )
            return result
        except Exception:
            logger.exception("Error sending %s notification for order %s", event_type, order.id)
            return NotificationResult()


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency; one dispatcher (and one firebase app) per process."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(FcmPushAdapter())
    return _dispatcher


async def close_dispatcher():
    """Release the process-wide push transport; called on application shutdown."""
    global _dispatcher
    if _dispatcher is not None:
        await _dispatcher.push.aclose()
        _dispatcher = None
