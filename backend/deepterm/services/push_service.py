"""Web push notifications (VAPID) to a user's registered browsers."""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from pywebpush import WebPushException, webpush
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from deepterm.core.config import settings
from deepterm.core.exceptions import PushDeliveryError
from deepterm.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)

DEFAULT_ICON = "/icons/icon-192x192.png"
DEFAULT_BADGE = "/icons/icon-72x72.png"

# Push service answers for subscriptions that will never work again
GONE_STATUS_CODES = (404, 410)


class PushService:
    """Service for sending web push notifications."""

    @property
    def is_configured(self) -> bool:
        return settings.push_enabled

    async def send_push_notification(
        self,
        db: AsyncSession,
        user_id: str,
        payload: Dict[str, Any],
    ) -> Dict[str, int]:
        """
        Send `payload` ({title, body, tag, data, ...}) to every active
        subscription of a user.

        Returns sent/failed counts. Raises PushDeliveryError when the user has
        subscriptions and none of them accepted the notification.
        """
        if not self.is_configured:
            logger.debug("Web push not configured, skipping push notification")
            return {"sent": 0, "failed": 0}

        result = await db.execute(
            select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active == True,  # noqa: E712
            )
        )
        subscriptions = result.scalars().all()

        if not subscriptions:
            return {"sent": 0, "failed": 0}

        message = json.dumps({
            "title": payload["title"],
            "body": payload["body"],
            "icon": payload.get("icon") or DEFAULT_ICON,
            "badge": payload.get("badge") or DEFAULT_BADGE,
            "data": payload.get("data") or {},
            "tag": payload.get("tag"),
            "requireInteraction": payload.get("requireInteraction", False),
        })

        sent = 0
        failed = 0
        last_error: Optional[Exception] = None

        for sub in subscriptions:
            try:
                await asyncio.to_thread(
                    webpush,
                    subscription_info={
                        "endpoint": sub.endpoint,
                        "keys": {"p256dh": sub.p256dh, "auth": sub.auth},
                    },
                    data=message,
                    vapid_private_key=settings.VAPID_PRIVATE_KEY,
                    vapid_claims={"sub": f"mailto:{settings.VAPID_EMAIL}"},
                )
                sent += 1
            except WebPushException as e:
                failed += 1
                last_error = e
                status_code = e.response.status_code if e.response is not None else None
                if status_code in GONE_STATUS_CODES:
                    await self._deactivate_subscription(db, sub.id)
                logger.warning(f"Push to subscription {sub.id} failed: {e}")
            except Exception as e:
                # Network errors from the push endpoint only fail this subscription
                failed += 1
                last_error = e
                logger.warning(f"Push to subscription {sub.id} failed: {type(e).__name__}: {e}")

        logger.info(
            f"Push notification for user {user_id}: {sent} sent, {failed} failed",
            extra={"user_id": user_id, "tag": payload.get("tag")},
        )

        if sent == 0 and failed > 0:
            raise PushDeliveryError(f"All {failed} push subscriptions failed: {last_error}")

        return {"sent": sent, "failed": failed}

    async def _deactivate_subscription(self, db: AsyncSession, subscription_id: str) -> None:
        await db.execute(
            update(PushSubscription)
            .where(PushSubscription.id == subscription_id)
            .values(is_active=False)
        )
        await db.commit()
        logger.info(f"Deactivated expired push subscription {subscription_id}")


# Singleton instance
push_service = PushService()
