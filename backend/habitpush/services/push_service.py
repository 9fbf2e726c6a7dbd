"""
Web Push delivery client.

POSTs one encrypted payload to one subscription endpoint and classifies the
push service's answer:

  2xx      → SENT
  404/410  → EXPIRED  (endpoint is gone; caller deletes the subscription)
  anything else, transport errors, signing or encryption errors → FAILED

``deliver`` never raises, so one bad subscription cannot break a batch.
There are no retries; the next dispatch run acts as the retry.
"""

import enum
import logging
from dataclasses import dataclass

import httpx

from habitpush.core.vapid import VapidConfig, vapid_authorization
from habitpush.services.payload import CONTENT_TYPE, build_payload, encode_payload
from habitpush.services.scheduler import NotificationEvent

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = frozenset({404, 410})


class DeliveryStatus(str, enum.Enum):
    SENT = "sent"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True)
class SubscriptionTarget:
    """Detached copy of a subscription row, safe to hand to worker threads."""

    endpoint: str
    p256dh: str
    auth: str

    @classmethod
    def from_model(cls, sub) -> "SubscriptionTarget":
        return cls(endpoint=sub.endpoint, p256dh=sub.p256dh, auth=sub.auth)

    def as_subscription_info(self) -> dict:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


@dataclass(frozen=True)
class DeliveryResult:
    endpoint: str
    status: DeliveryStatus
    status_code: int | None = None
    error: str | None = None


def classify_status(status_code: int) -> DeliveryStatus:
    if 200 <= status_code < 300:
        return DeliveryStatus.SENT
    if status_code in GONE_STATUS_CODES:
        return DeliveryStatus.EXPIRED
    return DeliveryStatus.FAILED


class PushDeliveryClient:
    """Sends notifications to push services over one shared ``httpx.Client``."""

    def __init__(
        self,
        vapid: VapidConfig,
        *,
        ttl: int = 86_400,
        urgency: str = "normal",
        icon: str = "/pwa-192.png",
        badge: str = "/pwa-192.png",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.vapid = vapid
        self.ttl = ttl
        self.urgency = urgency
        self.icon = icon
        self.badge = badge
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, vapid: VapidConfig, settings, http_client: httpx.Client | None = None) -> "PushDeliveryClient":
        return cls(
            vapid,
            ttl=settings.PUSH_TTL_SECONDS,
            urgency=settings.PUSH_URGENCY,
            icon=settings.PUSH_ICON,
            badge=settings.PUSH_BADGE,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
            http_client=http_client,
        )

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "PushDeliveryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def build_headers(self, endpoint: str, content_encoding: str) -> dict[str, str]:
        return {
            "Content-Type": CONTENT_TYPE,
            "Content-Encoding": content_encoding,
            "TTL": str(self.ttl),
            "Urgency": self.urgency,
            "Authorization": vapid_authorization(endpoint, self.vapid),
        }

    def deliver(self, subscription: SubscriptionTarget, event: NotificationEvent) -> DeliveryResult:
        """Deliver ``event`` to one device. Always returns a result."""
        endpoint = subscription.endpoint
        try:
            encoded = encode_payload(
                subscription.as_subscription_info(),
                build_payload(event, self.icon, self.badge),
            )
            headers = self.build_headers(endpoint, encoded.content_encoding)
        except Exception as exc:
            logger.warning("Could not prepare push for %s (%s): %s", endpoint, event.tag, exc)
            return DeliveryResult(endpoint, DeliveryStatus.FAILED, error=str(exc))

        try:
            resp = self._http.post(endpoint, content=encoded.body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Push delivery to %s failed: %s", endpoint, exc)
            return DeliveryResult(endpoint, DeliveryStatus.FAILED, error=str(exc))
        except Exception as exc:
            logger.warning("Unexpected push error for %s: %s", endpoint, exc)
            return DeliveryResult(endpoint, DeliveryStatus.FAILED, error=str(exc))

        status = classify_status(resp.status_code)
        if status is DeliveryStatus.EXPIRED:
            logger.info("Push endpoint %s is gone (HTTP %s)", endpoint, resp.status_code)
        elif status is DeliveryStatus.FAILED:
            logger.warning("Push delivery to %s rejected: HTTP %s %s", endpoint, resp.status_code, resp.text[:200])
        return DeliveryResult(endpoint, status, status_code=resp.status_code)
