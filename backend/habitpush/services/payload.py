"""
Push payload encoding.

The JSON body is encrypted to the subscription's keys (RFC 8291: ECDH P-256,
HKDF, AES-128-GCM) so the ``Content-Encoding: aes128gcm`` header sent with it
is truthful. pywebpush does the record encryption; delivery and VAPID signing
stay in this package.
"""

import json
from dataclasses import dataclass

from pywebpush import WebPusher

from habitpush.services.scheduler import NotificationEvent

CONTENT_ENCODING = "aes128gcm"
CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class EncodedPayload:
    body: bytes
    content_encoding: str = CONTENT_ENCODING


def build_payload(event: NotificationEvent, icon: str, badge: str) -> dict:
    """JSON fields read by the service worker's push handler."""
    return {
        "title": event.title,
        "body": event.body,
        "tag": event.tag,
        "icon": icon,
        "badge": badge,
        "url": event.url,
    }


def encode_payload(subscription_info: dict, payload: dict) -> EncodedPayload:
    """Serialise and encrypt ``payload`` for one subscription.

    Raises ``pywebpush.WebPushException`` when the subscription keys are missing
    and ``ValueError`` when they are malformed.
    """
    data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    encoded = WebPusher(subscription_info).encode(data, content_encoding=CONTENT_ENCODING)
    return EncodedPayload(body=encoded["body"])
