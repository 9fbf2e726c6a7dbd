"""
VAPID key management and token signing (RFC 8292).

The push service identifies us by the ``k=`` public key in the Authorization
header and checks the ES256 JWT in ``t=`` against it. JWS compact
serialization wants the raw 64-byte ``r||s`` signature, while ``cryptography``
hands back DER, so every signature goes through ``der_to_raw_signature``.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlsplit

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from jose.utils import base64url_decode, base64url_encode

logger = logging.getLogger(__name__)

VAPID_TOKEN_TTL = timedelta(hours=12)
MAX_VAPID_TOKEN_TTL = timedelta(hours=24)

_COORDINATE_SIZE = 32  # P-256


class VapidConfigError(RuntimeError):
    """VAPID keys are missing or unusable. Fatal for a whole dispatch run."""


@dataclass(frozen=True)
class VapidConfig:
    public_key: str  # base64url uncompressed point, sent verbatim as k=
    private_key: ec.EllipticCurvePrivateKey
    subject: str
    token_ttl: timedelta = VAPID_TOKEN_TTL


# ── Key loading ───────────────────────────────────────────────────────────────


def _b64url_to_bytes(value: str) -> bytes:
    return base64url_decode(value.strip().encode("ascii"))


def _load_private_key(value: str) -> ec.EllipticCurvePrivateKey:
    value = value.strip()
    if value.startswith("-----BEGIN"):
        key = serialization.load_pem_private_key(value.encode(), password=None)
    else:
        raw = _b64url_to_bytes(value)
        if len(raw) == _COORDINATE_SIZE:
            # web-push CLI format: the bare private scalar
            key = ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())
        else:
            key = serialization.load_der_private_key(raw, password=None)

    if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(key.curve, ec.SECP256R1):
        raise VapidConfigError("VAPID private key must be a P-256 EC key")
    return key


def public_key_bytes(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    """Uncompressed (0x04 || X || Y) public point for a private key."""
    return private_key.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


def load_vapid_config(settings) -> VapidConfig:
    """Build the VAPID config from settings, failing fast on anything unusable."""
    missing = [
        name
        for name in ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "VAPID_SUBJECT")
        if not getattr(settings, name, "")
    ]
    if missing:
        raise VapidConfigError(f"VAPID keys not configured: {', '.join(missing)}")

    try:
        private_key = _load_private_key(settings.VAPID_PRIVATE_KEY)
        declared_public = _b64url_to_bytes(settings.VAPID_PUBLIC_KEY)
    except (ValueError, TypeError) as exc:
        raise VapidConfigError(f"Invalid VAPID key material: {exc}") from exc

    if declared_public != public_key_bytes(private_key):
        raise VapidConfigError("VAPID_PUBLIC_KEY does not match VAPID_PRIVATE_KEY")

    subject = settings.VAPID_SUBJECT
    if not subject.startswith(("mailto:", "https:")):
        logger.warning("VAPID_SUBJECT %r is neither a mailto: nor an https: URI", subject)

    ttl = timedelta(seconds=getattr(settings, "VAPID_TOKEN_TTL_SECONDS", int(VAPID_TOKEN_TTL.total_seconds())))
    if ttl <= timedelta(0) or ttl > MAX_VAPID_TOKEN_TTL:
        raise VapidConfigError("VAPID_TOKEN_TTL_SECONDS must be between 1 and 86400")

    return VapidConfig(
        public_key=settings.VAPID_PUBLIC_KEY.strip(),
        private_key=private_key,
        subject=subject,
        token_ttl=ttl,
    )


# ── Token ─────────────────────────────────────────────────────────────────────


def endpoint_audience(endpoint: str) -> str:
    """The ``aud`` claim for a push endpoint: its scheme and host (with port)."""
    parts = urlsplit(endpoint)
    if parts.scheme not in ("https", "http") or not parts.netloc:
        raise ValueError(f"Not a push endpoint URL: {endpoint!r}")
    return f"{parts.scheme}://{parts.netloc}"


def der_to_raw_signature(signature: bytes) -> bytes:
    """
    Convert an ECDSA P-256 signature to the 64-byte ``r||s`` JWS form.

    A signature that is already 64 bytes is returned unchanged. DER integers
    may carry a leading zero byte or be shorter than 32 bytes; both are
    normalised to exactly 32 bytes each.
    """
    if len(signature) == 2 * _COORDINATE_SIZE:
        return signature
    r, s = decode_dss_signature(signature)
    return r.to_bytes(_COORDINATE_SIZE, "big") + s.to_bytes(_COORDINATE_SIZE, "big")


def _encode_segment(data: dict) -> bytes:
    return base64url_encode(json.dumps(data, separators=(",", ":")).encode())


def create_vapid_token(
    audience: str,
    private_key: ec.EllipticCurvePrivateKey,
    subject: str,
    expires_in: timedelta = VAPID_TOKEN_TTL,
    now: datetime | None = None,
) -> str:
    """Sign a compact ES256 JWT for one push-service audience."""
    issued_at = now or datetime.now(timezone.utc)
    header = {"typ": "JWT", "alg": "ES256"}
    claims = {
        "aud": audience,
        "exp": int((issued_at + expires_in).timestamp()),
        "sub": subject,
    }
    signing_input = _encode_segment(header) + b"." + _encode_segment(claims)
    signature = private_key.sign(signing_input, ec.ECDSA(hashes.SHA256()))
    return (signing_input + b"." + base64url_encode(der_to_raw_signature(signature))).decode("ascii")


def vapid_authorization(endpoint: str, config: VapidConfig) -> str:
    """``Authorization`` header value for a delivery to ``endpoint``."""
    token = create_vapid_token(
        endpoint_audience(endpoint),
        config.private_key,
        config.subject,
        expires_in=config.token_ttl,
    )
    return f"vapid t={token}, k={config.public_key}"
