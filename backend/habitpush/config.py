from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:8080"]
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Web Push (VAPID); generate with: npx web-push generate-vapid-keys
    # The private key may also be a base64url PKCS#8 DER blob or a PEM string.
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = ""
    VAPID_TOKEN_TTL_SECONDS: int = 12 * 60 * 60  # RFC 8292 caps this at 24h

    # Delivery
    PUSH_TTL_SECONDS: int = 86_400  # how long the push service keeps an undelivered message
    PUSH_URGENCY: str = "normal"
    PUSH_TIMEOUT_SECONDS: float = 10.0
    PUSH_MAX_WORKERS: int = 8
    PUSH_ICON: str = "/pwa-192.png"
    PUSH_BADGE: str = "/pwa-192.png"

    # When enabled, an event already delivered for (user, tag, local date) is not sent again.
    PUSH_DEDUP_ENABLED: bool = True

    # Used for users without a stored (or with an unknown) IANA timezone
    DEFAULT_TIMEZONE: str = "America/Sao_Paulo"

    # Shared secret for the dispatch trigger endpoint. Empty disables the check.
    DISPATCH_SECRET: str = ""

    model_config = {"env_file": ".env"}


settings = Settings()
