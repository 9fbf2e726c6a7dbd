"""
habitpush — Web Push reminder dispatch for the habit tracker.

Routes:
  /health                          liveness + database check
  /api/push/...                    VAPID public key, subscribe, unsubscribe
  /api/notifications/dispatch      one scheduling pass (cron trigger)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from habitpush.api import health, notifications, push
from habitpush.config import settings
from habitpush.core.vapid import VapidConfigError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="habitpush",
    description="Timezone-aware habit and briefing reminders over Web Push",
    version="1.0.0",
    debug=settings.DEBUG,
)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
# Browsers reject allow_origins=["*"] combined with allow_credentials=True.
# When the wildcard is present (dev), switch to allow_origin_regex=".*".
_cors_origins = [o for o in settings.CORS_ORIGINS if o != "*"]
_cors_regex = ".*" if len(_cors_origins) < len(settings.CORS_ORIGINS) else None

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_origin_regex=_cors_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router)
app.include_router(push.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")

# ---------------------------------------------------------------------------
# Custom exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(VapidConfigError)
async def vapid_config_error_handler(request: Request, exc: VapidConfigError) -> JSONResponse:
    logger.error("Dispatch aborted: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})

