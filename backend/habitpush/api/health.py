from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from habitpush.config import settings
from habitpush.database import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    push = "configured" if settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY and settings.VAPID_SUBJECT else "unconfigured"
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected", "push": push}
    except Exception as exc:
        return {"status": "unhealthy", "database": "disconnected", "push": push, "error": str(exc)}
