"""
Web Push subscription management.

GET    /push/vapid-public-key  — return the VAPID public key for frontend subscription
POST   /push/subscribe          — upsert a push subscription for the current user
DELETE /push/unsubscribe        — remove a push subscription
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from habitpush.api.deps import get_current_user_id
from habitpush.config import settings
from habitpush.database import get_db
from habitpush.schemas.push import PushSubscribeRequest, UnsubscribeRequest, VapidPublicKeyResponse
from habitpush.services import subscription_store

router = APIRouter(prefix="/push", tags=["push"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key() -> VapidPublicKeyResponse:
    """Return the VAPID public key so the frontend can subscribe."""
    public_key = settings.VAPID_PUBLIC_KEY.strip()
    if not public_key:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="VAPID key not configured")
    return VapidPublicKeyResponse(publicKey=public_key)


@router.post("/subscribe")
def subscribe(
    data: PushSubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> dict:
    """Upsert a browser push subscription for the current user."""
    subscription_store.upsert_subscription(db, user_id, data.endpoint, data.keys.p256dh, data.keys.auth)
    return {"status": "subscribed"}


@router.delete("/unsubscribe")
def unsubscribe(
    data: UnsubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> dict:
    """Remove a push subscription."""
    subscription_store.delete_subscription(db, user_id, data.endpoint)
    return {"status": "unsubscribed"}
