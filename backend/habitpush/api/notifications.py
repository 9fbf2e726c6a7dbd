"""
Dispatch trigger.

POST /notifications/dispatch — run one scheduling pass (called by cron every few minutes)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from habitpush.api.deps import require_dispatch_secret
from habitpush.database import get_db
from habitpush.schemas.push import DispatchReportResponse
from habitpush.services.dispatch import run_dispatch

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post(
    "/dispatch",
    response_model=DispatchReportResponse,
    dependencies=[Depends(require_dispatch_secret)],
)
def dispatch_notifications(db: Session = Depends(get_db)) -> DispatchReportResponse:
    """Send every reminder due right now. VAPID misconfiguration surfaces as a 500."""
    report = run_dispatch(db)
    return DispatchReportResponse(**report.as_dict())
