from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from habitpush.config import settings
from habitpush.core.security import user_id_from_token

security = HTTPBearer()


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    user_id = user_id_from_token(credentials.credentials)

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    return user_id


def require_dispatch_secret(x_dispatch_secret: str | None = Header(default=None)) -> None:
    """Guards the dispatch trigger when DISPATCH_SECRET is configured."""
    if settings.DISPATCH_SECRET and x_dispatch_secret != settings.DISPATCH_SECRET:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid dispatch secret")
