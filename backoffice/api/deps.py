from typing import Annotated, Optional
import logging

from fastapi import Depends, HTTPException, Path
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.authorization import AuthorizationResult, authorize_business
from backoffice.database import get_db


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; a missing header is reported by the authorizer
security = HTTPBearer(auto_error=False)


async def get_authorization(
    business_id: Annotated[str, Path(min_length=1, max_length=64)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthorizationResult:
    """Ask the authorizer whether the bearer may act on ``business_id``."""
    token = credentials.credentials if credentials else None
    return authorize_business(token, business_id)


async def require_actor(
    auth: Annotated[AuthorizationResult, Depends(get_authorization)],
) -> str:
    """Return the actor id of an authorised request, or fail it."""
    if not auth.authorised:
        raise HTTPException(
            status_code=auth.status or 403,
            detail=auth.error or "Not authorised",
            headers={"WWW-Authenticate": "Bearer"} if auth.status == 401 else None,
        )
    return auth.actor_id


DB = Annotated[AsyncSession, Depends(get_db)]
Actor = Annotated[str, Depends(require_actor)]
BusinessId = Annotated[str, Path(min_length=1, max_length=64)]
