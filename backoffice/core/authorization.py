"""Business-scoped authorization decisions.

The services never authenticate anyone themselves. Request handlers ask this
module whether the bearer of a token may act on a business and receive an
``AuthorizationResult`` carrying the actor id on success.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from backoffice.core.security import verify_access_token


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationResult:
    authorised: bool
    actor_id: Optional[str] = None
    error: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def allow(cls, actor_id: str) -> "AuthorizationResult":
        return cls(authorised=True, actor_id=actor_id)

    @classmethod
    def deny(cls, error: str, status: int) -> "AuthorizationResult":
        return cls(authorised=False, error=error, status=status)


def authorize_business(token: Optional[str], business_id: str) -> AuthorizationResult:
    """Check that ``token`` is a valid access token granting ``business_id``."""
    if not token:
        return AuthorizationResult.deny("Missing bearer token", 401)

    payload = verify_access_token(token)
    if payload is None:
        logger.warning("Token verification failed - invalid or expired token")
        return AuthorizationResult.deny("Could not validate credentials", 401)

    businesses = payload.get("businesses") or []
    if business_id not in businesses:
        logger.warning(f"Actor {payload['sub']} denied access to business {business_id}")
        return AuthorizationResult.deny("Not authorised for this business", 403)

    return AuthorizationResult.allow(payload["sub"])
