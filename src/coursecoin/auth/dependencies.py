"""FastAPI authentication and authorization dependencies."""

from __future__ import annotations

import jwt
import structlog
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from coursecoin.auth.jwt import verify_token
from coursecoin.auth.roles import is_admin, parse_role
from coursecoin.auth.service import get_user_by_id
from coursecoin.database import get_session
from coursecoin.db.models import User

logger = structlog.get_logger()

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Extract and verify the JWT, return the User row. Raises 401 on failure."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise HTTPException(status_code=401, detail=str(e) or "Invalid token") from e

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Same as get_current_user but rejects non-admin roles with 403."""
    try:
        role = parse_role(user.role)
    except ValueError:
        logger.warning("unknown_role", user_id=user.id, role=user.role)
        raise HTTPException(status_code=403, detail="Forbidden: admin role required") from None
    if not is_admin(role):
        raise HTTPException(status_code=403, detail="Forbidden: admin role required")
    return user
