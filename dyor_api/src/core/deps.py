from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import user_id_var
from src.core.security import decode_token
from src.core.settings import get_app_settings
from src.db.models.users import User
from src.db.session import get_async_session
from src.repositories.users import UserRepository

logger = logging.getLogger(__name__)

# Bearer token for API clients and docs; browsers send the auth cookie instead.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/wallet/login", auto_error=False)


# PUBLIC_INTERFACE
async def get_session(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield the request-scoped AsyncSession; routes depend on this so tests can override one seam."""
    yield session


def _extract_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    if bearer:
        return bearer
    return request.cookies.get(get_app_settings().AUTH_COOKIE_NAME)


async def _resolve_user(token: Optional[str], session: AsyncSession) -> Optional[User]:
    if not token:
        return None
    try:
        payload = decode_token(token)
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        return None
    user = await UserRepository(session).get_user_by_id(user_id)
    if user is not None:
        user_id_var.set(str(user.id))
    return user


# PUBLIC_INTERFACE
async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the current user from the Authorization bearer token or the auth cookie.

    Raises:
        HTTPException: 401 when the token is missing, invalid, expired or the user is gone.
    """
    raw = _extract_token(request, token)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = await _resolve_user(raw, session)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


# PUBLIC_INTERFACE
async def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """Like get_current_user but returns None for anonymous or invalid credentials."""
    return await _resolve_user(_extract_token(request, token), session)


# PUBLIC_INTERFACE
async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Ensure the current user is an administrator."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
