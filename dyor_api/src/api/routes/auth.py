from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_user, get_session
from src.core.errors import BadRequestError
from src.core.security import is_valid_solana_address, login_message
from src.core.settings import get_app_settings
from src.db.models.users import User
from src.schemas.auth import (
    AuthResponse,
    LoginMessageResponse,
    UserRead,
    WalletCheckRequest,
    WalletCheckResponse,
    WalletLoginRequest,
    WalletSignupRequest,
)
from src.schemas.common import MessageResponse
from src.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

COOKIE_MAX_AGE_SECONDS = 24 * 60 * 60


def _set_auth_cookie(response: Response, token: str) -> None:
    settings = get_app_settings()
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=COOKIE_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def _auth_response(response: Response, user: User, token: str) -> AuthResponse:
    _set_auth_cookie(response, token)
    return AuthResponse(access_token=token, token_type="bearer", user=UserRead.model_validate(user))


# PUBLIC_INTERFACE
@router.get(
    "/wallet/message/{address}",
    response_model=LoginMessageResponse,
    summary="Login message",
    description="Return the exact message a wallet must sign to sign up or log in.",
)
async def get_login_message(address: str) -> LoginMessageResponse:
    if not is_valid_solana_address(address):
        raise BadRequestError("Invalid Solana wallet address")
    return LoginMessageResponse(message=login_message(address))


# PUBLIC_INTERFACE
@router.post(
    "/wallet/check",
    response_model=WalletCheckResponse,
    summary="Check wallet",
    description="Tell whether a wallet already belongs to an account (log in) or is new (sign up).",
)
async def check_wallet(
    payload: WalletCheckRequest,
    session: AsyncSession = Depends(get_session),
) -> WalletCheckResponse:
    status = await AuthService(session).check_wallet(payload.public_key)
    return WalletCheckResponse(status=status)


# PUBLIC_INTERFACE
@router.post(
    "/wallet/signup",
    response_model=AuthResponse,
    status_code=201,
    summary="Sign up with a wallet",
    description="Create an account from a signed login message and set the auth cookie.",
)
async def wallet_signup(
    payload: WalletSignupRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """
    Register a new user owning the signing wallet.

    Returns:
        AuthResponse: access token and the created user.
    """
    user, token = await AuthService(session).signup(payload)
    return _auth_response(response, user, token)


# PUBLIC_INTERFACE
@router.post(
    "/wallet/login",
    response_model=AuthResponse,
    summary="Log in with a wallet",
    description="Authenticate with a signed login message and set the auth cookie.",
)
async def wallet_login(
    payload: WalletLoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    user, token = await AuthService(session).login(payload)
    return _auth_response(response, user, token)


# PUBLIC_INTERFACE
@router.get("/profile", response_model=UserRead, summary="Current user")
async def profile(current_user: User = Depends(get_current_user)) -> UserRead:
    """Return the authenticated user."""
    return UserRead.model_validate(current_user)


# PUBLIC_INTERFACE
@router.post("/logout", response_model=MessageResponse, summary="Logout")
async def logout(response: Response) -> MessageResponse:
    """Clear the auth cookie. Bearer tokens simply expire."""
    response.delete_cookie(key=get_app_settings().AUTH_COOKIE_NAME, path="/")
    return MessageResponse(message="Logged out")
