from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class UserRead(BaseModel):
    """Public user profile."""
    id: UUID = Field(..., description="User ID")
    username: str = Field(..., description="Unique handle")
    display_name: str = Field(..., description="Display name")
    avatar_url: Optional[str] = Field(None)
    bio: Optional[str] = Field(None)
    is_admin: bool = Field(False, description="Moderator/admin flag")
    created_at: datetime = Field(..., description="Created timestamp")

    class Config:
        from_attributes = True


class WalletCheckRequest(BaseModel):
    """Ask whether a wallet already belongs to an account."""
    public_key: str = Field(..., description="Solana wallet address (base58)")


class WalletCheckStatus(str, Enum):
    EXISTING_USER = "existing_user"
    NEW_WALLET = "new_wallet"


class WalletCheckResponse(BaseModel):
    status: WalletCheckStatus = Field(..., description="existing_user when the wallet can log in directly")


class WalletLoginRequest(BaseModel):
    """Signed login message proving wallet ownership."""
    public_key: str = Field(..., description="Solana wallet address (base58)")
    signature: str = Field(..., description="Base64 Ed25519 signature of the login message")


class WalletSignupRequest(WalletLoginRequest):
    """Signed login message plus the profile of the new account."""
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_]+$")
    display_name: Optional[str] = Field(None, max_length=50)


class LoginMessageResponse(BaseModel):
    message: str = Field(..., description="Exact text the wallet must sign")


class AuthResponse(BaseModel):
    """Issued access token and the authenticated user."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    user: UserRead = Field(...)
