from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WalletRead(BaseModel):
    """Wallet as shown to its owner."""
    id: UUID = Field(..., description="Wallet ID")
    address: str = Field(..., description="Solana address")
    is_verified: bool = Field(...)
    is_primary: bool = Field(...)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class WalletAddressRequest(BaseModel):
    address: str = Field(..., description="Solana wallet address (base58)")


class VerifyWalletRequest(BaseModel):
    address: str = Field(..., description="Solana wallet address (base58)")
    signature: str = Field(..., description="Base64 Ed25519 signature of the verification message")


class NonceResponse(BaseModel):
    nonce: str = Field(..., description="One-time nonce to embed in the signed message")
    expires_at: int = Field(..., description="Expiry as epoch milliseconds")


class PublicWalletResponse(BaseModel):
    address: Optional[str] = Field(None, description="Primary verified wallet, or null")
