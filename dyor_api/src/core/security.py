from __future__ import annotations

import base64
import binascii
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from jose import JWTError, jwt

from src.core.settings import get_app_settings

SOLANA_PUBKEY_LENGTH = 32

LOGIN_MESSAGE_TEMPLATE = "Sign this message to authenticate with DYOR Hub.\n\nWallet: {address}"
VERIFY_MESSAGE_TEMPLATE = "Sign this message to verify ownership of your wallet with DYOR hub.\n\nNonce: {nonce}"


def _create_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta],
    token_type: str,
) -> str:
    settings = get_app_settings()
    to_encode = data.copy()
    now = datetime.now(tz=timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire, "iat": now, "type": token_type})
    encoded_jwt = jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


# PUBLIC_INTERFACE
def create_access_token(
    subject: str,
    username: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token with subject (user id) and username claims."""
    settings = get_app_settings()
    exp = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: Dict[str, Any] = {"sub": subject, "username": username}
    return _create_token(payload, exp, token_type="access")


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT; raises JWTError if invalid/expired."""
    settings = get_app_settings()
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# PUBLIC_INTERFACE
def get_token_subject(token: str) -> Optional[str]:
    """Return 'sub' from a token or None when token is invalid."""
    try:
        payload = decode_token(token)
        return payload.get("sub")
    except JWTError:
        return None


# PUBLIC_INTERFACE
def is_valid_solana_address(address: str | None) -> bool:
    """Return True when the address base58-decodes to a 32-byte public key."""
    if not address:
        return False
    try:
        return len(base58.b58decode(address)) == SOLANA_PUBKEY_LENGTH
    except ValueError:
        return False


# PUBLIC_INTERFACE
def login_message(address: str) -> str:
    """Message a wallet signs to sign up or log in."""
    return LOGIN_MESSAGE_TEMPLATE.format(address=address)


# PUBLIC_INTERFACE
def verification_message(nonce: str) -> str:
    """Message a wallet signs to prove ownership for a previously issued nonce."""
    return VERIFY_MESSAGE_TEMPLATE.format(nonce=nonce)


def _decode_signature(signature: str) -> Optional[bytes]:
    # Wallet adapters hand out base64; some clients send base58.
    try:
        raw = base64.b64decode(signature, validate=True)
        if len(raw) == 64:
            return raw
    except (binascii.Error, ValueError):
        pass
    try:
        raw = base58.b58decode(signature)
    except ValueError:
        return None
    return raw if len(raw) == 64 else None


# PUBLIC_INTERFACE
def verify_wallet_signature(address: str, message: str, signature: str) -> bool:
    """
    Verify an Ed25519 signature of `message` made by the Solana wallet `address`.

    Returns False for malformed addresses or signatures instead of raising.
    """
    if not is_valid_solana_address(address):
        return False
    raw_signature = _decode_signature(signature)
    if raw_signature is None:
        return False
    public_key = Ed25519PublicKey.from_public_bytes(base58.b58decode(address))
    try:
        public_key.verify(raw_signature, message.encode("utf-8"))
    except InvalidSignature:
        return False
    return True
