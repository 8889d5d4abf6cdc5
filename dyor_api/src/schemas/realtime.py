from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WsEnvelope(BaseModel):
    """Envelope for WebSocket messages."""
    type: str = Field(..., description="Message type (e.g., 'notification.new', 'notification.unread_count').")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Message payload.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp (UTC).")
    user_id: Optional[UUID] = Field(default=None, description="Recipient user id.")
    channel: Optional[str] = Field(default=None, description="Optional sub-channel.")
