"""
Session Model.

The authenticated-user credential bundle held client-side.  Serialised as
JSON under a single key in local durable storage.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class Session(BaseModel):
    """Current authentication session.

    Attributes
    ----------
    access_token:
        Short-lived JWT sent with every authenticated request.
    refresh_token:
        Long-lived token used to obtain a new access token.
    user_id:
        Supabase UUID of the signed-in user.
    expires_at:
        UTC instant at which ``access_token`` expires.
    email:
        Display-only email address of the user, when known.
    """

    access_token: str
    refresh_token: str
    user_id: UUID
    expires_at: datetime
    email: Optional[str] = None

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def is_expired(self) -> bool:
        """``True`` when the access token expires within 30 seconds."""
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expires_at - timedelta(seconds=30)

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token) and bool(self.refresh_token)
