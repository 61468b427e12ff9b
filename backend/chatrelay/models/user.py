"""User accounts and server-side login sessions."""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from chatrelay.core.timeutil import utcnow


class User(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    username: str = Field(unique=True, index=True)
    password: str  # bcrypt hash, never plaintext
    created_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {"id": self.id, "username": self.username}


class UserSession(SQLModel, table=True):
    # Keyed by an HMAC of the cookie token, never the token itself
    token_hash: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    is_admin: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
