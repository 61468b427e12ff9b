"""Chat and message models for per-user conversation history."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, Relationship, SQLModel

from chatrelay.core.timeutil import as_utc, utcnow

MESSAGE_ROLES = ("user", "ai")


class Chat(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    title: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    messages: list["Message"] = Relationship(back_populates="chat")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "created_at": as_utc(self.created_at).isoformat(),
            "updated_at": as_utc(self.updated_at).isoformat(),
        }


class Message(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    chat_id: int = Field(foreign_key="chat.id", index=True)
    role: str  # "user" | "ai"
    content: str
    created_at: datetime = Field(default_factory=utcnow)

    chat: Optional[Chat] = Relationship(back_populates="messages")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chat_id": self.chat_id,
            "role": self.role,
            "content": self.content,
            "created_at": as_utc(self.created_at).isoformat(),
        }
