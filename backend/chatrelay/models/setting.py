"""Runtime-configurable key/value settings (relay URL, model name)."""

from typing import Optional

from sqlmodel import Field, SQLModel

RELAY_URL_KEY = "relay_url"
AI_MODEL_KEY = "ai_model"


class Setting(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(unique=True, index=True)
    value: str
