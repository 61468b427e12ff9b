"""In-memory activity log entries shown in the admin panel."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from chatrelay.core.timeutil import utcnow

LogLevel = Literal["info", "warn", "error"]


class LogAction(str, Enum):
    REGISTER = "register"
    LOGIN = "login"
    LOGOUT = "logout"
    FETCH_CHATS = "fetch_chats"
    CREATE_CHAT = "create_chat"
    UPDATE_CHAT = "update_chat"
    DELETE_CHAT = "delete_chat"
    FETCH_MESSAGES = "fetch_messages"
    CREATE_MESSAGE = "create_message"
    GENERATE = "generate"
    CHANGE_RELAY_URL = "change_relay_url"
    CHANGE_AI_MODEL = "change_ai_model"
    ADMIN_LOGIN = "admin_login"
    RELAY_CHECK = "relay_check"
    REQUEST_ERROR = "request_error"


class LogEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    level: LogLevel
    message: str
    data: Optional[dict[str, Any]] = None
    user_id: Optional[str] = None
    username: Optional[str] = None
    action: Optional[LogAction] = None
