"""Abstract storage interface. Both backends must implement this identically."""

import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any

from chatrelay.models.activity import LogAction, LogEntry, LogLevel
from chatrelay.models.chat import Chat, Message
from chatrelay.models.setting import Setting
from chatrelay.models.user import User, UserSession
from chatrelay.services.storage.activity_log import ActivityLog


class StorageError(Exception):
    pass


class UsernameTakenError(StorageError):
    pass


class ChatNotFoundError(StorageError):
    pass


class Storage(ABC):
    """Users, settings, chats, messages and sessions, plus the activity log.

    The activity log is never persisted; every backend keeps it in memory.
    Session records are keyed by an HMAC of the cookie token under
    ``session_secret`` so the stored key cannot be replayed as a cookie.
    """

    def __init__(self, session_secret: str, log_capacity: int = 1000):
        self._session_secret = session_secret.encode("utf-8")
        self.activity = ActivityLog(log_capacity)

    def hash_token(self, token: str) -> str:
        return hmac.new(self._session_secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    # --- Users ---

    @abstractmethod
    def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    def create_user(self, username: str, password_hash: str) -> User:
        """Create a user. Raises UsernameTakenError if the name exists."""
        ...

    # --- Settings ---

    @abstractmethod
    def get_setting(self, key: str) -> Setting | None: ...

    @abstractmethod
    def upsert_setting(self, key: str, value: str) -> Setting: ...

    def get_setting_value(self, key: str) -> str | None:
        setting = self.get_setting(key)
        return setting.value if setting else None

    # --- Chats ---

    @abstractmethod
    def get_chat(self, chat_id: int) -> Chat | None: ...

    @abstractmethod
    def list_chats_for_user(self, user_id: str) -> list[Chat]:
        """Chats owned by the user, most recently active first."""
        ...

    @abstractmethod
    def count_chats_for_user(self, user_id: str) -> int: ...

    @abstractmethod
    def create_chat(self, user_id: str | None, title: str) -> Chat: ...

    @abstractmethod
    def rename_chat(self, chat_id: int, title: str) -> Chat | None: ...

    @abstractmethod
    def delete_chat(self, chat_id: int) -> bool:
        """Delete the chat's messages, then the chat. Returns whether it existed."""
        ...

    # --- Messages ---

    @abstractmethod
    def list_messages(self, chat_id: int) -> list[Message]:
        """Messages oldest first; ties keep insertion order."""
        ...

    @abstractmethod
    def append_message(self, chat_id: int, role: str, content: str) -> Message:
        """Store a message and bump the chat's updated_at. Raises ChatNotFoundError."""
        ...

    # --- Sessions ---

    def create_session(self, user_id: str, ttl: timedelta) -> str:
        token = secrets.token_urlsafe(32)
        self._save_session(self.hash_token(token), user_id, ttl)
        return token

    def get_session(self, token: str) -> UserSession | None:
        return self._load_session(self.hash_token(token))

    def set_session_admin(self, token: str, is_admin: bool) -> None:
        self._update_session_admin(self.hash_token(token), is_admin)

    def delete_session(self, token: str) -> None:
        self._delete_session(self.hash_token(token))

    @abstractmethod
    def _save_session(self, token_hash: str, user_id: str, ttl: timedelta) -> None: ...

    @abstractmethod
    def _load_session(self, token_hash: str) -> UserSession | None:
        """Return the live session, purging it if expired."""
        ...

    @abstractmethod
    def _update_session_admin(self, token_hash: str, is_admin: bool) -> None: ...

    @abstractmethod
    def _delete_session(self, token_hash: str) -> None: ...

    # --- Activity log ---

    def append_log(
        self,
        level: LogLevel,
        message: str,
        data: dict[str, Any] | None = None,
        user_id: str | None = None,
        username: str | None = None,
        action: LogAction | None = None,
    ) -> None:
        self.activity.append(level, message, data, user_id, username, action)

    def recent_logs(self, limit: int = 50) -> list[LogEntry]:
        return self.activity.recent(limit)

    def recent_errors(self, limit: int = 50) -> list[LogEntry]:
        return self.activity.recent_errors(limit)
