"""Process-local storage backend for development and tests.

Every method runs to completion without awaiting, so under a single event loop
each call is atomic with respect to other requests.
"""

import itertools
from datetime import timedelta

from chatrelay.core.timeutil import as_utc, utcnow
from chatrelay.models.chat import Chat, Message
from chatrelay.models.setting import Setting
from chatrelay.models.user import User, UserSession
from chatrelay.services.storage.base import ChatNotFoundError, Storage, UsernameTakenError


class MemoryStorage(Storage):
    def __init__(self, session_secret: str, log_capacity: int = 1000):
        super().__init__(session_secret, log_capacity)
        self._users: dict[str, User] = {}
        self._settings: dict[str, Setting] = {}
        self._chats: dict[int, Chat] = {}
        self._messages: dict[int, Message] = {}
        self._sessions: dict[str, UserSession] = {}
        self._chat_ids = itertools.count(1)
        self._message_ids = itertools.count(1)
        self._setting_ids = itertools.count(1)

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> User | None:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    def create_user(self, username: str, password_hash: str) -> User:
        if self.get_user_by_username(username) is not None:
            raise UsernameTakenError(username)
        user = User(username=username, password=password_hash)
        self._users[user.id] = user
        return user

    def get_setting(self, key: str) -> Setting | None:
        return self._settings.get(key)

    def upsert_setting(self, key: str, value: str) -> Setting:
        setting = self._settings.get(key)
        if setting is None:
            setting = Setting(id=next(self._setting_ids), key=key, value=value)
            self._settings[key] = setting
        else:
            setting.value = value
        return setting

    def get_chat(self, chat_id: int) -> Chat | None:
        return self._chats.get(chat_id)

    def list_chats_for_user(self, user_id: str) -> list[Chat]:
        chats = [c for c in self._chats.values() if c.user_id == user_id]
        # Newer ids win ties so listings stay deterministic
        return sorted(chats, key=lambda c: (c.updated_at, c.id), reverse=True)

    def count_chats_for_user(self, user_id: str) -> int:
        return sum(1 for c in self._chats.values() if c.user_id == user_id)

    def create_chat(self, user_id: str | None, title: str) -> Chat:
        now = utcnow()
        chat = Chat(id=next(self._chat_ids), user_id=user_id, title=title, created_at=now, updated_at=now)
        self._chats[chat.id] = chat
        return chat

    def rename_chat(self, chat_id: int, title: str) -> Chat | None:
        chat = self._chats.get(chat_id)
        if chat is None:
            return None
        chat.title = title
        chat.updated_at = utcnow()
        return chat

    def delete_chat(self, chat_id: int) -> bool:
        for message_id in [m.id for m in self._messages.values() if m.chat_id == chat_id]:
            del self._messages[message_id]
        return self._chats.pop(chat_id, None) is not None

    def list_messages(self, chat_id: int) -> list[Message]:
        messages = [m for m in self._messages.values() if m.chat_id == chat_id]
        return sorted(messages, key=lambda m: m.created_at)

    def append_message(self, chat_id: int, role: str, content: str) -> Message:
        chat = self._chats.get(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        message = Message(id=next(self._message_ids), chat_id=chat_id, role=role, content=content)
        self._messages[message.id] = message
        chat.updated_at = message.created_at
        return message

    def _save_session(self, token_hash: str, user_id: str, ttl: timedelta) -> None:
        now = utcnow()
        self._sessions[token_hash] = UserSession(
            token_hash=token_hash, user_id=user_id, created_at=now, expires_at=now + ttl
        )

    def _load_session(self, token_hash: str) -> UserSession | None:
        record = self._sessions.get(token_hash)
        if record is None:
            return None
        if as_utc(record.expires_at) <= utcnow():
            del self._sessions[token_hash]
            return None
        return record

    def _update_session_admin(self, token_hash: str, is_admin: bool) -> None:
        record = self._sessions.get(token_hash)
        if record is not None:
            record.is_admin = is_admin

    def _delete_session(self, token_hash: str) -> None:
        self._sessions.pop(token_hash, None)
