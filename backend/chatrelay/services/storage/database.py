"""Relational storage backend on SQLModel."""

import logging
from datetime import timedelta

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from chatrelay.core.timeutil import as_utc, utcnow
from chatrelay.models.chat import Chat, Message
from chatrelay.models.setting import Setting
from chatrelay.models.user import User, UserSession
from chatrelay.services.storage.base import ChatNotFoundError, Storage, UsernameTakenError

logger = logging.getLogger(__name__)


class DatabaseStorage(Storage):
    def __init__(self, engine: Engine, session_secret: str, log_capacity: int = 1000):
        super().__init__(session_secret, log_capacity)
        self.engine = engine

    def get_user(self, user_id: str) -> User | None:
        with Session(self.engine) as session:
            return session.get(User, user_id)

    def get_user_by_username(self, username: str) -> User | None:
        with Session(self.engine) as session:
            return session.exec(select(User).where(User.username == username)).first()

    def create_user(self, username: str, password_hash: str) -> User:
        with Session(self.engine) as session:
            user = User(username=username, password=password_hash)
            session.add(user)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise UsernameTakenError(username) from e
            session.refresh(user)
            return user

    def get_setting(self, key: str) -> Setting | None:
        with Session(self.engine) as session:
            return session.exec(select(Setting).where(Setting.key == key)).first()

    def upsert_setting(self, key: str, value: str) -> Setting:
        with Session(self.engine) as session:
            setting = session.exec(select(Setting).where(Setting.key == key)).first()
            if setting is None:
                setting = Setting(key=key, value=value)
            else:
                setting.value = value
            session.add(setting)
            session.commit()
            session.refresh(setting)
            return setting

    def get_chat(self, chat_id: int) -> Chat | None:
        with Session(self.engine) as session:
            return session.get(Chat, chat_id)

    def list_chats_for_user(self, user_id: str) -> list[Chat]:
        with Session(self.engine) as session:
            return list(session.exec(
                select(Chat)
                .where(Chat.user_id == user_id)
                .order_by(Chat.updated_at.desc(), Chat.id.desc())  # type: ignore
            ).all())

    def count_chats_for_user(self, user_id: str) -> int:
        with Session(self.engine) as session:
            return session.exec(
                select(func.count()).select_from(Chat).where(Chat.user_id == user_id)
            ).one()

    def create_chat(self, user_id: str | None, title: str) -> Chat:
        now = utcnow()
        with Session(self.engine) as session:
            chat = Chat(user_id=user_id, title=title, created_at=now, updated_at=now)
            session.add(chat)
            session.commit()
            session.refresh(chat)
            return chat

    def rename_chat(self, chat_id: int, title: str) -> Chat | None:
        with Session(self.engine) as session:
            chat = session.get(Chat, chat_id)
            if not chat:
                return None
            chat.title = title
            chat.updated_at = utcnow()
            session.add(chat)
            session.commit()
            session.refresh(chat)
            return chat

    def delete_chat(self, chat_id: int) -> bool:
        with Session(self.engine) as session:
            # Delete messages first
            messages = session.exec(select(Message).where(Message.chat_id == chat_id)).all()
            for msg in messages:
                session.delete(msg)

            chat = session.get(Chat, chat_id)
            if chat:
                session.delete(chat)
            session.commit()
            logger.debug(f"Deleted chat {chat_id} with {len(messages)} messages")
            return chat is not None

    def list_messages(self, chat_id: int) -> list[Message]:
        with Session(self.engine) as session:
            return list(session.exec(
                select(Message)
                .where(Message.chat_id == chat_id)
                .order_by(Message.created_at, Message.id)  # type: ignore
            ).all())

    def append_message(self, chat_id: int, role: str, content: str) -> Message:
        with Session(self.engine) as session:
            chat = session.get(Chat, chat_id)
            if not chat:
                raise ChatNotFoundError(chat_id)
            msg = Message(chat_id=chat_id, role=role, content=content)
            chat.updated_at = msg.created_at
            session.add(msg)
            session.add(chat)
            session.commit()
            session.refresh(msg)
            return msg

    def _save_session(self, token_hash: str, user_id: str, ttl: timedelta) -> None:
        now = utcnow()
        with Session(self.engine) as session:
            session.add(UserSession(token_hash=token_hash, user_id=user_id, created_at=now, expires_at=now + ttl))
            session.commit()

    def _load_session(self, token_hash: str) -> UserSession | None:
        with Session(self.engine) as session:
            record = session.get(UserSession, token_hash)
            if not record:
                return None
            if as_utc(record.expires_at) <= utcnow():
                session.delete(record)
                session.commit()
                return None
            return record

    def _update_session_admin(self, token_hash: str, is_admin: bool) -> None:
        with Session(self.engine) as session:
            record = session.get(UserSession, token_hash)
            if record:
                record.is_admin = is_admin
                session.add(record)
                session.commit()

    def _delete_session(self, token_hash: str) -> None:
        with Session(self.engine) as session:
            record = session.get(UserSession, token_hash)
            if record:
                session.delete(record)
                session.commit()
