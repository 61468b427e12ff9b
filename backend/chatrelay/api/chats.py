"""REST API for per-user chats and their message history."""

import logging
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel, Field

from chatrelay.api.deps import get_current_user, get_relay, get_settings, get_storage
from chatrelay.core.config import Settings
from chatrelay.models.activity import LogAction
from chatrelay.models.chat import Chat
from chatrelay.models.user import User
from chatrelay.services.relay.base import BaseRelayClient, HistoryMessage
from chatrelay.services.relay.service import RelayRequest, relay_prompt
from chatrelay.services.storage import Storage

router = APIRouter()
logger = logging.getLogger(__name__)

# Largest id a signed 64-bit INTEGER column can hold
MAX_CHAT_ID = 2**63 - 1
ChatId = Annotated[int, Path(ge=1, le=MAX_CHAT_ID)]


class ChatCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)


class ChatRename(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class MessageCreate(BaseModel):
    role: Literal["user", "ai"]
    content: str = Field(min_length=1)


class ReplyRequest(BaseModel):
    content: str = Field(min_length=1)
    model: Optional[str] = None


def _owned_chat(storage: Storage, chat_id: int, user: User) -> Chat:
    chat = storage.get_chat(chat_id)
    # Foreign chats look exactly like missing ones
    if not chat or chat.user_id != user.id:
        logger.debug(f"Chat {chat_id} not found for user {user.id}")
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat


def default_title(existing_count: int) -> str:
    return f"Chat {existing_count + 1}"


@router.get("")
async def list_chats(user: User = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    chats = storage.list_chats_for_user(user.id)
    storage.append_log("info", "User fetched chats", {"chat_count": len(chats)}, user.id, user.username, LogAction.FETCH_CHATS)
    return {"chats": [c.to_dict() for c in chats]}


@router.post("")
async def create_chat(
    body: ChatCreate | None = None,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    title = (body.title or "").strip() if body else ""
    if not title:
        title = default_title(storage.count_chats_for_user(user.id))

    chat = storage.create_chat(user.id, title)
    storage.append_log("info", "User created chat", {"chat_id": chat.id, "title": title}, user.id, user.username, LogAction.CREATE_CHAT)
    return {"chat": chat.to_dict()}


@router.put("/{chat_id}")
async def rename_chat(
    chat_id: ChatId,
    body: ChatRename,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    _owned_chat(storage, chat_id, user)
    chat = storage.rename_chat(chat_id, body.title)
    if not chat:
        raise HTTPException(status_code=404, detail="Chat not found")
    storage.append_log("info", "User updated chat", {"chat_id": chat_id, "new_title": body.title}, user.id, user.username, LogAction.UPDATE_CHAT)
    return {"chat": chat.to_dict()}


@router.delete("/{chat_id}")
async def delete_chat(chat_id: ChatId, user: User = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    _owned_chat(storage, chat_id, user)
    deleted = storage.delete_chat(chat_id)
    storage.append_log("info", "User deleted chat", {"chat_id": chat_id, "success": deleted}, user.id, user.username, LogAction.DELETE_CHAT)
    return {"success": deleted}


@router.get("/{chat_id}/messages")
async def list_messages(chat_id: ChatId, user: User = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    _owned_chat(storage, chat_id, user)
    messages = storage.list_messages(chat_id)
    storage.append_log(
        "info", "User fetched messages", {"chat_id": chat_id, "message_count": len(messages)},
        user.id, user.username, LogAction.FETCH_MESSAGES,
    )
    return {"messages": [m.to_dict() for m in messages]}


@router.post("/{chat_id}/messages")
async def create_message(
    chat_id: ChatId,
    body: MessageCreate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    _owned_chat(storage, chat_id, user)
    message = storage.append_message(chat_id, body.role, body.content)
    storage.append_log(
        "info", "User created message",
        {"chat_id": chat_id, "message_id": message.id, "role": body.role, "content_length": len(body.content)},
        user.id, user.username, LogAction.CREATE_MESSAGE,
    )
    return {"message": message.to_dict()}


@router.post("/{chat_id}/reply")
async def reply(
    chat_id: ChatId,
    body: ReplyRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    relay: BaseRelayClient = Depends(get_relay),
    settings: Settings = Depends(get_settings),
):
    """Store the user's message, relay it with recent history, store the AI answer."""
    _owned_chat(storage, chat_id, user)
    limit = settings.relay_history_limit
    recent = storage.list_messages(chat_id)[-limit:] if limit > 0 else []
    history = [HistoryMessage(role=m.role, content=m.content) for m in recent]

    user_message = storage.append_message(chat_id, "user", body.content)
    storage.append_log(
        "info", "User created message",
        {"chat_id": chat_id, "message_id": user_message.id, "role": "user", "content_length": len(body.content)},
        user.id, user.username, LogAction.CREATE_MESSAGE,
    )

    # On RelayError the user message stays stored; retrying is up to the client
    result = await relay_prompt(
        storage, relay, settings,
        RelayRequest(prompt=body.content, model=body.model, history=history),
        user=user,
    )

    ai_message = storage.append_message(chat_id, "ai", result.response)
    return {"user_message": user_message.to_dict(), "ai_message": ai_message.to_dict(), "model": result.model}
