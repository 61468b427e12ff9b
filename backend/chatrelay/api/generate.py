"""Prompt relay entry point. Open to guests: no session is required."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chatrelay.api.deps import get_optional_user, get_relay, get_settings, get_storage
from chatrelay.core.config import Settings
from chatrelay.models.user import User
from chatrelay.services.relay.base import BaseRelayClient, HistoryMessage
from chatrelay.services.relay.service import RelayRequest, relay_prompt
from chatrelay.services.storage import Storage

router = APIRouter()


class HistoryItem(BaseModel):
    # Older clients send the role under "type"
    role: str = Field(validation_alias=AliasChoices("role", "type"))
    content: str


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    model: Optional[str] = None
    history: list[HistoryItem] = Field(default_factory=list)
    target_url: Optional[str] = Field(default=None, alias="targetUrl")
    stream: bool = False  # accepted for compatibility; upstream calls never stream


@router.post("/generate")
async def generate(
    body: GenerateRequest,
    user: User | None = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
    relay: BaseRelayClient = Depends(get_relay),
    settings: Settings = Depends(get_settings),
):
    if not body.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required")

    result = await relay_prompt(
        storage,
        relay,
        settings,
        RelayRequest(
            prompt=body.prompt,
            model=body.model,
            history=[HistoryMessage(role=h.role, content=h.content) for h in body.history],
            target_url=body.target_url,
        ),
        user=user,
    )
    return {"response": result.response, "model": result.model}
