"""Resolve relay configuration, forward one prompt, and record the outcome."""

from dataclasses import dataclass, field

from chatrelay.core.config import Settings
from chatrelay.models.activity import LogAction
from chatrelay.models.setting import AI_MODEL_KEY, RELAY_URL_KEY
from chatrelay.models.user import User
from chatrelay.services.relay.base import BaseRelayClient, HistoryMessage, RelayError, RelayResult
from chatrelay.services.relay.ollama import generate_url, redact_url
from chatrelay.services.relay.prompt import build_prompt
from chatrelay.services.storage import Storage

PROMPT_PREVIEW_CHARS = 100


@dataclass
class RelayRequest:
    prompt: str
    model: str | None = None
    history: list[HistoryMessage] = field(default_factory=list)
    target_url: str | None = None


def resolve_target_url(storage: Storage, settings: Settings, override: str | None = None) -> str:
    """Per-request override, then the stored setting, then the configured fallback."""
    return override or storage.get_setting_value(RELAY_URL_KEY) or settings.relay_default_url


def resolve_model(storage: Storage, settings: Settings, override: str | None = None) -> str:
    return override or storage.get_setting_value(AI_MODEL_KEY) or settings.relay_default_model


async def relay_prompt(
    storage: Storage,
    client: BaseRelayClient,
    settings: Settings,
    request: RelayRequest,
    user: User | None = None,
) -> RelayResult:
    target_url = resolve_target_url(storage, settings, request.target_url)
    model = resolve_model(storage, settings, request.model)
    final_prompt = build_prompt(request.prompt, request.history, settings.relay_history_limit)
    url = redact_url(generate_url(target_url))

    attribution = {
        "user_id": user.id if user else None,
        "username": user.username if user else None,
        "action": LogAction.GENERATE,
    }
    storage.append_log(
        "info",
        f"AI request to {url}",
        {
            "prompt_preview": request.prompt[:PROMPT_PREVIEW_CHARS],
            "history_count": min(len(request.history), max(settings.relay_history_limit, 0)),
            "model": model,
        },
        **attribution,
    )

    try:
        text = await client.generate(target_url, model, final_prompt)
    except RelayError as e:
        storage.append_log(
            "error",
            f"AI request failed: {e.message}",
            {"kind": e.kind.value, "upstream_status": e.upstream_status, **e.details},
            **attribution,
        )
        raise

    storage.append_log(
        "info",
        "AI request successful",
        {"url": url, "model": model, "response_length": len(text)},
        **attribution,
    )
    return RelayResult(response=text, model=model, target_url=target_url)
