"""Fold recent conversation history into a single text prompt."""

from chatrelay.services.relay.base import HistoryMessage

HISTORY_PREAMBLE = (
    "You are a helpful AI assistant engaged in a conversation. Below is the recent "
    "conversation history for context - don't directly reference or respond to it, "
    "just use it as background memory to maintain conversation flow and consistency."
)
HISTORY_START = "=== Recent Conversation History ==="
HISTORY_END = "=== End of History ==="
CONTINUATION = "Now respond to the current message while maintaining conversation continuity:"


def role_label(role: str) -> str:
    return "Human" if role == "user" else "Assistant"


def build_prompt(prompt: str, history: list[HistoryMessage], limit: int = 5) -> str:
    """Return the text sent upstream.

    Only the last ``limit`` history entries are kept. Without history the
    prompt goes out unchanged.
    """
    window = history[-limit:] if limit > 0 else []
    if not window:
        return prompt

    history_text = "\n".join(f"{role_label(m.role)}: {m.content}" for m in window)
    return (
        f"{HISTORY_PREAMBLE}\n\n"
        f"{HISTORY_START}\n{history_text}\n{HISTORY_END}\n\n"
        f"{CONTINUATION}\n\n"
        f"{prompt}"
    )
