"""Fixed-capacity activity log shared by every storage backend."""

import logging
from collections import deque
from typing import Any

from chatrelay.models.activity import LogAction, LogEntry, LogLevel

logger = logging.getLogger("chatrelay.activity")

_LEVELS = {"info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}

# Routine authentication noise that the errors view hides
_ERROR_NOISE = ("invalid credentials", "login failed")


class ActivityLog:
    """Ring buffer of LogEntry; oldest entries are evicted first once full."""

    def __init__(self, capacity: int = 1000):
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def append(
        self,
        level: LogLevel,
        message: str,
        data: dict[str, Any] | None = None,
        user_id: str | None = None,
        username: str | None = None,
        action: LogAction | None = None,
    ) -> LogEntry:
        entry = LogEntry(
            level=level,
            message=message,
            data=data,
            user_id=user_id,
            username=username,
            action=action,
        )
        self._entries.append(entry)
        logger.log(_LEVELS[level], "%s%s", message, f" [{action.value}]" if action else "")
        return entry

    def recent(self, limit: int = 50) -> list[LogEntry]:
        if limit <= 0:
            return []
        return list(reversed(self._entries))[:limit]

    def recent_errors(self, limit: int = 50) -> list[LogEntry]:
        if limit <= 0:
            return []
        errors = [
            e for e in reversed(self._entries)
            if e.level == "error" and not any(n in e.message.lower() for n in _ERROR_NOISE)
        ]
        return errors[:limit]
