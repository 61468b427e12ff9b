"""Tests for the in-memory activity log ring buffer."""

from chatrelay.models.activity import LogAction
from chatrelay.services.storage.activity_log import ActivityLog


def test_capacity_is_never_exceeded():
    log = ActivityLog(capacity=1000)
    for i in range(2500):
        log.append("info", f"entry {i}")
    assert len(log) == 1000
    # Oldest entries were evicted first
    assert log.recent(1000)[-1].message == "entry 1500"


def test_recent_returns_newest_first():
    log = ActivityLog()
    for i in range(120):
        log.append("info", f"entry {i}")

    recent = log.recent(50)
    assert len(recent) == 50
    assert recent[0].message == "entry 119"
    assert recent[-1].message == "entry 70"


def test_recent_with_fewer_entries_than_limit():
    log = ActivityLog()
    log.append("info", "only one")
    assert [e.message for e in log.recent(50)] == ["only one"]
    assert log.recent(0) == []


def test_recent_errors_filters_level_and_auth_noise():
    log = ActivityLog()
    log.append("info", "User logged in", action=LogAction.LOGIN)
    log.append("error", "Login failed: invalid credentials", action=LogAction.LOGIN)
    log.append("error", "AI request failed: Cannot reach AI service", action=LogAction.GENERATE)
    log.append("warn", "Slow relay")
    log.append("error", "Invalid Credentials supplied")
    log.append("error", "Unhandled error on GET /api/chats")

    errors = log.recent_errors(50)
    assert [e.message for e in errors] == [
        "Unhandled error on GET /api/chats",
        "AI request failed: Cannot reach AI service",
    ]


def test_entries_carry_attribution():
    log = ActivityLog()
    entry = log.append("info", "User created chat", {"chat_id": 1}, "u-1", "alice", LogAction.CREATE_CHAT)
    assert entry.user_id == "u-1"
    assert entry.username == "alice"
    assert entry.action == LogAction.CREATE_CHAT
    assert entry.data == {"chat_id": 1}
    assert entry.model_dump(mode="json")["action"] == "create_chat"
