"""Tests for adsora.sessions - SessionStore persistence layer."""

import pytest

from adsora.sessions import SessionStatus


class TestSessionRows:
    """Test session insert/select and updates."""

    def test_create_session(self, store):
        session = store.create_session("s-1", "user-1", "uuid-1", "https://runner.test")
        assert session.id == "s-1"
        assert session.user_id == "user-1"
        assert session.status == SessionStatus.PROVISIONING
        assert session.capabilities is None
        assert session.is_configured is False

    def test_get_nonexistent_session(self, store):
        assert store.get_session("nope") is None

    def test_list_sessions_newest_first(self, store):
        store.create_session("s-1", "user-1", "u1", "https://a")
        store.create_session("s-2", "user-1", "u2", "https://b")
        store.create_session("s-3", "user-2", "u3", "https://c")
        sessions = store.list_sessions("user-1")
        assert [s.id for s in sessions] == ["s-2", "s-1"]

    def test_list_sessions_by_status(self, store):
        store.create_session("s-1", "user-1", "u1", "https://a")
        store.create_session("s-2", "user-1", "u2", "https://b")
        store.update_session("s-2", status=SessionStatus.ACTIVE)
        active = store.list_sessions("user-1", status=SessionStatus.ACTIVE)
        assert [s.id for s in active] == ["s-2"]

    def test_update_capabilities(self, store):
        store.create_session("s-1", "user-1", "u1", "https://a")
        session = store.update_session("s-1", capabilities=["meta-ads", "slack"])
        assert session.capabilities == ["meta-ads", "slack"]
        assert session.is_configured is True

    def test_empty_capabilities_still_configured(self, store):
        store.create_session("s-1", "user-1", "u1", "https://a")
        session = store.update_session("s-1", capabilities=[])
        assert session.capabilities == []
        assert session.is_configured is True

    def test_update_rejects_invalid_columns(self, store):
        store.create_session("s-1", "user-1", "u1", "https://a")
        with pytest.raises(ValueError, match="Invalid session columns"):
            store.update_session("s-1", user_id="someone-else")

    def test_update_unknown_session(self, store):
        with pytest.raises(KeyError):
            store.update_session("missing", status=SessionStatus.CLOSED)


class TestInvariants:

    def test_runner_url_is_immutable(self, store):
        store.create_session("s-1", "user-1", "u1", "https://a")
        with pytest.raises(ValueError, match="already set"):
            store.update_session("s-1", runner_url="https://b")

    def test_runner_url_can_be_set_once(self, store):
        store.create_session("s-1", "user-1", "u1", None)
        session = store.update_session("s-1", runner_url="https://a")
        assert session.runner_url == "https://a"

    def test_cannot_activate_without_url(self, store):
        store.create_session("s-1", "user-1", "u1", None)
        with pytest.raises(ValueError, match="cannot be active"):
            store.update_session("s-1", status=SessionStatus.ACTIVE)
        assert store.get_session("s-1").status == SessionStatus.PROVISIONING

    def test_cannot_insert_active_without_url(self, store):
        with pytest.raises(ValueError):
            store.create_session("s-1", "user-1", "u1", "", status=SessionStatus.ACTIVE)
        assert store.get_session("s-1") is None

    def test_status_accepts_plain_string(self, store):
        store.create_session("s-1", "user-1", "u1", "https://a")
        session = store.update_session("s-1", status="closed")
        assert session.status == SessionStatus.CLOSED


class TestTimeline:

    def test_record_and_query(self, store):
        store.record_event("session_created", "created", session_id="s-1", metadata={"a": 1})
        store.record_event("tool_call", "routed", session_id="s-2")
        events = store.get_timeline(session_id="s-1")
        assert len(events) == 1
        assert events[0]["metadata"] == {"a": 1}

    def test_filter_by_type_and_limit(self, store):
        for i in range(5):
            store.record_event("tool_call", f"call {i}", session_id="s-1")
        store.record_event("session_closed", "closed", session_id="s-1")
        assert len(store.get_timeline(event_type="tool_call", limit=3)) == 3
        assert store.get_timeline(limit=1)[0]["event_type"] == "session_closed"
