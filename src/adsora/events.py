"""Session event bus: emit lifecycle events to the SQLite timeline."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Standard event types
EVENT_SESSION_CREATED = "session_created"
EVENT_SESSION_ACTIVE = "session_active"
EVENT_SESSION_ERROR = "session_error"
EVENT_SESSION_CLOSED = "session_closed"
EVENT_PROVISION_FAILED = "provision_failed"
EVENT_CAPABILITY_CONFIGURED = "capability_configured"
EVENT_CAPABILITY_FAILED = "capability_failed"
EVENT_TOOL_CALL = "tool_call"
EVENT_TOOL_CALL_FAILED = "tool_call_failed"


class EventCollector:
    """Writes events to the session store's timeline."""

    def __init__(self, store):
        self._store = store

    def emit(
        self,
        event_type: str,
        summary: str,
        *,
        session_id: str | None = None,
        metadata: dict | None = None,
    ) -> int:
        """Persist an event and return its ID."""
        event_id = self._store.record_event(
            event_type=event_type,
            summary=summary,
            session_id=session_id,
            metadata=metadata,
        )
        logger.debug(f"Event {event_type} [{session_id or '-'}]: {summary}")
        return event_id
