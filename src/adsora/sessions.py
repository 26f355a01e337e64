"""Session record store: SQLite persistence for agent sessions.

Rows are inserted once and read back; status and capability updates are the
only mutations. Nothing here deletes a session.
"""

import json
import sqlite3
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from adsora.config import ADSORA_DB


class SessionStatus(str, Enum):
    """Session lifecycle states."""

    PROVISIONING = "provisioning"
    ACTIVE = "active"
    CLOSED = "closed"
    ERROR = "error"


@dataclass
class Session:
    """One conversational engagement bound to a provisioned runner."""

    id: str
    user_id: str
    session_uuid: str
    runner_url: str | None
    status: SessionStatus
    created_at: float
    updated_at: float
    capabilities: list[str] | None = None  # None until configuration has run

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_configured(self) -> bool:
        return self.capabilities is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "session_uuid": self.session_uuid,
            "runner_url": self.runner_url,
            "status": self.status.value,
            "capabilities": self.capabilities,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


_SESSION_COLUMNS = (
    "id, user_id, session_uuid, runner_url, status, created_at, updated_at, capabilities"
)
_UPDATABLE_COLUMNS = {"status", "runner_url", "capabilities"}


def _row_to_session(row) -> Session:
    return Session(
        id=row[0],
        user_id=row[1],
        session_uuid=row[2],
        runner_url=row[3],
        status=SessionStatus(row[4]),
        created_at=row[5],
        updated_at=row[6],
        capabilities=json.loads(row[7]) if row[7] is not None else None,
    )


class SessionStore:
    """SQLite-backed session rows plus a lifecycle event timeline."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = Path(db_path or ADSORA_DB)
        self._init_db()

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS agent_sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                session_uuid TEXT NOT NULL,
                runner_url TEXT,
                status TEXT DEFAULT 'provisioning',
                created_at REAL,
                updated_at REAL,
                capabilities TEXT
            );

            CREATE TABLE IF NOT EXISTS session_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp REAL,
                event_type TEXT,
                summary TEXT,
                session_id TEXT,
                metadata_json TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_sessions_user ON agent_sessions(user_id);
            CREATE INDEX IF NOT EXISTS idx_events_session ON session_events(session_id);
            CREATE INDEX IF NOT EXISTS idx_events_ts ON session_events(timestamp);
        """)
        conn.commit()
        conn.close()

    # --- Sessions ---

    def create_session(
        self,
        session_id: str,
        user_id: str,
        session_uuid: str,
        runner_url: str | None,
        status: SessionStatus = SessionStatus.PROVISIONING,
    ) -> Session:
        """Insert a session row and read it back."""
        if status == SessionStatus.ACTIVE and not runner_url:
            raise ValueError("A session without a runner URL cannot be active")
        now = time.time()
        conn = sqlite3.connect(self.db_path)
        conn.execute(
            "INSERT INTO agent_sessions "
            "(id, user_id, session_uuid, runner_url, status, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (session_id, user_id, session_uuid, runner_url, status.value, now, now),
        )
        conn.commit()
        conn.close()
        session = self.get_session(session_id)
        if session is None:
            raise RuntimeError(f"Session {session_id} missing after insert")
        return session

    def get_session(self, session_id: str) -> Session | None:
        conn = sqlite3.connect(self.db_path)
        row = conn.execute(
            f"SELECT {_SESSION_COLUMNS} FROM agent_sessions WHERE id = ?",
            (session_id,),
        ).fetchone()
        conn.close()
        if not row:
            return None
        return _row_to_session(row)

    def list_sessions(self, user_id: str, status: SessionStatus | None = None) -> list[Session]:
        conn = sqlite3.connect(self.db_path)
        query = f"SELECT {_SESSION_COLUMNS} FROM agent_sessions WHERE user_id = ?"
        params: list = [user_id]
        if status:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY created_at DESC, rowid DESC"
        rows = conn.execute(query, params).fetchall()
        conn.close()
        return [_row_to_session(r) for r in rows]

    def update_session(self, session_id: str, **kwargs) -> Session:
        """Update status, runner URL or capabilities.

        The runner URL may be set once and never changed afterwards, and a
        session can only become active once it has a runner URL.
        """
        invalid = set(kwargs) - _UPDATABLE_COLUMNS
        if invalid:
            raise ValueError(f"Invalid session columns: {sorted(invalid)}")

        current = self.get_session(session_id)
        if current is None:
            raise KeyError(session_id)

        if "runner_url" in kwargs:
            new_url = kwargs["runner_url"]
            if current.runner_url and new_url != current.runner_url:
                raise ValueError(f"Runner URL for {session_id} is already set")

        if "status" in kwargs:
            status = SessionStatus(kwargs["status"])
            runner_url = kwargs.get("runner_url", current.runner_url)
            if status == SessionStatus.ACTIVE and not runner_url:
                raise ValueError("A session without a runner URL cannot be active")
            kwargs["status"] = status.value

        if "capabilities" in kwargs and kwargs["capabilities"] is not None:
            kwargs["capabilities"] = json.dumps(list(kwargs["capabilities"]))

        kwargs["updated_at"] = time.time()
        sets = ", ".join(f"{k} = ?" for k in kwargs)
        values = list(kwargs.values()) + [session_id]
        conn = sqlite3.connect(self.db_path)
        conn.execute(f"UPDATE agent_sessions SET {sets} WHERE id = ?", values)
        conn.commit()
        conn.close()
        return self.get_session(session_id)

    # --- Timeline events ---

    def record_event(
        self,
        event_type: str,
        summary: str,
        session_id: str | None = None,
        metadata: dict | None = None,
    ) -> int:
        """Record a timeline event. Returns the event ID."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.execute(
            "INSERT INTO session_events (timestamp, event_type, summary, session_id, metadata_json) "
            "VALUES (?, ?, ?, ?, ?)",
            (time.time(), event_type, summary, session_id,
             json.dumps(metadata) if metadata else None),
        )
        event_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return event_id

    def get_timeline(
        self,
        session_id: str | None = None,
        limit: int = 50,
        event_type: str | None = None,
    ) -> list[dict]:
        """Query timeline events, newest first."""
        conn = sqlite3.connect(self.db_path)
        query = (
            "SELECT id, timestamp, event_type, summary, session_id, metadata_json "
            "FROM session_events WHERE 1=1"
        )
        params: list = []
        if session_id:
            query += " AND session_id = ?"
            params.append(session_id)
        if event_type:
            query += " AND event_type = ?"
            params.append(event_type)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)
        rows = conn.execute(query, params).fetchall()
        conn.close()
        return [
            {
                "id": r[0], "timestamp": r[1], "event_type": r[2], "summary": r[3],
                "session_id": r[4], "metadata": json.loads(r[5]) if r[5] else None,
            }
            for r in rows
        ]
