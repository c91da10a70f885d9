"""Sessions and their append-only event log, stored in SQLite."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from agent_cowork.config import Config, get_config
from agent_cowork.logging import get_logger

log = get_logger(__name__)


def _utcnow_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(UTC).isoformat()


@dataclass
class Session:
    """A working session bound to one directory."""

    id: str
    cwd: str
    title: str = ""
    resume_session_id: str | None = None
    status: str = "idle"
    created_at: str = field(default_factory=_utcnow_iso)
    updated_at: str = field(default_factory=_utcnow_iso)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "cwd": self.cwd,
            "title": self.title,
            "resume_session_id": self.resume_session_id,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            cwd=data.get("cwd", ""),
            title=data.get("title", ""),
            resume_session_id=data.get("resume_session_id"),
            status=data.get("status", "idle"),
            created_at=data.get("created_at", _utcnow_iso()),
            updated_at=data.get("updated_at", _utcnow_iso()),
        )


class SessionStore(Protocol):
    """Persistence collaborator used by the agent loop."""

    async def record_message(self, session_id: str, event: dict[str, Any]) -> None:
        """Append one event record to a session's log."""
        ...

    async def get_session_history(self, session_id: str) -> list[dict[str, Any]]:
        """Return a session's event records in insertion order."""
        ...


_SESSION_COLUMNS = "id, cwd, title, resume_session_id, status, created_at, updated_at"


def _row_to_session(row: Any) -> Session:
    return Session.from_dict({
        "id": row[0],
        "cwd": row[1],
        "title": row[2],
        "resume_session_id": row[3],
        "status": row[4],
        "created_at": row[5],
        "updated_at": row[6],
    })


class SqliteSessionStore:
    """Session metadata and event log backed by SQLite."""

    def __init__(self, db_path: Path | str | None = None, config: Config | None = None):
        """Initialize the store.

        Args:
            db_path: Optional database path override
            config: Optional config (defaults to the global config)
        """
        if db_path is None:
            config = config or get_config()
            self.db_path = Path(config.session.path).expanduser()
        else:
            self.db_path = Path(db_path).expanduser()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db: aiosqlite.Connection | None = None

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database is initialized."""
        if self._db is None:
            self._db = await aiosqlite.connect(str(self.db_path))
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    cwd TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    resume_session_id TEXT,
                    status TEXT NOT NULL DEFAULT 'idle',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS session_events (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            await self._db.execute(
                "CREATE INDEX IF NOT EXISTS idx_session_events_session ON session_events(session_id, seq)"
            )
            await self._db.commit()
        return self._db

    async def create_session(self, cwd: Path | str, title: str = "") -> Session:
        """Create and persist a new session."""
        session = Session(
            id=str(uuid.uuid4()),
            cwd=str(Path(cwd).expanduser().resolve()),
            title=title,
        )
        await self.save_session(session)
        log.info("Created new session", session_id=session.id, cwd=session.cwd)
        return session

    async def save_session(self, session: Session) -> None:
        """Insert or replace session metadata."""
        db = await self._ensure_db()
        session.updated_at = _utcnow_iso()
        await db.execute(
            f"INSERT OR REPLACE INTO sessions ({_SESSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                session.id,
                session.cwd,
                session.title,
                session.resume_session_id,
                session.status,
                session.created_at,
                session.updated_at,
            ),
        )
        await db.commit()

    async def load_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        db = await self._ensure_db()
        async with db.execute(
            f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?",
            (session_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return _row_to_session(row)

    async def update_session(self, session_id: str, updates: dict[str, Any]) -> Session | None:
        """Apply partial field updates to a stored session."""
        session = await self.load_session(session_id)
        if session is None:
            return None
        for key, value in updates.items():
            if key in {"title", "resume_session_id", "status", "cwd"}:
                setattr(session, key, value)
            else:
                log.debug("Ignoring unknown session field", field=key)
        await self.save_session(session)
        return session

    async def list_sessions(self, limit: int = 10) -> list[Session]:
        """List recent sessions, most recently updated first."""
        db = await self._ensure_db()
        async with db.execute(
            f"SELECT {_SESSION_COLUMNS} FROM sessions ORDER BY updated_at DESC LIMIT ?",
            (limit,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_session(row) for row in rows]

    async def record_message(self, session_id: str, event: dict[str, Any]) -> None:
        """Append an event record to the session log."""
        db = await self._ensure_db()
        await db.execute(
            "INSERT INTO session_events (session_id, type, payload, created_at) VALUES (?, ?, ?, ?)",
            (
                session_id,
                str(event.get("type", "")),
                json.dumps(event),
                _utcnow_iso(),
            ),
        )
        await db.commit()

    async def get_session_history(self, session_id: str) -> list[dict[str, Any]]:
        """Return event records for a session in append order."""
        db = await self._ensure_db()
        async with db.execute(
            "SELECT payload FROM session_events WHERE session_id = ? ORDER BY seq ASC",
            (session_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None
