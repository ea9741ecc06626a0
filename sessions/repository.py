from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from sessions.models import Session


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteSessionStore:
    """File-backed session store for local runs and tests.

    Every call opens its own connection, so separate processes pointed at the
    same file see each other's sessions.
    """

    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = Path(sqlite_path)
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.sqlite_path, timeout=10)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS conversation_sessions (
                    user_id TEXT PRIMARY KEY,
                    stage TEXT NOT NULL,
                    date TEXT,
                    expires_at TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS processed_updates (
                    update_id TEXT PRIMARY KEY,
                    received_at TEXT NOT NULL
                );
                """
            )
            conn.commit()

    def get_session(self, user_id: str) -> Session | None:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT user_id, stage, date, expires_at, created_at, updated_at
                FROM conversation_sessions
                WHERE user_id = ?
                """,
                (str(user_id),),
            ).fetchone()
        if row is None:
            return None
        session = Session(
            user_id=row["user_id"],
            stage=row["stage"],
            date=row["date"],
            expires_at=row["expires_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
        if session.is_expired(_utc_now()):
            return None
        return session

    def save_session(self, session: Session) -> None:
        now = _utc_now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO conversation_sessions(
                    user_id, stage, date, expires_at, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(session.user_id),
                    session.stage,
                    session.date,
                    session.expires_at,
                    session.created_at or now,
                    now,
                ),
            )
            conn.commit()
        session.updated_at = now

    def delete_session(self, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM conversation_sessions WHERE user_id = ?", (str(user_id),))
            conn.commit()

    def mark_update_processed(self, update_id: str) -> bool:
        key = (update_id or "").strip()
        if not key:
            return False
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO processed_updates(update_id, received_at) VALUES (?, ?)",
                (key, _utc_now()),
            )
            conn.commit()
            return cur.rowcount == 1
