from __future__ import annotations

from typing import Any

from sessions.dynamo_repository import DynamoSessionStore
from sessions.repository import SqliteSessionStore
from sessions.repository_interface import SessionStoreProtocol


def create_session_store(config: dict[str, Any]) -> SessionStoreProtocol:
    sessions_conf = config.get("sessions", {})
    backend = str(sessions_conf.get("backend", "sqlite") or "sqlite").strip().lower()

    if backend == "dynamodb":
        ddb_conf = sessions_conf.get("dynamodb", {}) if isinstance(sessions_conf, dict) else {}
        tables = ddb_conf.get("tables", {}) if isinstance(ddb_conf, dict) else {}
        return DynamoSessionStore(
            region_name=_as_optional_str(ddb_conf.get("region")),
            table_prefix=str(ddb_conf.get("table_prefix", "payment-lookup-bot")),
            sessions_table_name=_as_optional_str(tables.get("sessions")),
            update_dedupe_table_name=_as_optional_str(tables.get("update_dedupe")),
            update_ttl_days=int(ddb_conf.get("update_ttl_days", 2)),
        )

    sqlite_path = str(sessions_conf.get("sqlite_path", "data/sessions/bot.db"))
    return SqliteSessionStore(sqlite_path=sqlite_path)


def _as_optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None
