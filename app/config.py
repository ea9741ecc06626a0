from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

from core.errors import ConfigurationError

DEFAULT_CONFIG: dict[str, Any] = {
    "app": {
        "environment": "development",
    },
    "telegram": {
        "enabled": True,
        "bot_token": None,
        "webhook_secret": None,
        "webhook_path": "/webhook/telegram",
        "api_base_url": "https://api.telegram.org",
        "timeout_sec": 10,
        "allowed_user_ids": [],
    },
    "sheets": {
        "spreadsheet_id": None,
        "sheet_name": "Свод ФОТ (адрес почты)",
        "cell_range": "A2:F",
        "credentials_json": None,
        "credentials_path": "credentials.json",
        "report_outages": True,
    },
    "sessions": {
        "backend": "sqlite",
        "sqlite_path": "data/sessions/bot.db",
        "session_ttl_minutes": 60,
        "dynamodb": {
            "region": None,
            "table_prefix": "payment-lookup-bot",
            "update_ttl_days": 2,
            "tables": {
                "sessions": None,
                "update_dedupe": None,
            },
        },
    },
}

# env var -> dotted config key
ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("APP_ENV", "app.environment"),
    ("BOT_TOKEN", "telegram.bot_token"),
    ("TELEGRAM_BOT_TOKEN", "telegram.bot_token"),
    ("TELEGRAM_WEBHOOK_SECRET", "telegram.webhook_secret"),
    ("TELEGRAM_WEBHOOK_PATH", "telegram.webhook_path"),
    ("SHEET_ID", "sheets.spreadsheet_id"),
    ("SHEET_NAME", "sheets.sheet_name"),
    ("GOOGLE_CREDENTIALS_JSON", "sheets.credentials_json"),
    ("GOOGLE_CREDENTIALS_PATH", "sheets.credentials_path"),
    ("SESSION_BACKEND", "sessions.backend"),
    ("SESSION_SQLITE_PATH", "sessions.sqlite_path"),
    ("SESSIONS_TABLE", "sessions.dynamodb.tables.sessions"),
    ("UPDATE_DEDUPE_TABLE", "sessions.dynamodb.tables.update_dedupe"),
    ("AWS_REGION", "sessions.dynamodb.region"),
)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: str | None = None) -> dict[str, Any]:
    if not config_path:
        return deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if not path.exists():
        return deepcopy(DEFAULT_CONFIG)

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return deepcopy(DEFAULT_CONFIG)

    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        try:
            import yaml  # type: ignore
        except ImportError as exc:
            raise ConfigurationError(f"PyYAML is required to read {path}: {exc}") from exc
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        data = {}
    return deep_merge(DEFAULT_CONFIG, data)


def apply_env_overrides(config: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    result = deepcopy(config)
    for env_name, dotted_key in ENV_OVERRIDES:
        value = str(env.get(env_name, "") or "").strip()
        if value:
            _set_dotted(result, dotted_key, value)
    return result


def load_runtime_config(config_path: str | None = None, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    return apply_env_overrides(load_config(config_path), environ)


def is_production(config: dict[str, Any]) -> bool:
    environment = str(config.get("app", {}).get("environment", "") or "").strip().lower()
    return environment in {"production", "prod"}


def _set_dotted(target: dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def require_bot_token(config: dict[str, Any]) -> str:
    token = str(config.get("telegram", {}).get("bot_token", "") or "").strip()
    if not token:
        raise ConfigurationError("BOT_TOKEN environment variable is not set")
    return token
