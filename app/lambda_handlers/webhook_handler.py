from __future__ import annotations

import base64
import json
import os
from typing import Any

from app.config import load_runtime_config
from telegrambot.webhook_handler import TelegramWebhookHandler

try:
    import boto3  # type: ignore
except Exception as exc:  # pragma: no cover - import guard for local env
    boto3 = None
    _BOTO3_IMPORT_ERROR = exc
else:
    _BOTO3_IMPORT_ERROR = None


BOT_CONFIG_PATH = os.getenv("BOT_CONFIG_PATH", "")
TELEGRAM_WEBHOOK_PATH = os.getenv("TELEGRAM_WEBHOOK_PATH", "/webhook/telegram")
APP_SECRETS_ARN = os.getenv("APP_SECRETS_ARN", "")
APP_SECRETS_NAME = os.getenv("APP_SECRETS_NAME", "")

# secret key -> dotted config key
SECRET_CONFIG_KEYS: tuple[tuple[str, str], ...] = (
    ("bot_token", "telegram.bot_token"),
    ("webhook_secret", "telegram.webhook_secret"),
    ("sheet_id", "sheets.spreadsheet_id"),
    ("google_credentials_json", "sheets.credentials_json"),
)

_secrets_client = None
_cached_secret_values: dict[str, Any] | None = None
_handler: TelegramWebhookHandler | None = None


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    _ = context
    method = str(event.get("requestContext", {}).get("http", {}).get("method", "")).upper()
    path = str(event.get("rawPath", ""))
    if method != "POST":
        return _response(405, {"ok": False, "error": "method_not_allowed"})
    if TELEGRAM_WEBHOOK_PATH and path and path != TELEGRAM_WEBHOOK_PATH:
        return _response(404, {"ok": False, "error": "not_found"})

    try:
        handler = _get_handler()
    except Exception as exc:  # noqa: BLE001
        print(f"webhook-init-failed error={exc}")
        return _response(500, {"ok": False, "error": "error processing request"})
    if handler is None:
        print("webhook-init-failed: bot token not configured")
        return _response(500, {"ok": False, "error": "bot token not configured"})

    body_bytes = _decode_body(event)
    secret_token = _get_header(event.get("headers", {}), "x-telegram-bot-api-secret-token")
    try:
        status_code, payload = handler.handle(body=body_bytes, secret_token=secret_token)
    except Exception as exc:  # noqa: BLE001
        print(f"webhook-request-failed error={exc}")
        return _response(500, {"ok": False, "error": "error processing request"})
    return _response(status_code, payload)


def _get_handler() -> TelegramWebhookHandler | None:
    global _handler
    if _handler is not None:
        return _handler
    config = load_runtime_config(BOT_CONFIG_PATH or None)
    config = _apply_secret_values(config, _load_app_secret_values())
    if not str(config.get("telegram", {}).get("bot_token", "") or "").strip():
        return None
    _handler = TelegramWebhookHandler(config)
    return _handler


def _apply_secret_values(config: dict[str, Any], secret_values: dict[str, Any]) -> dict[str, Any]:
    for secret_key, dotted_key in SECRET_CONFIG_KEYS:
        value = secret_values.get(secret_key)
        if value in (None, ""):
            continue
        section, _, key = dotted_key.partition(".")
        current = config.setdefault(section, {})
        # explicit env configuration wins over the shared secret
        if current.get(key) in (None, ""):
            current[key] = value if isinstance(value, (str, dict)) else str(value)
    return config


def _load_app_secret_values() -> dict[str, Any]:
    global _cached_secret_values, _secrets_client
    if _cached_secret_values is not None:
        return _cached_secret_values
    secret_id = APP_SECRETS_ARN or APP_SECRETS_NAME
    if not secret_id:
        _cached_secret_values = {}
        return _cached_secret_values
    if boto3 is None:
        raise RuntimeError(f"boto3 is required to read {secret_id}: {_BOTO3_IMPORT_ERROR}")
    if _secrets_client is None:
        _secrets_client = boto3.client("secretsmanager")
    response = _secrets_client.get_secret_value(SecretId=secret_id)
    raw = response.get("SecretString")
    if not isinstance(raw, str) or not raw.strip():
        _cached_secret_values = {}
        return _cached_secret_values
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        print(f"app-secret-invalid-json secret_id={secret_id}")
        parsed = {}
    _cached_secret_values = parsed if isinstance(parsed, dict) else {}
    return _cached_secret_values


def _decode_body(event: dict[str, Any]) -> bytes:
    body = event.get("body", "")
    if body is None:
        return b""
    if bool(event.get("isBase64Encoded", False)):
        return base64.b64decode(str(body))
    return str(body).encode("utf-8")


def _get_header(headers: Any, name: str) -> str | None:
    if not isinstance(headers, dict):
        return None
    needle = name.lower()
    for key, value in headers.items():
        if str(key).lower() == needle:
            return str(value)
    return None


def _response(status_code: int, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {
            "content-type": "application/json; charset=utf-8",
        },
        "body": json.dumps(payload, ensure_ascii=False),
    }
