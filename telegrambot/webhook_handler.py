from __future__ import annotations

import json
from typing import Any

from app.config import is_production
from sessions.conversation_service import ConversationService, RecordLookupProtocol
from sessions.repository_factory import create_session_store
from sessions.repository_interface import SessionStoreProtocol
from sheets.credentials import SheetsClientProvider
from sheets.record_lookup import RecordLookup
from telegrambot import message_templates
from telegrambot.bot_client import TelegramBotClient
from telegrambot.secret_token import verify_secret_token
from telegrambot.updates import build_update_id, parse_message_update


def build_record_lookup(config: dict[str, Any]) -> RecordLookup:
    sheets_conf = config.get("sheets", {})
    provider = SheetsClientProvider.from_config(config, production=is_production(config))
    return RecordLookup(
        spreadsheet_id=sheets_conf.get("spreadsheet_id"),
        sheet_name=str(sheets_conf.get("sheet_name", "") or ""),
        client_provider=provider.get_client,
        cell_range=str(sheets_conf.get("cell_range", "A2:F") or "A2:F"),
    )


class TelegramWebhookHandler:
    def __init__(
        self,
        config: dict[str, Any],
        bot_client: TelegramBotClient | None = None,
        store: SessionStoreProtocol | None = None,
        lookup: RecordLookupProtocol | None = None,
    ) -> None:
        self.config = config
        self.telegram_conf = config.get("telegram", {})
        self.sessions_conf = config.get("sessions", {})
        self.enabled = bool(self.telegram_conf.get("enabled", True))
        self.webhook_secret = str(self.telegram_conf.get("webhook_secret", "") or "").strip()
        allowed = self.telegram_conf.get("allowed_user_ids", [])
        self.allowed_user_ids = {
            str(user_id).strip()
            for user_id in (allowed if isinstance(allowed, list) else [])
            if str(user_id).strip()
        }

        self.store = store or create_session_store(config)
        self.conversation_service = ConversationService(
            store=self.store,
            lookup=lookup or build_record_lookup(config),
            session_ttl_minutes=int(self.sessions_conf.get("session_ttl_minutes", 60)),
            report_outages=bool(config.get("sheets", {}).get("report_outages", True)),
        )
        self.bot_client = bot_client or TelegramBotClient(
            bot_token=str(self.telegram_conf.get("bot_token", "") or ""),
            api_base_url=str(self.telegram_conf.get("api_base_url", "https://api.telegram.org")),
            timeout_sec=float(self.telegram_conf.get("timeout_sec", 10)),
        )

    def handle(self, body: bytes, secret_token: str | None) -> tuple[int, dict[str, Any]]:
        if not self.enabled:
            return 503, {"ok": False, "error": "telegram.enabled is false"}
        if not verify_secret_token(self.webhook_secret, secret_token):
            return 401, {"ok": False, "error": "invalid secret token"}

        try:
            update = json.loads(body.decode("utf-8"))
        except Exception:
            return 400, {"ok": False, "error": "invalid json payload"}
        if not isinstance(update, dict):
            return 400, {"ok": False, "error": "update must be object"}

        handled = 0
        skipped = 0
        errors: list[str] = []
        try:
            if self.process_update(update):
                handled += 1
            else:
                skipped += 1
        except Exception as exc:  # noqa: BLE001
            print(f"update-failed update_id={build_update_id(update)} error={exc}")
            errors.append(str(exc))
        return 200, {"ok": len(errors) == 0, "handled": handled, "skipped": skipped, "errors": errors}

    def process_update(self, update: dict[str, Any]) -> bool:
        update_id = build_update_id(update)
        if update_id and not self.store.mark_update_processed(update_id):
            print(f"update-skipped reason=duplicate update_id={update_id}")
            return False

        inbound = parse_message_update(update)
        if inbound is None:
            print(f"update-skipped reason=unsupported update_id={update_id}")
            return False

        if self.allowed_user_ids and inbound.user_id not in self.allowed_user_ids:
            self._reply(inbound.chat_id, message_templates.build_not_allowed_message())
            return True

        if inbound.is_start_command:
            messages = self.conversation_service.handle_start(inbound.user_id)
        else:
            messages = self.conversation_service.handle_text(
                user_id=inbound.user_id,
                handle=inbound.handle,
                text=inbound.text,
            )
        self._reply(inbound.chat_id, messages)
        return True

    def _reply(self, chat_id: int | str, messages: list[dict[str, Any]]) -> None:
        try:
            self.bot_client.send_messages(chat_id=chat_id, messages=messages)
        except Exception as exc:  # noqa: BLE001
            print(f"telegram-send-failed chat_id={chat_id} error={exc}")
