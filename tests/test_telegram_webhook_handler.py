from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from typing import Any

from core.enums import LookupStatus
from core.models import LookupResult, PaymentRecord
from sessions.repository import SqliteSessionStore
from telegrambot.webhook_handler import TelegramWebhookHandler


class _DummyBotClient:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[Any, list[dict[str, Any]]]] = []

    def send_messages(self, chat_id: Any, messages: list[dict[str, Any]]) -> None:
        self.calls.append((chat_id, messages))
        if self.fail:
            raise RuntimeError("network down")


class _FixedLookup:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def lookup(self, date: str, identifier: str) -> LookupResult:
        self.calls.append((date, identifier))
        if identifier != "emp001":
            return LookupResult(status=LookupStatus.NOT_FOUND)
        record = PaymentRecord.from_row(["", "", "emp001", "01.01.2023", "@alice", "5000"], row_number=2)
        return LookupResult(status=LookupStatus.FOUND, record=record)


def _update(update_id: int, text: str, user_id: int = 100, username: str | None = "alice") -> dict[str, Any]:
    sender: dict[str, Any] = {"id": user_id, "is_bot": False, "first_name": "A"}
    if username:
        sender["username"] = username
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id,
            "date": 1700000000,
            "chat": {"id": user_id + 1000, "type": "private"},
            "from": sender,
            "text": text,
        },
    }


def _body(update: Any) -> bytes:
    return json.dumps(update, ensure_ascii=False).encode("utf-8")


class TelegramWebhookHandlerTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.config = _build_config(self._tmp.name)
        self.store = SqliteSessionStore(self.config["sessions"]["sqlite_path"])
        self.bot_client = _DummyBotClient()
        self.lookup = _FixedLookup()
        self.handler = self._handler(self.config)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _handler(self, config: dict[str, Any]) -> TelegramWebhookHandler:
        return TelegramWebhookHandler(
            config=config,
            bot_client=self.bot_client,
            store=self.store,
            lookup=self.lookup,
        )

    def test_invalid_secret_token_is_rejected(self) -> None:
        status, payload = self.handler.handle(body=_body(_update(1, "/start")), secret_token="wrong")
        self.assertEqual(status, 401)
        self.assertFalse(payload["ok"])
        self.assertEqual(self.bot_client.calls, [])

    def test_missing_secret_token_is_rejected(self) -> None:
        status, _ = self.handler.handle(body=_body(_update(1, "/start")), secret_token=None)
        self.assertEqual(status, 401)

    def test_secret_not_configured_accepts_any_request(self) -> None:
        self.config["telegram"]["webhook_secret"] = None
        handler = self._handler(self.config)
        status, payload = handler.handle(body=_body(_update(1, "/start")), secret_token=None)
        self.assertEqual(status, 200)
        self.assertEqual(payload["handled"], 1)

    def test_disabled_bot_returns_503(self) -> None:
        self.config["telegram"]["enabled"] = False
        handler = self._handler(self.config)
        status, _ = handler.handle(body=_body(_update(1, "/start")), secret_token="secret")
        self.assertEqual(status, 503)

    def test_invalid_json_returns_400(self) -> None:
        status, payload = self.handler.handle(body=b"{not json", secret_token="secret")
        self.assertEqual(status, 400)
        self.assertFalse(payload["ok"])

        status, _ = self.handler.handle(body=b"[1, 2]", secret_token="secret")
        self.assertEqual(status, 400)

    def test_full_dialogue_over_webhook(self) -> None:
        for update_id, text in ((1, "/start"), (2, "01.01.2023"), (3, "emp001")):
            status, payload = self.handler.handle(body=_body(_update(update_id, text)), secret_token="secret")
            self.assertEqual(status, 200)
            self.assertTrue(payload["ok"])

        self.assertEqual(len(self.bot_client.calls), 3)
        chat_id, messages = self.bot_client.calls[-1]
        self.assertEqual(chat_id, 1100)
        self.assertIn("5000", messages[0]["text"])
        self.assertEqual(self.lookup.calls, [("01.01.2023", "emp001")])
        self.assertIsNone(self.store.get_session("100"))

    def test_start_command_with_bot_suffix(self) -> None:
        self.handler.handle(body=_body(_update(1, "/start@payment_bot")), secret_token="secret")
        session = self.store.get_session("100")
        self.assertIsNotNone(session)

    def test_duplicate_update_is_skipped(self) -> None:
        self.handler.handle(body=_body(_update(1, "/start")), secret_token="secret")
        self.handler.handle(body=_body(_update(2, "01.01.2023")), secret_token="secret")

        status, payload = self.handler.handle(body=_body(_update(2, "01.01.2023")), secret_token="secret")

        self.assertEqual(status, 200)
        self.assertEqual(payload["skipped"], 1)
        self.assertEqual(len(self.bot_client.calls), 2)

    def test_non_message_update_is_skipped(self) -> None:
        update = {"update_id": 9, "edited_message": {"text": "x"}}
        status, payload = self.handler.handle(body=_body(update), secret_token="secret")
        self.assertEqual(status, 200)
        self.assertEqual(payload["skipped"], 1)
        self.assertEqual(self.bot_client.calls, [])

    def test_non_text_message_in_date_stage_gets_format_error(self) -> None:
        self.handler.handle(body=_body(_update(1, "/start")), secret_token="secret")
        update = _update(2, "")
        update["message"].pop("text")
        update["message"]["sticker"] = {"file_id": "abc"}

        self.handler.handle(body=_body(update), secret_token="secret")

        _, messages = self.bot_client.calls[-1]
        self.assertIn("Неверный формат даты", messages[0]["text"])

    def test_user_outside_allow_list_is_refused(self) -> None:
        self.config["telegram"]["allowed_user_ids"] = ["200"]
        handler = self._handler(self.config)

        handler.handle(body=_body(_update(1, "/start")), secret_token="secret")

        self.assertEqual(len(self.bot_client.calls), 1)
        self.assertIsNone(self.store.get_session("100"))

    def test_send_failure_is_not_propagated(self) -> None:
        self.bot_client.fail = True
        status, payload = self.handler.handle(body=_body(_update(1, "/start")), secret_token="secret")
        self.assertEqual(status, 200)
        self.assertTrue(payload["ok"])
        self.assertIsNotNone(self.store.get_session("100"))


def _build_config(tmp_dir: str) -> dict[str, Any]:
    return {
        "app": {"environment": "development"},
        "telegram": {
            "enabled": True,
            "bot_token": "123:abc",
            "webhook_secret": "secret",
            "api_base_url": "https://api.telegram.org",
            "timeout_sec": 1,
            "allowed_user_ids": [],
        },
        "sheets": {
            "spreadsheet_id": "sheet-1",
            "sheet_name": "Payroll",
            "report_outages": True,
        },
        "sessions": {
            "backend": "sqlite",
            "sqlite_path": str(Path(tmp_dir) / "bot.db"),
            "session_ttl_minutes": 60,
        },
    }


if __name__ == "__main__":
    unittest.main()
