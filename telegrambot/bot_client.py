from __future__ import annotations

import json
from typing import Any
from urllib import error, request


class TelegramApiError(RuntimeError):
    pass


class TelegramBotClient:
    def __init__(
        self,
        bot_token: str,
        api_base_url: str = "https://api.telegram.org",
        timeout_sec: float = 10.0,
    ) -> None:
        self.bot_token = (bot_token or "").strip()
        self.api_base_url = (api_base_url or "https://api.telegram.org").rstrip("/")
        self.timeout_sec = float(timeout_sec)

    def send_message(self, chat_id: int | str, text: str, **extra: Any) -> dict[str, Any]:
        if chat_id in (None, ""):
            raise TelegramApiError("chat id is empty")
        if not text:
            raise TelegramApiError("message text is empty")
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        payload.update(extra)
        result = self._call("sendMessage", payload)
        return result if isinstance(result, dict) else {}

    def send_messages(self, chat_id: int | str, messages: list[dict[str, Any]]) -> None:
        for message in messages:
            text = str(message.get("text", "") or "")
            extra = {key: value for key, value in message.items() if key != "text"}
            self.send_message(chat_id, text, **extra)

    def set_webhook(self, url: str, secret_token: str | None = None, drop_pending_updates: bool = False) -> bool:
        target = (url or "").strip()
        if not target:
            raise TelegramApiError("webhook url is empty")
        payload: dict[str, Any] = {
            "url": target,
            "allowed_updates": ["message"],
            "drop_pending_updates": bool(drop_pending_updates),
        }
        if secret_token:
            payload["secret_token"] = secret_token
        return bool(self._call("setWebhook", payload))

    def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        return bool(self._call("deleteWebhook", {"drop_pending_updates": bool(drop_pending_updates)}))

    def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"timeout": int(timeout), "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = int(offset)
        result = self._call("getUpdates", payload, timeout_sec=self.timeout_sec + max(0, int(timeout)))
        return [item for item in result if isinstance(item, dict)] if isinstance(result, list) else []

    def _call(self, method: str, payload: dict[str, Any], timeout_sec: float | None = None) -> Any:
        if not self.bot_token:
            raise TelegramApiError("telegram.bot_token is required")
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        url = f"{self.api_base_url}/bot{self.bot_token}/{method}"
        req = request.Request(url=url, data=data, method="POST")
        req.add_header("Content-Type", "application/json; charset=utf-8")
        try:
            with request.urlopen(req, timeout=timeout_sec or self.timeout_sec) as resp:
                body = resp.read().decode("utf-8", errors="ignore")
        except error.HTTPError as exc:
            body = ""
            try:
                body = exc.read().decode("utf-8", errors="ignore")
            except Exception:
                pass
            raise TelegramApiError(f"telegram api error: method={method} status={exc.code} body={body}") from exc
        except error.URLError as exc:
            raise TelegramApiError(f"telegram api connection error: method={method} error={exc}") from exc
        except OSError as exc:
            raise TelegramApiError(f"telegram api read error: method={method} error={exc}") from exc

        try:
            parsed = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            raise TelegramApiError(f"telegram api returned invalid json: method={method}") from exc
        if not isinstance(parsed, dict) or not parsed.get("ok", False):
            description = parsed.get("description") if isinstance(parsed, dict) else None
            raise TelegramApiError(f"telegram api rejected call: method={method} description={description}")
        return parsed.get("result")
