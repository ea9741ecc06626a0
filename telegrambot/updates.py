from __future__ import annotations

from typing import Any

from core.models import InboundMessage

START_COMMAND = "/start"


def build_update_id(update: dict[str, Any]) -> str:
    update_id = update.get("update_id")
    if update_id is None or isinstance(update_id, bool):
        return ""
    return str(update_id).strip()


def is_start_command(text: str) -> bool:
    normalized = (text or "").strip()
    if not normalized.startswith("/"):
        return False
    command = normalized.split(maxsplit=1)[0]
    return command.split("@", 1)[0].lower() == START_COMMAND


def parse_message_update(update: dict[str, Any]) -> InboundMessage | None:
    message = update.get("message")
    if not isinstance(message, dict):
        return None
    sender = message.get("from")
    chat = message.get("chat")
    if not isinstance(sender, dict) or sender.get("id") is None:
        return None
    chat_id = chat.get("id") if isinstance(chat, dict) else None
    if chat_id is None:
        chat_id = sender["id"]

    raw_text = message.get("text")
    text = raw_text.strip() if isinstance(raw_text, str) else ""
    handle = str(sender.get("username", "") or "").strip() or None
    update_id = update.get("update_id")
    return InboundMessage(
        update_id=update_id if isinstance(update_id, int) and not isinstance(update_id, bool) else None,
        chat_id=chat_id,
        user_id=str(sender["id"]),
        handle=handle,
        text=text,
        is_start_command=is_start_command(text),
    )
