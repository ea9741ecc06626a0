from __future__ import annotations

import argparse
import json
import os
import time
from typing import Any

from app.config import is_production, load_runtime_config, require_bot_token
from core.enums import LookupStatus
from core.errors import ConfigurationError
from telegrambot.bot_client import TelegramApiError, TelegramBotClient
from telegrambot.webhook_handler import TelegramWebhookHandler, build_record_lookup

DEFAULT_CONFIG_PATH = os.getenv("BOT_CONFIG_PATH", "config.yaml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Payment lookup Telegram bot")
    subparsers = parser.add_subparsers(dest="command", required=True)

    poll_parser = subparsers.add_parser("poll", help="Run the bot locally with long polling")
    poll_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config.yaml or config.json")
    poll_parser.add_argument("--timeout", type=int, default=30, help="getUpdates long-poll timeout in seconds")
    poll_parser.add_argument("--max-updates", type=int, default=None, help="Stop after this many updates")

    set_parser = subparsers.add_parser("set-webhook", help="Register the webhook URL with Telegram")
    set_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config.yaml or config.json")
    set_parser.add_argument("--url", required=True)
    set_parser.add_argument("--drop-pending-updates", action="store_true")

    delete_parser = subparsers.add_parser("delete-webhook", help="Remove the webhook so polling can be used")
    delete_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config.yaml or config.json")
    delete_parser.add_argument("--drop-pending-updates", action="store_true")

    lookup_parser = subparsers.add_parser("lookup", help="Look up one payment record directly")
    lookup_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config.yaml or config.json")
    lookup_parser.add_argument("--date", required=True, help="Normalized date, e.g. 01.01.2023")
    lookup_parser.add_argument("--identifier", required=True)
    return parser


def _bot_client(config: dict[str, Any]) -> TelegramBotClient:
    telegram_conf = config.get("telegram", {})
    return TelegramBotClient(
        bot_token=require_bot_token(config),
        api_base_url=str(telegram_conf.get("api_base_url", "https://api.telegram.org")),
        timeout_sec=float(telegram_conf.get("timeout_sec", 10)),
    )


def cmd_poll(args: argparse.Namespace) -> int:
    config = load_runtime_config(args.config)
    if is_production(config):
        print("poll refused: long polling is for local development only")
        return 2
    client = _bot_client(config)
    handler = TelegramWebhookHandler(config, bot_client=client)
    client.delete_webhook()
    print("polling started")

    offset: int | None = None
    processed = 0
    try:
        while args.max_updates is None or processed < args.max_updates:
            try:
                updates = client.get_updates(offset=offset, timeout=args.timeout)
            except TelegramApiError as exc:
                print(f"poll-get-updates-failed error={exc}")
                time.sleep(3)
                continue
            for update in updates:
                update_id = update.get("update_id")
                if isinstance(update_id, int):
                    offset = update_id + 1
                try:
                    handler.process_update(update)
                except Exception as exc:  # noqa: BLE001
                    print(f"poll-update-failed update_id={update_id} error={exc}")
                processed += 1
    except KeyboardInterrupt:
        print("polling stopped")
    return 0


def cmd_set_webhook(args: argparse.Namespace) -> int:
    config = load_runtime_config(args.config)
    client = _bot_client(config)
    secret = str(config.get("telegram", {}).get("webhook_secret", "") or "") or None
    try:
        client.set_webhook(args.url, secret_token=secret, drop_pending_updates=args.drop_pending_updates)
    except TelegramApiError as exc:
        print(f"set-webhook failed: {exc}")
        return 1
    print(f"webhook-set url={args.url} secret={'yes' if secret else 'no'}")
    return 0


def cmd_delete_webhook(args: argparse.Namespace) -> int:
    config = load_runtime_config(args.config)
    client = _bot_client(config)
    try:
        client.delete_webhook(drop_pending_updates=args.drop_pending_updates)
    except TelegramApiError as exc:
        print(f"delete-webhook failed: {exc}")
        return 1
    print("webhook-deleted")
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    config = load_runtime_config(args.config)
    result = build_record_lookup(config).lookup(args.date, args.identifier)
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    if result.status == LookupStatus.FOUND:
        return 0
    if result.status == LookupStatus.NOT_FOUND:
        return 1
    return 2


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "poll":
            return cmd_poll(args)
        if args.command == "set-webhook":
            return cmd_set_webhook(args)
        if args.command == "delete-webhook":
            return cmd_delete_webhook(args)
        if args.command == "lookup":
            return cmd_lookup(args)
    except ConfigurationError as exc:
        print(f"configuration error: {exc}")
        return 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
