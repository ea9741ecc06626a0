from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from app.config import load_runtime_config, require_bot_token
from telegrambot.webhook_handler import TelegramWebhookHandler

DEFAULT_CONFIG_PATH = "config.yaml"

CONFIG_PATH = os.getenv("BOT_CONFIG_PATH", DEFAULT_CONFIG_PATH)
CONFIG = load_runtime_config(CONFIG_PATH)
require_bot_token(CONFIG)
HANDLER = TelegramWebhookHandler(CONFIG)

app = FastAPI(title="Payment Lookup Bot Webhook", version="0.1.0")
WEBHOOK_PATH = str(CONFIG.get("telegram", {}).get("webhook_path", "/webhook/telegram"))


@app.get("/healthz")
async def healthz() -> dict[str, Any]:
    return {"ok": True}


@app.post(WEBHOOK_PATH)
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> JSONResponse:
    body = await request.body()
    status_code, payload = HANDLER.handle(body=body, secret_token=x_telegram_bot_api_secret_token)
    return JSONResponse(status_code=status_code, content=payload)
