from __future__ import annotations

import hmac


def verify_secret_token(expected: str | None, received: str | None) -> bool:
    """Check the ``X-Telegram-Bot-Api-Secret-Token`` header.

    With no secret configured every request is accepted, which is how the Bot
    API behaves when ``setWebhook`` was called without ``secret_token``.
    """
    secret = (expected or "").strip()
    if not secret:
        return True
    token = (received or "").strip()
    if not token:
        return False
    return hmac.compare_digest(secret.encode("utf-8"), token.encode("utf-8"))
