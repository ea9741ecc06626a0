from __future__ import annotations

from typing import Protocol

from sessions.models import Session


class SessionStoreProtocol(Protocol):
    def get_session(self, user_id: str) -> Session | None: ...

    def save_session(self, session: Session) -> None: ...

    def delete_session(self, user_id: str) -> None: ...

    def mark_update_processed(self, update_id: str) -> bool: ...
