from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from core.enums import LookupStatus
from core.errors import DateFormatError, InvalidDateError, UnexpectedStateError, YearFormatError
from core.models import LookupResult
from sessions.date_input import normalize_date_input
from sessions.models import Session
from sessions.repository_interface import SessionStoreProtocol
from sessions.state_machine import (
    STATE_AWAITING_DATE,
    STATE_AWAITING_IDENTIFIER,
    initial_state,
    next_state,
)
from telegrambot import message_templates


class RecordLookupProtocol(Protocol):
    def lookup(self, date: str, identifier: str) -> LookupResult: ...


class ConversationService:
    """Two-step dialogue: ask for a date, then an identifier, then answer once.

    All state lives in the injected store so that consecutive messages may be
    handled by different processes.
    """

    def __init__(
        self,
        store: SessionStoreProtocol,
        lookup: RecordLookupProtocol,
        session_ttl_minutes: int = 60,
        report_outages: bool = True,
    ) -> None:
        self.store = store
        self.lookup = lookup
        self.session_ttl_minutes = max(1, int(session_ttl_minutes))
        self.report_outages = bool(report_outages)

    def handle_start(self, user_id: str) -> list[dict[str, Any]]:
        session = Session(
            user_id=str(user_id),
            stage=initial_state(),
            date=None,
            expires_at=self._expires_at(),
        )
        self.store.save_session(session)
        return message_templates.build_welcome_message()

    def handle_text(self, user_id: str, handle: str | None, text: str | None) -> list[dict[str, Any]]:
        session = self.store.get_session(str(user_id))
        if session is None:
            return message_templates.build_start_required_message()

        message_text = (text or "").strip()
        if session.stage == STATE_AWAITING_DATE:
            return self._handle_date(session, message_text)
        if session.stage == STATE_AWAITING_IDENTIFIER:
            return self._handle_identifier(session, handle, message_text)

        exc = UnexpectedStateError(session.user_id, session.stage)
        print(f"unexpected-session-stage error={exc}")
        self.store.delete_session(session.user_id)
        return message_templates.build_unexpected_error_message()

    def _handle_date(self, session: Session, text: str) -> list[dict[str, Any]]:
        try:
            normalized = normalize_date_input(text)
        except YearFormatError:
            return message_templates.build_year_format_error_message()
        except DateFormatError:
            return message_templates.build_date_format_error_message()
        except InvalidDateError:
            return message_templates.build_invalid_date_message()

        session.date = normalized
        session.stage = next_state(session.stage) or STATE_AWAITING_IDENTIFIER
        session.expires_at = self._expires_at()
        self.store.save_session(session)
        return message_templates.build_identifier_prompt_message()

    def _handle_identifier(self, session: Session, handle: str | None, identifier: str) -> list[dict[str, Any]]:
        date = session.date or ""
        try:
            if not date:
                raise UnexpectedStateError(session.user_id, f"{session.stage} without date")
            result = self.lookup.lookup(date, identifier)
            messages = self._reply_for_result(result, date=date, identifier=identifier, handle=handle)
        except Exception as exc:  # noqa: BLE001
            print(f"identifier-stage-failed user_id={session.user_id} error={exc}")
            messages = message_templates.build_lookup_error_message()

        try:
            self.store.delete_session(session.user_id)
        except Exception as exc:  # noqa: BLE001
            print(f"session-delete-failed user_id={session.user_id} error={exc}")
        return messages

    def _reply_for_result(
        self,
        result: LookupResult,
        *,
        date: str,
        identifier: str,
        handle: str | None,
    ) -> list[dict[str, Any]]:
        if result.status == LookupStatus.MISCONFIGURED:
            return message_templates.build_lookup_error_message()
        if result.status == LookupStatus.UNAVAILABLE and self.report_outages:
            return message_templates.build_lookup_unavailable_message()

        record = result.record if result.status == LookupStatus.FOUND else None
        if record is None:
            return message_templates.build_not_found_message(date, identifier)
        if not record.handle_matches(handle):
            return message_templates.build_handle_mismatch_message()
        if record.has_amount:
            return message_templates.build_payment_found_message(record.amount)
        return message_templates.build_no_payment_info_message(date, identifier)

    def _expires_at(self) -> str:
        deadline = datetime.now(timezone.utc) + timedelta(minutes=self.session_ttl_minutes)
        return deadline.isoformat()
