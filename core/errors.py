from __future__ import annotations


class BotError(RuntimeError):
    pass


class ConfigurationError(BotError):
    pass


class SheetsAuthError(BotError):
    pass


class RecordLookupError(BotError):
    pass


class DateValidationError(BotError, ValueError):
    pass


class DateFormatError(DateValidationError):
    pass


class YearFormatError(DateFormatError):
    pass


class InvalidDateError(DateValidationError):
    pass


class UnexpectedStateError(BotError):
    def __init__(self, user_id: str, stage: str) -> None:
        super().__init__(f"unexpected session stage: user_id={user_id} stage={stage}")
        self.user_id = user_id
        self.stage = stage
