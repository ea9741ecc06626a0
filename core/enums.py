from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    AWAITING_DATE = "awaiting_date"
    AWAITING_IDENTIFIER = "awaiting_identifier"


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    MISCONFIGURED = "misconfigured"


class SheetColumn:
    IDENTIFIER = 2
    DATE = 3
    HANDLE = 4
    AMOUNT = 5

    REQUIRED_WIDTH = DATE + 1
