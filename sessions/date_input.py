from __future__ import annotations

import re
from datetime import date

from core.errors import DateFormatError, InvalidDateError, YearFormatError

_DATE_SPLIT_RE = re.compile(r"[.,/]")
_DIGITS_RE = re.compile(r"[0-9]+")


def normalize_date_input(text: str) -> str:
    """Turn a user-typed ``D.M.YY``-style date into canonical ``DD.MM.YYYY``.

    Accepted separators are ``.``, ``,`` and ``/``; a two-digit year is read as
    20YY. Raises :class:`DateFormatError` when the text does not have three
    parts, :class:`YearFormatError` when the year is neither two nor four
    digits, and
    :class:`InvalidDateError` when the parts do not name a real calendar day.
    """
    parts = _DATE_SPLIT_RE.split((text or "").strip())
    if len(parts) != 3:
        raise DateFormatError(f"expected day, month and year: {text!r}")

    day, month, year = (part.strip() for part in parts)
    day = day.rjust(2, "0")
    month = month.rjust(2, "0")
    if len(year) == 2:
        year = f"20{year}"
    elif len(year) != 4:
        raise YearFormatError(f"year must have 2 or 4 digits: {text!r}")

    if not all(_DIGITS_RE.fullmatch(part) for part in (day, month, year)):
        raise InvalidDateError(f"date parts must be numeric: {text!r}")

    day_num, month_num, year_num = int(day), int(month), int(year)
    if len(day) != 2 or len(month) != 2:
        raise InvalidDateError(f"day or month too long: {text!r}")
    if not (1 <= day_num <= 31 and 1 <= month_num <= 12):
        raise InvalidDateError(f"day or month out of range: {text!r}")
    try:
        date(year_num, month_num, day_num)
    except ValueError as exc:
        raise InvalidDateError(f"not a calendar date: {text!r}") from exc

    return f"{day}.{month}.{year}"
