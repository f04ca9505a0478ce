from __future__ import annotations

import re
from datetime import date
from typing import Any

_LOOSE_DATE_RE = re.compile(r"(\d{4})[.-](\d{1,2})[.-](\d{1,2})")


def normalize_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` for text containing a ``YYYY[-.]MM[-.]DD`` date, else ``None``.

    Never guesses: text without a matching fragment, or a fragment that is not a
    real calendar date (``2023-02-30``), normalizes to ``None``.
    """
    if not isinstance(value, str):
        return None
    match = _LOOSE_DATE_RE.search(value)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_calendar_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    normalized = normalize_date(value)
    if normalized is None:
        return None
    return date.fromisoformat(normalized)
