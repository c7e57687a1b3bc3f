# src/taskledger/dates.py

"""Date helpers shared by storage, the ledger codec and the command layer."""

from __future__ import annotations

from datetime import date

DATE_FORMAT_HINT = "YYYY-MM-DD"


def to_iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def from_iso(raw: str | None) -> date | None:
    if raw is None or raw == "":
        return None
    return date.fromisoformat(raw)


def parse_date(value: str, *, today: date | None = None) -> date:
    """
    Parse a user supplied date.

    Accepts ISO dates and the literal "NOW" (case-insensitive), which maps to
    `today` (or date.today()).
    """
    raw = (value or "").strip()
    if raw.upper() == "NOW":
        return today if today is not None else date.today()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValueError(f"invalid date '{value}', expected {DATE_FORMAT_HINT}") from None


def parse_optional_date(value: str, *, today: date | None = None) -> date | None:
    """Empty string means "no date" (used to clear a deadline)."""
    if not (value or "").strip():
        return None
    return parse_date(value, today=today)
