# Client-side style projections over the in-memory reservation list
from datetime import date, datetime


def _as_date(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def matches_search(record, term) -> bool:
    """Case-insensitive substring match on number, first name, last name or phone."""
    needle = (term or "").lower()
    if not needle:
        return True

    haystacks = [
        str(record.get("reservation_number", "")),
        record.get("first_name") or "",
        record.get("last_name") or "",
        record.get("phone") or "",
    ]
    return any(needle in h.lower() for h in haystacks)


def matches_date_range(record, start=None, end=None) -> bool:
    """Inclusive on both ends, compared as calendar dates."""
    appointment = _as_date(record.get("appointment_date"))
    start = _as_date(start)
    end = _as_date(end)

    if appointment is None:
        return start is None and end is None
    if start and appointment < start:
        return False
    if end and appointment > end:
        return False
    return True


def filter_reservations(records, term="", start=None, end=None):
    """Raises ValueError on a malformed start or end bound."""
    start = _as_date(start)
    end = _as_date(end)
    return [
        r
        for r in records
        if matches_search(r, term) and matches_date_range(r, start, end)
    ]
