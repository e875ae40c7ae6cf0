from datetime import datetime, timedelta

from ..utils.formatting import to_decimal

PERIODS = {
    "today": "Today",
    "yesterday": "Yesterday",
    "week": "Last 7 Days",
    "month": "Last 30 Days",
}


def period_bounds(period, now=None):
    """
    Return the half-open [start, end) window for an analytics period.

    Windows are anchored at local midnight of ``now``; "week" and "month"
    reach back 7 and 30 days and include all of today.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period '{period}'")

    now = now or datetime.now()
    today = datetime(now.year, now.month, now.day)
    tomorrow = today + timedelta(days=1)

    if period == "today":
        return today, tomorrow
    if period == "yesterday":
        return today - timedelta(days=1), today
    if period == "week":
        return today - timedelta(days=7), tomorrow
    return today - timedelta(days=30), tomorrow


def _created_at(record):
    value = record.get("created_at")
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value


def reservations_in_period(records, period, now=None):
    """Reservations created inside the period, newest first."""
    start, end = period_bounds(period, now)
    selected = [
        r for r in records if _created_at(r) is not None and start <= _created_at(r) < end
    ]
    return sorted(selected, key=_created_at, reverse=True)


def summarize(records):
    total_reservations = len(records)
    total_revenue = sum((to_decimal(r.get("total_price")) for r in records), to_decimal(0))
    total_deposits = sum((to_decimal(r.get("deposit_paid")) for r in records), to_decimal(0))

    average_ticket = to_decimal(0)
    if total_reservations > 0:
        average_ticket = total_revenue / total_reservations

    fully_paid = [
        r for r in records if r.get("deposit_paid_status") and r.get("rest_paid_status")
    ]

    return {
        "total_reservations": total_reservations,
        "total_revenue": total_revenue,
        "total_deposits": total_deposits,
        "average_ticket": average_ticket,
        "fully_paid_count": len(fully_paid),
        "pending_count": total_reservations - len(fully_paid),
    }
