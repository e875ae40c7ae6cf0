from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

CURRENCY_SYMBOL = "€"
CENTS = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Coerce a price coming from JSON, a form or the database to Decimal."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def remaining_amount(record) -> Decimal:
    # Not rounded here; two decimals only when rendered
    return to_decimal(record.get("total_price")) - to_decimal(record.get("deposit_paid"))


def format_currency(amount) -> str:
    return f"{CURRENCY_SYMBOL}{to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)}"


def format_date(value) -> str:
    """Render a calendar date the way the studio writes it (DD/MM/YYYY)."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return value.strftime("%d/%m/%Y")


def payment_status(record) -> str:
    if record.get("deposit_paid_status") and record.get("rest_paid_status"):
        return "Fully Paid"
    if record.get("deposit_paid_status"):
        return "Deposit Paid"
    return "Pending"


def payment_toggle(record, flag):
    """
    Build the partial update that flips one payment flag.

    flag is "deposit" or "rest". Marking the rest as paid also sets the
    legacy is_paid flag; un-marking it leaves is_paid untouched.
    """
    if flag == "deposit":
        return {"deposit_paid_status": not record.get("deposit_paid_status")}
    if flag == "rest":
        rest_paid = not record.get("rest_paid_status")
        return {
            "rest_paid_status": rest_paid,
            "is_paid": True if rest_paid else bool(record.get("is_paid")),
        }
    raise ValueError(f"Unknown payment flag '{flag}'")
