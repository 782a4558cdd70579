"""
Pure helpers shared by every document workflow: status vocabularies,
date/number coercion, amount rounding and payload alias lookup.
"""
import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..conf import amount_quantum

# ------------------------------------
# Status vocabularies
# ------------------------------------
# Invoice and Bill use different words for "issued but unpaid";
# keep the two tables independent.
INVOICE_STATUSES = ("draft", "sent", "overdue", "paid", "void")
INVOICE_STATUS_SYNONYMS = {
    "open": "sent",
    "unpaid": "sent",
    "outstanding": "sent",
    "issued": "sent",
    "settled": "paid",
    "completed": "paid",
    "cancelled": "void",
    "canceled": "void",
    "voided": "void",
    "past due": "overdue",
    "past_due": "overdue",
    "late": "overdue",
}

BILL_STATUSES = ("draft", "open", "approved", "paid", "void")
BILL_STATUS_SYNONYMS = {
    "pending": "open",
    "unpaid": "open",
    "issued": "open",
    "completed": "paid",
    "settled": "paid",
    "cancelled": "void",
    "canceled": "void",
    "voided": "void",
}


def normalize_status(raw, vocabulary, synonyms):
    """
    Map free text onto a closed status vocabulary.
    Returns None when the value is not recognised; the caller decides
    whether that is fatal.
    """
    if raw is None:
        return None
    key = str(raw).strip().lower()
    if not key:
        return None
    key = synonyms.get(key, key)
    return key if key in vocabulary else None


def normalize_invoice_status(raw):
    return normalize_status(raw, INVOICE_STATUSES, INVOICE_STATUS_SYNONYMS)


def normalize_bill_status(raw):
    return normalize_status(raw, BILL_STATUSES, BILL_STATUS_SYNONYMS)


# ------------------------------------
# Dates
# ------------------------------------
def parse_date(value):
    """Accept date, datetime or ISO-8601 text; anything else gives None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    try:
        return datetime.date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def days_between(start, end):
    """Whole days from start to end (negative when end is earlier)."""
    return (end - start).days


# ------------------------------------
# Numbers and amounts
# ------------------------------------
def parse_number(value, default=None):
    """
    Tolerant numeric parsing: "1,200.50" -> Decimal("1200.50").
    Empty input returns `default`; garbage raises ValueError.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).replace(",", "").replace(" ", "")
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    if not number.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return number


def quantize_amount(value):
    return Decimal(value).quantize(amount_quantum(), rounding=ROUND_HALF_UP)


def round_half_up(value):
    """Integer rounding where .5 always goes up (43.5 -> 44)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp(value, low, high):
    return max(low, min(high, value))


# ------------------------------------
# Payload helpers
# ------------------------------------
_MISSING = object()


def pick(payload, *keys, default=None):
    """First present (non-None) value among alias keys."""
    for key in keys:
        value = payload.get(key, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def has_any(payload, *keys):
    return any(key in payload for key in keys)


def parse_pk(value):
    """Positive integer ids only; returns None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    text = str(value or "").strip()
    if text.isdigit() and int(text) > 0:
        return int(text)
    return None
