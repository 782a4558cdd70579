from django.utils import timezone

from ..models import Counter


def next_sequence(company, key: str) -> int:
    """Fresh, never reused value for (company, key)."""
    return Counter.objects.next_value(company, key)


def next_document_number(company, prefix: str, on=None) -> str:
    """
    `<PREFIX>-<YYYYMM>-<seq>` with a per-month counter, e.g. INV-202510-0001.
    The sequence comes from the atomic Counter, so concurrent creates never
    collide.
    """
    on = on or timezone.localdate()
    key = f"{prefix}-{on:%Y%m}"
    seq = next_sequence(company, key)
    return f"{key}-{seq:04d}"
