"""
Read-only rollups for the dashboard and the period report.
Nothing here writes; amounts come straight from stored document totals.
"""
import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.utils import timezone

from ..models import Bill, Invoice, Payment
from .normalize import days_between, parse_date

logger = logging.getLogger(__name__)

RANGES = {"7d": 7, "30d": 30, "90d": 90}
TREND_DAYS = 14
AGING_BUCKETS = (("0-30", 30), ("31-60", 60), ("61-90", 90), ("90+", None))
AR_OPEN_STATUSES = ("sent", "overdue")
AP_OPEN_STATUSES = ("open", "approved")
ZERO = Decimal("0.00")


def _sum(qs, field):
    return qs.aggregate(total=Sum(field))["total"] or ZERO


def aging_buckets(rows, today):
    """
    Spread (due_date, amount) pairs over 0-30 / 31-60 / 61-90 / 90+ days
    past due. Documents not yet due, or without a due date or amount, are
    left out.
    """
    buckets = OrderedDict((label, ZERO) for label, _ in AGING_BUCKETS)
    for due, amount in rows:
        if not due or not amount:
            continue
        days = days_between(due, today)
        if days <= 0:
            continue
        for label, upper in AGING_BUCKETS:
            if upper is None or days <= upper:
                buckets[label] += Decimal(amount)
                break
    return [{"bucket": label, "amount": amount} for label, amount in buckets.items()]


def _daily_series(rows, start, days, value_key):
    by_day = {row["date"]: row[value_key] for row in rows}
    return [by_day.get(start + timedelta(days=i), 0) for i in range(days)]


def collection_rate(paid, open_amount, overdue_amount):
    collectible = paid + open_amount + overdue_amount
    if not collectible:
        return 0.0
    return float(paid) / float(collectible) * 100


def dashboard(company, range_key="30d", today=None):
    today = today or timezone.localdate()
    days = RANGES.get(str(range_key or "30d"), 30)
    range_start = today - timedelta(days=days - 1)
    trend_start = today - timedelta(days=TREND_DAYS - 1)

    invoices = Invoice.objects.active(company)
    payments = Payment.objects.active(company)
    bills = Bill.objects.active(company)

    ar_open = _sum(invoices.filter(status="sent"), "total")
    ar_overdue = _sum(invoices.filter(status="overdue"), "total")
    ar_paid = _sum(invoices.filter(status="paid"), "total")

    cards = {
        "total_invoiced": _sum(invoices.exclude(status="void"), "total"),
        "ar_open": ar_open,
        "ar_overdue": ar_overdue,
        "ar_overdue_count": invoices.filter(status="overdue").count(),
        "ar_paid": ar_paid,
        "total_outstanding": _sum(
            invoices.filter(status__in=AR_OPEN_STATUSES), "outstanding_amount"),
        "ap_open": _sum(bills.filter(status__in=AP_OPEN_STATUSES), "total"),
        "ap_overdue_count": bills.filter(
            status__in=AP_OPEN_STATUSES, due_date__lt=today).count(),
        "cash_in": _sum(
            payments.filter(date__gte=range_start, date__lte=today), "amount"),
        "collection_rate": collection_rate(ar_paid, ar_open, ar_overdue),
    }

    invoiced_by_day = (
        invoices.filter(date__gte=trend_start, date__lte=today)
        .values("date").annotate(count=Count("id"))
    )
    paid_by_day = (
        payments.filter(date__gte=trend_start, date__lte=today)
        .values("date").annotate(total=Sum("amount"))
    )
    billed_by_day = (
        bills.filter(date__gte=trend_start, date__lte=today)
        .values("date").annotate(count=Count("id"))
    )
    charts = {
        "days": [trend_start + timedelta(days=i) for i in range(TREND_DAYS)],
        "invoiced_by_day": _daily_series(invoiced_by_day, trend_start, TREND_DAYS, "count"),
        "payments_by_day": _daily_series(paid_by_day, trend_start, TREND_DAYS, "total"),
        "bills_by_day": _daily_series(billed_by_day, trend_start, TREND_DAYS, "count"),
    }

    top_customers = [
        {"customer": row["customer_name"], "total": row["total"]}
        for row in (
            invoices.filter(date__gte=today - timedelta(days=89), date__lte=today)
            .exclude(status="void")
            .values("customer_name")
            .annotate(total=Sum("total"))
            .order_by("-total", "customer_name")[:5]
        )
    ]

    recent_payments = list(
        payments.filter(date__gte=range_start, date__lte=today)
        .select_related("invoice")
        .order_by("-date", "-id")[:5]
    )
    upcoming_bills = list(
        bills.filter(status__in=AP_OPEN_STATUSES, due_date__gte=today)
        .order_by("due_date", "id")[:5]
    )

    return {
        "range": {"key": range_key if range_key in RANGES else "30d",
                  "from": range_start, "to": today},
        "cards": cards,
        "charts": charts,
        "top_customers": top_customers,
        "recent_payments": recent_payments,
        "upcoming_bills": upcoming_bills,
    }


def period_report(company, date_from=None, date_to=None, today=None):
    today = today or timezone.localdate()
    end = parse_date(date_to) or today
    start = parse_date(date_from) or (end - timedelta(days=29))

    invoices = Invoice.objects.active(company)
    bills = Bill.objects.active(company)

    in_range = list(
        invoices.filter(date__gte=start, date__lte=end)
        .exclude(status="void")
        .order_by("-date", "-id")
    )
    inv_total = sum((inv.total for inv in in_range), ZERO)
    inv_count = len(in_range)

    payments = list(
        Payment.objects.active(company)
        .filter(date__gte=start, date__lte=end)
        .select_related("invoice")
        .order_by("-date", "-id")
    )

    by_customer = {}
    for inv in in_range:
        by_customer[inv.customer_name] = by_customer.get(inv.customer_name, ZERO) + inv.total
    top_customers = sorted(
        ({"customer": name, "total": total} for name, total in by_customer.items()),
        key=lambda row: (-row["total"], row["customer"]),
    )[:10]

    ap_open = bills.filter(status__in=AP_OPEN_STATUSES)
    ar_rows = invoices.filter(status__in=AR_OPEN_STATUSES).values_list(
        "due_date", "outstanding_amount")
    ap_rows = ap_open.values_list("due_date", "total")

    return {
        "range": {"from": start, "to": end},
        "summary": {
            "invoices": {
                "total": inv_total,
                "count": inv_count,
                "average": (inv_total / inv_count) if inv_count else ZERO,
                "tax_collected": sum((inv.tax for inv in in_range), ZERO),
            },
            "payments": {
                "total": sum((p.amount for p in payments), ZERO),
                "count": len(payments),
            },
            "ap": {
                "open": _sum(ap_open.filter(date__gte=start, date__lte=end), "total"),
                "overdue": _sum(ap_open.filter(due_date__lt=today), "total"),
            },
        },
        "ar_aging": aging_buckets(ar_rows, today),
        "ap_aging": aging_buckets(ap_rows, today),
        "invoices": in_range,
        "top_customers": top_customers,
        "recent_payments": payments[:10],
    }
