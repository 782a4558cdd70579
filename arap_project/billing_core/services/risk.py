"""
Late-payment risk scoring.

Each open invoice gets a 0-100 score from five clamped terms:

    lateness      1.2 points per day past due, up to 40
                  (or up to 12 "approaching" points in the last 7 days
                  before the due date)
    amount tier   0 / 4 / 8 / 12 by invoice total
    history       4 per prior overdue (max 16) plus 0.3 per average
                  day past due (max 12) for the same customer
    contact       +4 when neither email nor phone is on file
    status        +6 when the invoice is already overdue

The score is rounded half-up and banded Low / Medium / High / Critical.
Everything here is a pure function of the snapshots and `today`.
"""
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from .normalize import clamp, days_between, round_half_up

UNKNOWN_CUSTOMER = "Unknown"

LATENESS_RATE = Decimal("1.2")
LATENESS_CAP = Decimal("40")
APPROACH_WINDOW = 7
APPROACH_RATE = Decimal("2")
APPROACH_CAP = Decimal("12")
OVERDUE_POINTS = Decimal("4")
OVERDUE_CAP = Decimal("16")
AVG_DELAY_RATE = Decimal("0.3")
AVG_DELAY_CAP = Decimal("12")
NO_CONTACT_POINTS = Decimal("4")
OVERDUE_STATUS_POINTS = Decimal("6")

BANDS = ((80, "Critical"), (60, "High"), (35, "Medium"))


@dataclass(frozen=True)
class PeerHistory:
    overdues: int = 0
    avg_days_past_due: int = 0


@dataclass(frozen=True)
class RiskRow:
    invoice: object
    score: int
    band: str


def customer_key(invoice):
    return invoice.customer_name or UNKNOWN_CUSTOMER


def days_past_due(invoice, today):
    """Positive once the due date has passed; 0 when there is no due date."""
    if not invoice.due_date:
        return 0
    return days_between(invoice.due_date, today)


HISTORY_EXCLUDED = ("draft", "void")


def build_history(invoices, today):
    """
    Per-customer payment history over every invoice of the company:
    how many were overdue (flagged, or past due and unpaid) and the
    rounded average number of days past due. Drafts and void invoices are
    left out.
    """
    overdues = defaultdict(int)
    days_past = defaultdict(int)
    counts = defaultdict(int)
    for inv in invoices:
        if inv.status in HISTORY_EXCLUDED:
            continue
        key = customer_key(inv)
        dpd = days_past_due(inv, today)
        if inv.status == "overdue" or (inv.due_date and dpd > 0 and inv.status != "paid"):
            overdues[key] += 1
        days_past[key] += max(0, dpd)
        counts[key] += 1
    return {
        key: PeerHistory(
            overdues=overdues[key],
            avg_days_past_due=round_half_up(Decimal(days_past[key]) / counts[key]),
        )
        for key in counts
    }


def amount_tier(amount):
    amount = Decimal(amount or 0)
    if amount <= 0:
        return Decimal("0")
    if amount < 10000:
        return Decimal("4")
    if amount < 50000:
        return Decimal("8")
    return Decimal("12")


def late_pay_score(invoice, history, today):
    dpd = days_past_due(invoice, today)
    points = clamp(Decimal(dpd) * LATENESS_RATE, Decimal("0"), LATENESS_CAP)
    if invoice.due_date and -APPROACH_WINDOW <= dpd <= 0:
        points += clamp(
            (APPROACH_WINDOW + dpd) * APPROACH_RATE, Decimal("0"), APPROACH_CAP)

    points += amount_tier(invoice.total)

    history = history or PeerHistory()
    points += clamp(history.overdues * OVERDUE_POINTS, Decimal("0"), OVERDUE_CAP)
    points += clamp(
        Decimal(history.avg_days_past_due) * AVG_DELAY_RATE,
        Decimal("0"), AVG_DELAY_CAP)

    if not invoice.has_contact:
        points += NO_CONTACT_POINTS
    if invoice.status == "overdue":
        points += OVERDUE_STATUS_POINTS

    return clamp(round_half_up(points), 0, 100)


def risk_band(score):
    for floor, band in BANDS:
        if score >= floor:
            return band
    return "Low"


def score_invoices(invoices, today):
    """Risk rows for every open invoice, highest score first."""
    invoices = list(invoices)
    history = build_history(invoices, today)
    rows = []
    for inv in invoices:
        if inv.status in ("paid", "void"):
            continue
        score = late_pay_score(inv, history.get(customer_key(inv)), today)
        rows.append(RiskRow(invoice=inv, score=score, band=risk_band(score)))
    rows.sort(key=lambda row: row.score, reverse=True)
    return rows
