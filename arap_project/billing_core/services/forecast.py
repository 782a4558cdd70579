"""
Cash-in forecast.

Two phases:

1. learn how many days customers usually take to pay, overall and per
   customer, from paid invoices and the payments recorded after them;
2. for every open invoice, estimate a settlement date from its due date,
   the learned delay and its late-pay risk, then spread the outstanding
   amount over the following days with a probability mass shape.

An optional early-payment-discount what-if splits each amount into a
"normal" and a "discounted" portion; the discounted portion lands earlier
and is reduced by the discount.

Everything is a deterministic function of the snapshots, the options and
`today`.
"""
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List

from ..conf import billing_setting
from .normalize import clamp, days_between, round_half_up
from .risk import (UNKNOWN_CUSTOMER, build_history, customer_key,
                   late_pay_score)

logger = logging.getLogger(__name__)

SHAPES = ("flat", "linear", "geometric")
TOP_PAYERS = 10

# query-string name -> option field
QUERY_NAMES = {
    "horizonDays": "horizon_days",
    "defaultTerms": "default_terms",
    "multMedium": "mult_medium",
    "multHigh": "mult_high",
    "multCritical": "mult_critical",
    "collectionPush": "collection_push",
    "spreadDays": "spread_days",
    "spreadShape": "spread_shape",
    "discountPercent": "discount_percent",
    "discountUptake": "discount_uptake",
    "discountPullForwardDays": "discount_pull_forward_days",
}


@dataclass(frozen=True)
class ForecastOptions:
    horizon_days: int = 30
    default_terms: int = 30
    mult_medium: float = 1.2
    mult_high: float = 1.6
    mult_critical: float = 2.0
    collection_push: int = 3
    spread_days: int = 7
    spread_shape: str = "geometric"
    discount_percent: float = 2.0
    discount_uptake: float = 35.0
    discount_pull_forward_days: int = 5

    @classmethod
    def from_settings(cls, overrides=None):
        """
        Defaults from BILLING["FORECAST"], then `overrides` keyed by either
        the query-string names (horizonDays, ...) or the field names.
        Values that do not parse keep the default; horizon and spread are
        capped by max_horizon_days and max_spread_days.
        """
        types = {f.name: f.type for f in fields(cls)}
        configured = billing_setting("FORECAST")
        values = {
            f.name: configured.get(f.name, f.default) for f in fields(cls)
        }
        for key, raw in (overrides or {}).items():
            name = QUERY_NAMES.get(key, key)
            if name not in values or raw in (None, ""):
                continue
            if types[name] is str:
                values[name] = str(raw).strip().lower()
                continue
            try:
                number = float(raw)
            except (TypeError, ValueError):
                continue
            if not math.isfinite(number):
                continue
            values[name] = types[name](number)
        values["horizon_days"] = clamp(
            int(values["horizon_days"]), 1, int(configured["max_horizon_days"]))
        values["spread_days"] = clamp(
            int(values["spread_days"]), 1, int(configured["max_spread_days"]))
        if values["spread_shape"] not in SHAPES:
            values["spread_shape"] = "geometric"
        return cls(**values)


@dataclass
class LearnedDelays:
    overall_avg: int = 0
    per_customer_avg: Dict[str, int] = field(default_factory=dict)

    def delay_for(self, name):
        return self.per_customer_avg.get(
            (name or "").lower(), self.overall_avg)


@dataclass(frozen=True)
class ForecastSlice:
    expected_date: object
    number: str
    customer: str
    status: str
    risk: int
    portion: str
    amount: float


@dataclass
class TopPayer:
    number: str
    customer: str
    earliest: object
    amount: float
    risk: int
    status: str


@dataclass
class Forecast:
    daily: List[tuple]
    total: float
    detail: List[ForecastSlice]
    top_payers: List[TopPayer]
    learned: LearnedDelays
    options: ForecastOptions


def _lower_key(name):
    return (name or UNKNOWN_CUSTOMER).lower()


def _average(values):
    if not values:
        return 0
    return round_half_up(Decimal(sum(values)) / len(values))


def learn_delays(invoices, payments):
    """
    For each paid invoice, the delay is the smallest non-negative number
    of days between its date and a payment by the same customer.
    Customers are matched case-insensitively by name.
    """
    by_customer = defaultdict(list)
    for p in payments:
        if p.date:
            by_customer[_lower_key(p.customer_name)].append(p.date)

    overall = []
    per_customer = defaultdict(list)
    for inv in invoices:
        if inv.status != "paid" or not inv.date:
            continue
        key = _lower_key(inv.customer_name)
        deltas = [
            days_between(inv.date, paid_on)
            for paid_on in by_customer.get(key, ())
        ]
        deltas = [d for d in deltas if d >= 0]
        if not deltas:
            continue
        best = min(deltas)
        overall.append(best)
        per_customer[key].append(best)

    return LearnedDelays(
        overall_avg=_average(overall),
        per_customer_avg={key: _average(v) for key, v in per_customer.items()},
    )


def prob_mass(n, shape, risk=0):
    """
    Weights for n consecutive days, summing to 1.
    flat: uniform. linear: n, n-1, ..., 1. geometric: (1-p)^k with
    p = 0.75 - risk/100 * 0.30, so riskier invoices get a longer tail.
    """
    n = max(1, int(n))
    if shape == "flat":
        return [1.0 / n] * n
    if shape == "linear":
        weights = [float(n - i) for i in range(n)]
    else:
        p = 0.75 - (clamp(risk, 0, 100) / 100.0) * 0.30
        weights = [(1 - p) ** k for k in range(n)]
    total = sum(weights)
    return [w / total for w in weights]


def risk_multiplier(score, options):
    if score >= 80:
        return options.mult_critical
    if score >= 60:
        return options.mult_high
    if score >= 35:
        return options.mult_medium
    return 1.0


def expected_date(invoice, options, learned, risk, today):
    """
    Due date (or invoice date + default terms) shifted by the learned
    delay scaled by risk, minus the collection push, clamped to the
    horizon. None when the invoice has neither date.
    """
    due = invoice.due_date
    if due is None and invoice.date:
        due = invoice.date + timedelta(days=options.default_terms)
    if due is None:
        return None

    base_delay = learned.delay_for(customer_key(invoice))
    shift = round_half_up(base_delay * risk_multiplier(risk, options))
    shift -= abs(int(options.collection_push))
    estimate = due + timedelta(days=shift)

    horizon_end = today + timedelta(days=options.horizon_days - 1)
    return clamp(estimate, today, horizon_end)


def build_forecast(invoices, payments, today, options=None):
    options = options or ForecastOptions.from_settings()
    invoices = list(invoices)
    learned = learn_delays(invoices, payments)
    history = build_history(invoices, today)

    horizon_end = today + timedelta(days=options.horizon_days - 1)
    days = [today + timedelta(days=i) for i in range(options.horizon_days)]
    buckets = {day: 0.0 for day in days}
    detail = []

    uptake = clamp(options.discount_uptake / 100.0, 0.0, 1.0)
    discount = clamp(options.discount_percent / 100.0, 0.0, 1.0)
    pull = max(0, round_half_up(options.discount_pull_forward_days))

    for inv in invoices:
        if inv.status in ("paid", "void"):
            continue
        amount = float(inv.outstanding or 0)
        if amount <= 0:
            continue
        risk = late_pay_score(inv, history.get(customer_key(inv)), today)
        estimate = expected_date(inv, options, learned, risk, today)
        if estimate is None:
            continue

        mass = prob_mass(options.spread_days, options.spread_shape, risk)
        portions = (
            ("normal", amount * (1 - uptake), 0),
            ("discounted", amount * uptake * (1 - discount), pull),
        )
        for portion, portion_amount, shift in portions:
            if portion_amount <= 0:
                continue
            for k, weight in enumerate(mass):
                day = clamp(estimate + timedelta(days=k - shift), today, horizon_end)
                piece = portion_amount * weight
                buckets[day] += piece
                detail.append(ForecastSlice(
                    expected_date=day,
                    number=inv.number,
                    customer=customer_key(inv),
                    status=inv.status,
                    risk=risk,
                    portion=portion,
                    amount=piece,
                ))

    daily = [(day, round(buckets[day], 2)) for day in days]
    total = round(sum(amount for _, amount in daily), 2)

    payers = {}
    for piece in detail:
        payer = payers.get(piece.number)
        if payer is None:
            payer = payers[piece.number] = TopPayer(
                number=piece.number, customer=piece.customer,
                earliest=piece.expected_date, amount=0.0,
                risk=piece.risk, status=piece.status)
        payer.amount += piece.amount
        payer.earliest = min(payer.earliest, piece.expected_date)
    for payer in payers.values():
        payer.amount = round(payer.amount, 2)
    top_payers = sorted(
        payers.values(), key=lambda p: (p.earliest, -p.amount))[:TOP_PAYERS]

    detail = [
        replace(piece, amount=round(piece.amount, 2))
        for piece in detail
    ]
    logger.debug("Forecast over %d day(s): %d slice(s), total %s",
                 options.horizon_days, len(detail), total)
    return Forecast(daily=daily, total=total, detail=detail,
                    top_payers=top_payers, learned=learned, options=options)
