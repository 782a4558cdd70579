"""
Immutable views of invoices and payments for the analytics engines.
The risk and forecast code works on these instead of ORM rows, so it stays
pure and can be fed hand-built data in tests.
"""
import datetime
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..models import Invoice, Payment


@dataclass(frozen=True)
class InvoiceSnapshot:
    id: int
    number: str
    customer_name: str
    date: Optional[datetime.date]
    due_date: Optional[datetime.date]
    status: str
    total: Decimal
    outstanding: Decimal
    customer_email: str = ""
    customer_phone: str = ""

    @property
    def has_contact(self):
        return bool(self.customer_email or self.customer_phone)


@dataclass(frozen=True)
class PaymentSnapshot:
    customer_name: str
    date: Optional[datetime.date]
    amount: Decimal


def invoice_snapshots(company):
    rows = (
        Invoice.objects.active(company)
        .select_related("customer")
        .order_by("id")
    )
    return [
        InvoiceSnapshot(
            id=inv.pk,
            number=inv.number,
            customer_name=inv.customer_name or inv.customer.name,
            date=inv.date,
            due_date=inv.due_date,
            status=inv.status,
            total=inv.total,
            outstanding=inv.outstanding_amount,
            customer_email=inv.customer.email or "",
            customer_phone=inv.customer.phone or "",
        )
        for inv in rows
    ]


def payment_snapshots(company):
    rows = Payment.objects.active(company).order_by("date", "id")
    return [
        PaymentSnapshot(customer_name=p.customer_name, date=p.date, amount=p.amount)
        for p in rows
    ]
