from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.utils import timezone

from ..managers import LineFromProductManager, TenantManager
from ..services.normalize import INVOICE_STATUSES
from .base import DocumentLine, FinancialDocument
from .customer import Customer

INV_STATUS_CHOICES = [(s, s.capitalize()) for s in INVOICE_STATUSES]
""" Workflow:
    draft = not yet finalized.
    sent = issued but not paid.
    overdue = sent and past due (written by the periodic overdue pass).
    paid = fully settled.
    void = canceled, terminal. """


class Invoice(FinancialDocument):  # Represents a customer invoice

    customer = models.ForeignKey(
        Customer,
        # prevent deleting customer who has an invoice
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    # Denormalized snapshot for fast listing; may drift from the customer row
    customer_name = models.CharField(max_length=200, blank=True, default="")

    status = models.CharField(
        max_length=10, choices=INV_STATUS_CHOICES, default="sent"
    )

    # Sum of live payments and what is still owed
    amount_paid = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    outstanding_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    TRANSITIONS = {
        "draft": ("sent", "void"),
        "sent": ("paid", "overdue", "void"),
        "overdue": ("sent", "paid", "void"),
        "paid": ("void",),
        "void": (),  # "void" → (no further transitions)
    }

    objects = TenantManager()

    class Meta:
        # Optimize for fast lookups by invoice number or customer
        indexes = [
            models.Index(fields=["company", "number"], name="invoice_company_number_idx"),
            models.Index(fields=["company", "customer"], name="invoice_company_customer_idx"),
            models.Index(fields=["company", "status"], name="invoice_company_status_idx"),
            models.Index(fields=["company", "due_date"], name="invoice_company_due_idx"),
        ]

        constraints = [
            # Within one company, each invoice number must be unique
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "number"], name="uq_invoice_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(total__gte=0), name="inv_non_negative_total"
            ),
        ]

    def __str__(self):
        return f"Inv {self.number or self.pk}"

    def paid_sum(self):
        if not self.pk:
            return Decimal("0.00")
        return self.payments.filter(is_deleted=False).aggregate(
            total=Sum("amount")
        )["total"] or Decimal("0.00")

    def recalc_outstanding(self):
        self.amount_paid = self.paid_sum()
        # if payments overshoot for any reason, it caps at 0, not negative
        self.outstanding_amount = max(
            self.total - self.amount_paid, Decimal("0.00"))

    @property
    def is_past_due(self):
        return bool(self.due_date and self.due_date < timezone.localdate())


class InvoiceLine(DocumentLine):
    # Each line describes a product/service sold on the invoice

    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="lines")

    objects = models.Manager()
    from_product = LineFromProductManager()  # autofill price/tax from product

    class Meta(DocumentLine.Meta):
        indexes = [
            models.Index(fields=["company", "invoice"], name="invline_company_invoice_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0)
                & models.Q(unit_price__gte=0)
                & models.Q(tax_pct__gte=0),
                name="invl_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"Invoice: {self.invoice.number} - {self.description} - Total: {self.line_total}"

    def save(self, *args, **kwargs):
        # copy company_id from the parent invoice
        if not self.company_id and self.invoice_id:
            self.company_id = self.invoice.company_id
        return super().save(*args, **kwargs)
