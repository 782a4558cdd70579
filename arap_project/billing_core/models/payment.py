from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .base import TenantScopedModel
from .invoice import Invoice

PAYMENT_METHODS = ["UPI", "Bank", "Card", "Cash"]
# Method stays free text; these are the values the UI offers


class Payment(TenantScopedModel):
    """Money received against exactly one invoice (AR settlement)."""

    # Human id, e.g. "PMT-202510-0007"
    reference = models.CharField(max_length=64)

    invoice = models.ForeignKey(
        Invoice,
        # live payments block the delete (see signals)
        on_delete=models.CASCADE,
        related_name="payments",
    )
    # Denormalized payer name, used for listing and delay learning
    customer_name = models.CharField(max_length=200, blank=True, default="")

    amount = models.DecimalField(max_digits=18, decimal_places=2)
    date = models.DateField()
    method = models.CharField(max_length=40, blank=True, default="UPI")
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    class Meta:
        indexes = [
            models.Index(fields=["company", "invoice"], name="payment_company_invoice_idx"),
            models.Index(fields=["company", "date"], name="payment_company_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "reference"], name="uq_payment_company_reference"
            ),
            # Ensure amount is always positive
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="payment_positive_amount"
            ),
        ]

    def __str__(self):
        return f"{self.reference} → Inv: {self.invoice.number} ({self.amount})"

    def clean(self):
        if self.amount is None or self.amount <= Decimal("0"):
            raise ValidationError("Payment amount must be positive")
        # Prevent cross-company contamination
        if self.invoice_id and self.invoice.company_id != self.company_id:
            raise ValidationError("Invoice must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)
