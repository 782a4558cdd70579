from decimal import Decimal

from django.db import models

from ..managers import LineFromProductManager, TenantManager
from ..services.normalize import BILL_STATUSES
from .base import DocumentLine, FinancialDocument
from .vendor import Vendor

BILL_STATUS_CHOICES = [(s, s.capitalize()) for s in BILL_STATUSES]


# ---------- Bills / BillLines ----------

# Header represents vendor bill (Accounts Payable document)
class Bill(FinancialDocument):
    vendor = models.ForeignKey(
        Vendor,
        # prevent deleting vendor who has a bill
        on_delete=models.PROTECT,
        related_name="bills",
    )
    # Denormalized vendor name for listing
    vendor_name = models.CharField(max_length=200, blank=True, default="")

    # Track workflow
    status = models.CharField(
        max_length=20, choices=BILL_STATUS_CHOICES, default="open"
    )

    TRANSITIONS = {
        "draft": ("open", "approved", "void"),
        "open": ("approved", "paid", "void"),
        "approved": ("open", "paid", "void"),
        "paid": ("void",),
        "void": (),
    }

    objects = TenantManager()

    class Meta:
        # Optimize queries for "lookup by bill number"
        # or "all bills for this vendor."
        indexes = [
            models.Index(fields=["company", "number"], name="bill_company_number_idx"),
            models.Index(fields=["company", "vendor"], name="bill_company_vendor_idx"),
            models.Index(fields=["company", "due_date"], name="bill_company_due_idx"),
        ]

        constraints = [
            # Within one company, each bill number must be unique
            models.UniqueConstraint(
                fields=["company", "number"], name="uq_bill_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(total__gte=0), name="bill_non_negative_total"
            ),
        ]

    def __str__(self):
        return f"Bill: {self.number or self.pk}"

    @property
    def outstanding_amount(self):
        # bills carry no payment rows; anything not paid or void is owed in full
        if self.status in ("paid", "void"):
            return Decimal("0.00")
        return self.total


class BillLine(DocumentLine):
    # Detail line represents individual items/services on the bill

    bill = models.ForeignKey(
        Bill, on_delete=models.CASCADE, related_name="lines")

    objects = models.Manager()
    from_product = LineFromProductManager()

    class Meta(DocumentLine.Meta):
        indexes = [
            models.Index(fields=["company", "bill"], name="billline_company_bill_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0)
                & models.Q(unit_price__gte=0)
                & models.Q(tax_pct__gte=0),
                name="bl_non_negative_amounts",
            ),
        ]

    def save(self, *args, **kwargs):
        # copy company_id from the parent bill
        if not self.company_id and self.bill_id:
            self.company_id = self.bill.company_id
        return super().save(*args, **kwargs)
