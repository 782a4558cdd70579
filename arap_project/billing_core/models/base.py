from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from ..services.normalize import quantize_amount


class TenantScopedModel(models.Model):
    """Company stamp, soft-delete flag and timestamps shared by every record."""

    # Multi-tenant: every row belongs to exactly one company
    company = models.ForeignKey("billing_core.Company", on_delete=models.CASCADE)
    # Rows are flagged, never removed, by the normal delete workflows
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        abstract = True


class PartyModel(TenantScopedModel):
    """Fields shared by Customer (AR side) and Vendor (AP side)."""

    name = models.CharField(max_length=200)
    # Optional human-readable code, e.g. "CUS-0042"
    code = models.CharField(max_length=64, null=True, blank=True)
    email = models.EmailField(null=True, blank=True)
    phone = models.CharField(max_length=32, null=True, blank=True)
    address = models.CharField(max_length=300, null=True, blank=True)
    city = models.CharField(max_length=100, null=True, blank=True)
    gstin = models.CharField(max_length=32, null=True, blank=True)
    # Standard credit terms
    payment_terms_days = models.IntegerField(default=30)
    """ Example: If terms = 30 → invoice due 30 days after issue. """
    notes = models.TextField(null=True, blank=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.name

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError("Name is required")
        self.name = self.name.strip()
        if self.payment_terms_days is not None and self.payment_terms_days < 0:
            raise ValidationError("Payment terms must be >= 0 days")
        return super().clean()

    def save(self, *args, **kwargs):
        # uniqueness is checked by the services so it surfaces as a conflict
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)


class FinancialDocument(TenantScopedModel):
    """Header fields shared by Invoice (AR) and Bill (AP)."""

    # human-readable, e.g. "INV-202510-0001"
    number = models.CharField(max_length=64)
    date = models.DateField()  # issue date
    due_date = models.DateField(null=True, blank=True)

    subtotal = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    tax = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # Always subtotal + tax, recomputed whenever lines change
    total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    notes = models.TextField(null=True, blank=True)

    # Optional audit fields
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    # Current state vs. allowed next states; set on each subclass
    TRANSITIONS = {}

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.number or self.pk}"

    """ Ensure document totals are always in sync with its lines """

    def recalc_totals(self):
        # guard if no pk: there are no lines yet
        if not getattr(self, "pk", None):
            self.subtotal = self.tax = self.total = Decimal("0.00")
            return
        lines = list(self.lines.all())
        self.subtotal = sum((line.net_amount for line in lines), Decimal("0.00"))
        self.tax = sum((line.tax_amount for line in lines), Decimal("0.00"))
        self.total = self.subtotal + self.tax

    def can_transition(self, new_status):
        if new_status == self.status:
            return True
        return new_status in self.TRANSITIONS.get(self.status, ())

    def transition_to(self, new_status):
        # Look up what states are allowed from current self.status
        if not self.can_transition(new_status):
            # If requested new_status isn't allowed → block it
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")
        self.status = new_status

    def clean(self):
        if self.total is not None and self.total < 0:
            raise ValidationError("Total cannot be negative")
        if self.due_date and self.date and self.due_date < self.date:
            raise ValidationError("Due date cannot be before the document date")
        return super().clean()

    def save(self, *args, **kwargs):
        # number uniqueness is checked by the services and reported as a conflict
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)


class DocumentLine(models.Model):
    """
    One priced row on an Invoice or Bill.

    Canonical computation for both document types:
        net_amount = q(quantity * unit_price)
        tax_amount = q(net_amount * tax_pct / 100)
        line_total = net_amount + tax_amount
    where q() rounds half-up to BILLING["AMOUNT_QUANTUM"].
    """

    company = models.ForeignKey("billing_core.Company", on_delete=models.CASCADE)
    # Keeps the order the lines were submitted in
    position = models.PositiveIntegerField(default=0)
    product = models.ForeignKey(
        "billing_core.Product",
        null=True,
        blank=True,
        # Prevent deleting a product which has been invoiced
        on_delete=models.PROTECT,
        related_name="+",
    )
    description = models.TextField(blank=True, default="")
    quantity = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("1")
    )
    unit_price = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0.00")
    )
    tax_pct = models.DecimalField(
        max_digits=7, decimal_places=3, default=Decimal("0.00")
    )
    net_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    line_total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        abstract = True
        ordering = ["position", "id"]

    def compute_amounts(self):
        qty = self.quantity or Decimal("0")
        price = self.unit_price or Decimal("0")
        pct = self.tax_pct or Decimal("0")
        self.net_amount = quantize_amount(qty * price)
        self.tax_amount = quantize_amount(self.net_amount * pct / Decimal("100"))
        self.line_total = self.net_amount + self.tax_amount

    """ Ensure individual line amounts are valid """

    def clean(self):
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError("Quantity must be >= 0")
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError("Unit price must be >= 0")
        if self.tax_pct is not None and self.tax_pct < 0:
            raise ValidationError("Tax percent must be >= 0")
        # Tenant safety: a product from another company never lands on a line
        if self.product_id and self.product.company_id != self.company_id:
            raise ValidationError("Line product must belong to the same company")

    """ Ensure no inconsistent line can ever be persisted """

    def save(self, *args, **kwargs):
        # compute amounts always, regardless of input
        self.compute_amounts()
        self.full_clean()
        return super().save(*args, **kwargs)
