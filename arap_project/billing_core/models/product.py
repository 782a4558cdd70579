from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .base import TenantScopedModel


# ---------- Products (optional product/service catalogue) ----------
class Product(TenantScopedModel):  # Something a company sells & purchases

    # Human-facing code like "PROD-202510-0001" (unique per company)
    code = models.CharField(max_length=64)

    # Required human-readable name of the product
    name = models.CharField(max_length=200)

    # Stock Keeping Unit (optional)
    sku = models.CharField(max_length=80, null=True, blank=True)
    unit = models.CharField(max_length=20, default="unit")

    # Defaults copied onto invoice/bill lines that reference the product
    unit_price = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0.00")
    )
    tax_pct = models.DecimalField(
        max_digits=7, decimal_places=3, default=Decimal("0.00")
    )

    description = models.TextField(blank=True, default="")
    active = models.BooleanField(default=True)

    class Meta:
        # for fast lookups
        indexes = [models.Index(fields=["company", "name"], name="product_company_name_idx")]

        # Ensure each code is unique within a company
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"], name="uq_company_product_code"
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0) & models.Q(tax_pct__gte=0),
                name="product_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError("Name is required")
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError("Unit price must be >= 0")
        if self.tax_pct is not None and self.tax_pct < 0:
            raise ValidationError("Tax percent must be >= 0")

    def save(self, *args, **kwargs):
        self.full_clean(validate_unique=False, validate_constraints=False)
        return super().save(*args, **kwargs)
