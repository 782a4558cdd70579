from django.db import models

from .base import PartyModel


# ---------- Customer ----------
# Represents client who receives invoices (AR side)
class Customer(PartyModel):

    class Meta:
        indexes = [
            models.Index(fields=["company", "name"], name="customer_company_name_idx"),
            models.Index(fields=["company", "code"], name="customer_company_code_idx"),
        ]

        # Enforce uniqueness per tenant among live rows, so a soft-deleted
        # customer never blocks re-creating the same name
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                condition=models.Q(is_deleted=False),
                name="uq_company_customer_name",
            ),
        ]
