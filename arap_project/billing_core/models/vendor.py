from django.db import models

from .base import PartyModel


class Vendor(PartyModel):  # Mirrors Customer but for Accounts Payable (AP)

    class Meta:
        indexes = [
            models.Index(fields=["company", "name"], name="vendor_company_name_idx"),
            models.Index(fields=["company", "code"], name="vendor_company_code_idx"),
        ]

        # Vendor names must be unique per company
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                condition=models.Q(is_deleted=False),
                name="uq_company_vendor_name",
            ),
        ]
