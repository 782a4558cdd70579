from django.db import models, transaction


# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):
        return self.filter(company=company)

    def active(self, company):
        return self.filter(
            company=company,  # enforce tenant scoping
            is_deleted=False,  # soft-deleted rows never leak into reads
        )
    # Enables query:
    # Invoice.objects.active(request.company)


class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    """Every tenant-owned model exposes .for_company() and .active()."""


class CounterManager(models.Manager):
    def next_value(self, company, key):
        """
        Atomically bump the (company, key) sequence and return the new value.
        The row is locked for the duration of the increment so two callers
        never observe the same number.
        """
        with transaction.atomic():
            counter, _ = self.select_for_update().get_or_create(
                company=company, key=key
            )
            # single UPDATE ... SET seq = seq + 1, no read-then-write in Python
            self.filter(pk=counter.pk).update(seq=models.F("seq") + 1)
            counter.refresh_from_db(fields=["seq"])
            return counter.seq


# Create a line, defaulting price and tax from the Product if not given.
class LineFromProductManager(models.Manager):
    def create_from_product(self, product, **kwargs):
        if kwargs.get("unit_price") is None:
            kwargs["unit_price"] = getattr(product, "unit_price", None)
        if kwargs.get("tax_pct") is None:
            kwargs["tax_pct"] = getattr(product, "tax_pct", None)
        if not kwargs.get("description"):
            kwargs["description"] = getattr(product, "name", "")
        kwargs["product"] = product
        return super().create(**kwargs)
