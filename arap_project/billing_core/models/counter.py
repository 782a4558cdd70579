from django.db import models

from ..managers import CounterManager


class Counter(models.Model):
    """Per-company monotonically increasing sequence, e.g. key "INV-202510"."""

    company = models.ForeignKey("Company", on_delete=models.CASCADE)
    key = models.CharField(max_length=40)
    seq = models.PositiveIntegerField(default=0)

    objects = CounterManager()

    class Meta:
        constraints = [
            # Prevent duplicate (company, key) rows
            models.UniqueConstraint(
                fields=["company", "key"], name="uq_counter_company_key"
            ),
        ]

    def __str__(self):
        return f"{self.key}: {self.seq}"
