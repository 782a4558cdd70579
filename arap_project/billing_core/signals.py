from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from .exceptions import ConflictError
from .models import Bill, BillLine, Invoice, InvoiceLine, Payment

""" Block invoice deletion if any live payments are applied."""


# pre_delete signal auto-fires just before Django deletes a model instance
# it's connected to the Invoice model
@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice_with_payments(sender, instance, **kwargs):
    if Payment.objects.filter(invoice=instance, is_deleted=False).exists():
        # prevent delete
        raise ConflictError("Cannot delete invoice with applied payments.")


"""
    Recalculate document totals when a line is added/updated/removed
    outside the services (e.g. admin inlines).
"""


@receiver((post_save, post_delete), sender=InvoiceLine)
def invoice_line_changed(sender, instance, **kwargs):
    try:
        inv = Invoice.objects.get(pk=instance.invoice_id)
    except Invoice.DoesNotExist:
        return
    inv.recalc_totals()
    inv.recalc_outstanding()
    # save totals only, no need to revalidate lines here
    inv.save(update_fields=[
        "subtotal", "tax", "total", "amount_paid", "outstanding_amount"])


@receiver((post_save, post_delete), sender=BillLine)
def bill_line_changed(sender, instance, **kwargs):
    try:
        bill = Bill.objects.get(pk=instance.bill_id)
    except Bill.DoesNotExist:
        return
    bill.recalc_totals()
    bill.save(update_fields=["subtotal", "tax", "total"])


"""Any change to the payment set re-derives the invoice status."""


@receiver((post_save, post_delete), sender=Payment)
def payment_changed(sender, instance, **kwargs):
    from .services.payments import recompute_invoice_status  # avoid cyc import

    recompute_invoice_status(instance.company, instance.invoice_id)
