import logging

from django.db import transaction
from django.utils import timezone

from ..models import Invoice
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def refresh_overdue(company=None, today=None):
    """
    Persist the overdue flag: sent invoices past their due date with money
    still owed become overdue; overdue invoices whose due date moved back
    into the future return to sent. Running it twice changes nothing.
    Returns (marked, cleared).
    """
    today = today or timezone.localdate()
    qs = Invoice.objects.filter(is_deleted=False)
    if company is not None:
        qs = qs.for_company(company)

    marked = cleared = 0
    with transaction.atomic():
        to_mark = qs.select_for_update().filter(
            status="sent", due_date__lt=today, outstanding_amount__gt=0)
        for invoice in to_mark:
            invoice.status = "overdue"
            invoice.save(update_fields=["status", "updated_at"])
            log_action(action="status", instance=invoice,
                       changes={"from": "sent", "to": "overdue"})
            marked += 1

        to_clear = qs.select_for_update().filter(
            status="overdue", due_date__gte=today)
        for invoice in to_clear:
            invoice.status = "sent"
            invoice.save(update_fields=["status", "updated_at"])
            log_action(action="status", instance=invoice,
                       changes={"from": "overdue", "to": "sent"})
            cleared += 1

    logger.info("Overdue pass on %s: %d marked, %d cleared",
                today, marked, cleared)
    return marked, cleared
