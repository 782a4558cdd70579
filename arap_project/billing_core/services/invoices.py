import logging
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q

from ..conf import billing_setting
from ..exceptions import ConflictError
from ..models import Customer, Invoice, InvoiceLine
from .audit_helper import actor, log_action
from .documents import (assign_number, change_status, document_date,
                        ensure_mutable, find_document, paginate,
                        require_pk)
from .lines import items_from_payload, parse_line_items, replace_lines
from .normalize import has_any, normalize_invoice_status, parse_date, pick
from .resolver import reference_from_payload, resolve_party

logger = logging.getLogger(__name__)

CUSTOMER_KEYS = (
    "customer", "customerId", "customer_id", "customerID",
    "customerName", "customer_name", "customerEmail", "customer_email",
    "customerPhone", "customer_phone",
)


def _parse_status(raw):
    status = normalize_invoice_status(raw)
    if status is None:
        raise ValidationError(f"Invalid invoice status {raw!r}")
    return status


def settle_from_payments(invoice):
    """
    System status change driven by the live payment sum: paid when the
    payments cover the total, otherwise back to sent (an invoice that is
    still past due keeps overdue). Void invoices are left alone.
    Returns the new status.
    """
    invoice.recalc_outstanding()
    if invoice.status == "void":
        return invoice.status
    if invoice.amount_paid >= invoice.total:
        invoice.status = "paid"
    elif invoice.status == "overdue" and invoice.is_past_due:
        invoice.status = "overdue"
    else:
        invoice.status = "sent"
    return invoice.status


def create_invoice(company, payload, user=None):
    """
    Create an invoice from a tolerant payload.

    The customer may be given as an id, a name or an embedded object and is
    created on the fly when unknown. Number, date and due date are filled
    in when absent.
    """
    raw_status = pick(payload, "status")
    status = _parse_status(raw_status) if raw_status not in (None, "") else "sent"

    items = items_from_payload(payload)
    if not items:
        raise ValidationError("At least 1 line item required")
    parsed = parse_line_items(company, items)

    with transaction.atomic():
        customer, _ = resolve_party(
            company, Customer, reference_from_payload(payload, "customer"), user=user)

        issued = document_date(pick(payload, "date", "issueDate", "issue_date"))
        due = parse_date(pick(payload, "dueDate", "due_date", "due"))
        if due is None:
            terms = customer.payment_terms_days
            if terms is None:
                terms = billing_setting("DEFAULT_PAYMENT_TERMS_DAYS")
            due = issued + timedelta(days=terms)

        number = assign_number(company, Invoice, "INV", pick(payload, "number"), None)

        invoice = Invoice(
            company=company,
            number=number,
            customer=customer,
            customer_name=customer.name,
            date=issued,
            due_date=due,
            status=status,
            notes=pick(payload, "notes", default=""),
            created_by=actor(user),
            updated_by=actor(user),
        )
        try:
            with transaction.atomic():
                invoice.save()
        except IntegrityError:
            raise ConflictError(f"Duplicate invoice number {number}")

        replace_lines(invoice, InvoiceLine, parsed)
        invoice.recalc_totals()
        invoice.recalc_outstanding()
        invoice.save(update_fields=[
            "subtotal", "tax", "total", "amount_paid", "outstanding_amount"])

        log_action(action="create", instance=invoice, user=user, changes={
            "number": invoice.number,
            "customer": customer.name,
            "total": str(invoice.total),
            "status": invoice.status,
        })
    logger.info("Created invoice %s for company %s (total %s)",
                invoice.number, company.pk, invoice.total)
    return invoice


def get_invoice(company, ref):
    return find_document(company, Invoice, ref)


def list_invoices(company, *, status=None, q=None, customer=None,
                  page=1, page_size=None):
    qs = (
        Invoice.objects.active(company)
        .select_related("customer")
        .order_by("-date", "-id")
    )
    if status not in (None, "") and str(status).strip().lower() != "all":
        qs = qs.filter(status=_parse_status(status))
    if customer:
        qs = qs.filter(customer_id=require_pk(customer, "customer"))
    if q:
        q = str(q).strip()
        # party name matched on the joined customer row and the snapshot
        qs = qs.filter(
            Q(number__icontains=q)
            | Q(customer_name__icontains=q)
            | Q(customer__name__icontains=q)
        )
    return paginate(qs, page, page_size)


def update_invoice(company, ref, payload, user=None):
    """
    Partial update. Unknown statuses are rejected; line changes recompute
    totals and, when payments exist, the paid status.
    """
    new_status = None
    if has_any(payload, "status") and payload["status"] not in (None, ""):
        new_status = _parse_status(payload["status"])

    with transaction.atomic():
        invoice = find_document(company, Invoice, ref, lock=True)
        ensure_mutable(invoice)
        changes = {}

        if has_any(payload, *CUSTOMER_KEYS):
            customer, _ = resolve_party(
                company, Customer, reference_from_payload(payload, "customer"),
                user=user)
            if customer.pk != invoice.customer_id or customer.name != invoice.customer_name:
                invoice.customer = customer
                invoice.customer_name = customer.name
                changes["customer"] = customer.name

        if has_any(payload, "date", "issueDate", "issue_date"):
            issued = parse_date(pick(payload, "date", "issueDate", "issue_date"))
            if issued is None:
                raise ValidationError("Invalid invoice date")
            invoice.date = issued
            changes["date"] = issued.isoformat()

        if has_any(payload, "dueDate", "due_date", "due"):
            due = parse_date(pick(payload, "dueDate", "due_date", "due"))
            if due is None:
                raise ValidationError("Invalid due date")
            invoice.due_date = due
            changes["due_date"] = due.isoformat()

        if has_any(payload, "number"):
            number = str(payload["number"] or "").strip()
            if number and number != invoice.number:
                invoice.number = assign_number(
                    company, Invoice, "INV", number, None, exclude_pk=invoice.pk)
                changes["number"] = invoice.number

        if has_any(payload, "notes"):
            invoice.notes = payload["notes"] or ""
            changes["notes"] = invoice.notes

        items = items_from_payload(payload)
        if items is not None:
            if not items:
                raise ValidationError("At least 1 line item required")
            replace_lines(invoice, InvoiceLine, parse_line_items(company, items))
            invoice.recalc_totals()
            changes["total"] = str(invoice.total)

        invoice.recalc_outstanding()
        if items is not None and invoice.amount_paid > 0:
            settle_from_payments(invoice)

        if new_status is not None:
            moved = change_status(invoice, new_status)
            if moved:
                changes["status"] = list(moved)

        invoice.updated_by = actor(user) or invoice.updated_by
        try:
            with transaction.atomic():
                invoice.save()
        except IntegrityError:
            raise ConflictError(f"Duplicate invoice number {invoice.number}")

        if changes:
            log_action(action="update", instance=invoice, user=user, changes=changes)
    return invoice


def delete_invoice(company, ref, user=None):
    """Soft delete. Invoices with live payments are kept (409)."""
    with transaction.atomic():
        invoice = find_document(company, Invoice, ref, lock=True)
        if invoice.payments.filter(is_deleted=False).exists():
            raise ConflictError(
                f"Cannot delete invoice {invoice.number} with applied payments")
        invoice.is_deleted = True
        invoice.save(update_fields=["is_deleted", "updated_at"])
        log_action(action="delete", instance=invoice, user=user,
                   changes={"number": invoice.number})
    logger.info("Deleted invoice %s for company %s", invoice.number, company.pk)
    return invoice
