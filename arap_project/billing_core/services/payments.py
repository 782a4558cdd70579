import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q

from ..conf import billing_setting
from ..exceptions import (ConflictError, MalformedIdentifierError,
                          NotFoundError, UnresolvedReferenceError)
from ..models import Invoice, Payment
from .audit_helper import actor, log_action
from .documents import document_date, require_pk
from .invoices import settle_from_payments
from .normalize import has_any, parse_date, parse_number, parse_pk, pick
from .numbering import next_document_number

logger = logging.getLogger(__name__)

INVOICE_ID_KEYS = ("invoiceId", "invoice_id", "invoiceID")
REFERENCE_KEYS = ("reference", "id", "paymentId")
MAX_LIST_LIMIT = 1000


# ----------------------------
# Invoice status recomputation
# ----------------------------
def recompute_invoice_status(company, invoice_id):
    """
    Re-derive an invoice's paid amount, outstanding amount and status from
    its live payments. Runs with the invoice row locked so concurrent
    payment changes serialize. Idempotent.
    """
    with transaction.atomic():
        invoice = (
            Invoice.objects.for_company(company)
            .select_for_update()
            .filter(pk=invoice_id)
            .first()
        )
        if invoice is None:
            return None
        old_status = invoice.status
        settle_from_payments(invoice)
        invoice.save(update_fields=[
            "status", "amount_paid", "outstanding_amount", "updated_at"])

        if invoice.status != old_status:
            logger.info("Invoice %s status %s -> %s after payment change",
                        invoice.number, old_status, invoice.status)
            log_action(action="status", instance=invoice, changes={
                "from": old_status,
                "to": invoice.status,
                "amount_paid": str(invoice.amount_paid),
            })
    return invoice


# ----------------------------
# Payment workflows
# ----------------------------
def resolve_invoice(company, payload):
    """
    Find the invoice a payment applies to: `invoiceId` must be a record
    id; `invoice` may be an id, an exact number or an unambiguous
    (case-sensitive) number prefix.
    """
    qs = Invoice.objects.active(company)

    if has_any(payload, *INVOICE_ID_KEYS) and pick(payload, *INVOICE_ID_KEYS) not in (None, ""):
        raw = pick(payload, *INVOICE_ID_KEYS)
        pk = parse_pk(raw)
        if pk is None:
            raise MalformedIdentifierError(f"Invalid invoice id {raw!r}")
        invoice = qs.filter(pk=pk).first()
        if invoice is None:
            raise UnresolvedReferenceError(f"Invoice {pk} not found")
        return invoice

    raw = pick(payload, "invoice", "invoiceNumber", "invoice_number")
    if isinstance(raw, dict):
        raw = pick(raw, "id", "number")
    text = str(raw).strip() if raw is not None else ""
    if not text:
        raise UnresolvedReferenceError("Missing invoice reference")

    pk = parse_pk(text)
    if pk is not None:
        invoice = qs.filter(pk=pk).first()
        if invoice is not None:
            return invoice

    invoice = qs.filter(number=text).first()
    if invoice is not None:
        return invoice

    # LIKE is case-insensitive on some backends; keep the exact-case matches
    matches = [
        inv for inv in qs.filter(number__istartswith=text)
        if inv.number.startswith(text)
    ]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise UnresolvedReferenceError(
            f"Invoice reference {text!r} matches {len(matches)} invoices")
    raise UnresolvedReferenceError(f"Invoice {text!r} not found")


def _parse_amount(raw):
    try:
        amount = parse_number(raw)
    except ValueError:
        raise ValidationError(f"Invalid payment amount {raw!r}")
    if amount is None or amount <= Decimal("0"):
        raise ValidationError("Payment amount must be positive")
    return amount


def _reference(company, supplied, exclude_pk=None):
    reference = str(supplied or "").strip()
    if not reference:
        return next_document_number(company, "PMT")
    clash = Payment.objects.for_company(company).filter(reference=reference)
    if exclude_pk:
        clash = clash.exclude(pk=exclude_pk)
    if clash.exists():
        raise ConflictError(f"Duplicate payment reference {reference}")
    return reference


def _ensure_payable(invoice):
    if invoice.status == "void":
        raise ValidationError(f"Invoice {invoice.number} is void")


def create_payment(company, payload, user=None):
    amount = _parse_amount(pick(payload, "amount"))

    with transaction.atomic():
        invoice = resolve_invoice(company, payload)
        _ensure_payable(invoice)

        payment = Payment(
            company=company,
            reference=_reference(company, pick(payload, *REFERENCE_KEYS)),
            invoice=invoice,
            customer_name=invoice.customer_name,
            amount=amount,
            date=document_date(pick(payload, "date")),
            method=str(pick(payload, "method", default="")).strip()
            or billing_setting("DEFAULT_PAYMENT_METHOD"),
            notes=pick(payload, "notes", default=""),
            created_by=actor(user),
        )
        try:
            with transaction.atomic():
                payment.save()
        except IntegrityError:
            raise ConflictError(f"Duplicate payment reference {payment.reference}")

        log_action(action="apply_payment", instance=payment, user=user, changes={
            "invoice": invoice.number,
            "amount": str(amount),
        })
        recompute_invoice_status(company, invoice.pk)

    logger.info("Recorded payment %s of %s against invoice %s",
                payment.reference, amount, invoice.number)
    return payment


def get_payment(company, ref):
    qs = Payment.objects.active(company).select_related("invoice")
    pk = parse_pk(ref)
    payment = qs.filter(pk=pk).first() if pk else None
    if payment is None and ref not in (None, ""):
        payment = qs.filter(reference=str(ref).strip()).first()
    if payment is None:
        raise NotFoundError(f"Payment {ref} not found")
    return payment


def list_payments(company, *, method=None, date_from=None, date_to=None,
                  q=None, invoice=None, limit=100):
    qs = (
        Payment.objects.active(company)
        .select_related("invoice")
        .order_by("-date", "-id")
    )
    if method and str(method).strip().lower() != "all":
        qs = qs.filter(method__iexact=str(method).strip())
    start, end = parse_date(date_from), parse_date(date_to)
    if start:
        qs = qs.filter(date__gte=start)
    if end:
        qs = qs.filter(date__lte=end)
    if invoice:
        qs = qs.filter(invoice_id=require_pk(invoice, "invoice"))
    if q:
        q = str(q).strip()
        qs = qs.filter(
            Q(reference__icontains=q)
            | Q(customer_name__icontains=q)
            | Q(invoice__number__icontains=q)
        )
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = 100
    limit = max(1, min(MAX_LIST_LIMIT, limit))
    return list(qs[:limit])


def update_payment(company, ref, payload, user=None):
    """Amount, date, method, notes and the target invoice can change."""
    with transaction.atomic():
        payment = get_payment(company, ref)
        previous_invoice_id = payment.invoice_id
        changes = {}

        if has_any(payload, "amount"):
            payment.amount = _parse_amount(payload["amount"])
            changes["amount"] = str(payment.amount)
        if has_any(payload, "date"):
            paid_on = parse_date(payload["date"])
            if paid_on is None:
                raise ValidationError("Invalid payment date")
            payment.date = paid_on
            changes["date"] = paid_on.isoformat()
        if has_any(payload, "method"):
            payment.method = (str(payload["method"] or "").strip()
                              or billing_setting("DEFAULT_PAYMENT_METHOD"))
            changes["method"] = payment.method
        if has_any(payload, "notes"):
            payment.notes = payload["notes"] or ""
        if has_any(payload, "reference"):
            reference = str(payload["reference"] or "").strip()
            if reference and reference != payment.reference:
                payment.reference = _reference(company, reference, exclude_pk=payment.pk)
                changes["reference"] = reference
        if has_any(payload, "invoice", "invoiceNumber", "invoice_number", *INVOICE_ID_KEYS):
            invoice = resolve_invoice(company, payload)
            if invoice.pk != payment.invoice_id:
                _ensure_payable(invoice)
                payment.invoice = invoice
                payment.customer_name = invoice.customer_name
                changes["invoice"] = invoice.number

        try:
            with transaction.atomic():
                payment.save()
        except IntegrityError:
            raise ConflictError(f"Duplicate payment reference {payment.reference}")

        if changes:
            log_action(action="update", instance=payment, user=user, changes=changes)

        recompute_invoice_status(company, payment.invoice_id)
        if previous_invoice_id != payment.invoice_id:
            recompute_invoice_status(company, previous_invoice_id)
    return payment


def delete_payment(company, ref, user=None):
    """Soft delete, then re-derive the invoice status."""
    with transaction.atomic():
        payment = get_payment(company, ref)
        payment.is_deleted = True
        payment.save(update_fields=["is_deleted", "updated_at"])
        log_action(action="delete", instance=payment, user=user, changes={
            "invoice": payment.invoice.number,
            "amount": str(payment.amount),
        })
        recompute_invoice_status(company, payment.invoice_id)
    logger.info("Deleted payment %s", payment.reference)
    return payment
