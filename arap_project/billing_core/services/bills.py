import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q

from ..conf import billing_setting
from ..exceptions import ConflictError
from ..models import Bill, BillLine, Vendor
from .audit_helper import actor, log_action
from .documents import (assign_number, change_status, document_date,
                        ensure_mutable, find_document, paginate,
                        require_pk)
from .lines import items_from_payload, parse_line_items, replace_lines
from .normalize import has_any, normalize_bill_status, parse_date, pick
from .resolver import reference_from_payload, resolve_party

logger = logging.getLogger(__name__)

VENDOR_KEYS = (
    "vendor", "vendorId", "vendor_id", "vendorID",
    "vendorName", "vendor_name", "vendorEmail", "vendor_email",
    "vendorPhone", "vendor_phone",
)
NUMBER_KEYS = ("number", "code", "billNumber")


def _bill_items(payload):
    items = items_from_payload(payload)
    if items is None and pick(payload, "amount") not in (None, ""):
        # single-amount bills as entered on the payables screen
        items = [{
            "description": pick(payload, "description", default="Bill amount"),
            "qty": 1,
            "unitPrice": payload["amount"],
            "gstPct": 0,
        }]
    return items


def create_bill(company, payload, user=None):
    """
    Create a vendor bill. Unlike invoices, a due date is mandatory and the
    bill may carry no lines yet.
    """
    raw_status = pick(payload, "status")
    if raw_status in (None, ""):
        status = "open"
    else:
        status = normalize_bill_status(raw_status)
        if status is None:
            raise ValidationError(f"Invalid bill status {raw_status!r}")

    due = parse_date(pick(payload, "dueDate", "due_date", "due"))
    if due is None:
        raise ValidationError("Bill due date is required")

    items = _bill_items(payload) or []
    parsed = parse_line_items(company, items)

    with transaction.atomic():
        vendor, _ = resolve_party(
            company, Vendor, reference_from_payload(payload, "vendor"), user=user)

        issued = document_date(pick(payload, "date", "billDate", "bill_date"))
        number = assign_number(
            company, Bill, "BILL", pick(payload, *NUMBER_KEYS), None)

        bill = Bill(
            company=company,
            number=number,
            vendor=vendor,
            vendor_name=vendor.name,
            date=issued,
            due_date=due,
            status=status,
            notes=pick(payload, "notes", default=""),
            created_by=actor(user),
            updated_by=actor(user),
        )
        try:
            with transaction.atomic():
                bill.save()
        except IntegrityError:
            raise ConflictError(f"Duplicate bill number {number}")

        replace_lines(bill, BillLine, parsed)
        bill.recalc_totals()
        bill.save(update_fields=["subtotal", "tax", "total"])

        log_action(action="create", instance=bill, user=user, changes={
            "number": bill.number,
            "vendor": vendor.name,
            "total": str(bill.total),
            "status": bill.status,
        })
    logger.info("Created bill %s for company %s (total %s)",
                bill.number, company.pk, bill.total)
    return bill


def get_bill(company, ref):
    return find_document(company, Bill, ref)


def list_bills(company, *, status=None, q=None, vendor=None,
               page=1, page_size=None):
    qs = (
        Bill.objects.active(company)
        .select_related("vendor")
        .order_by("due_date", "id")
    )
    if status not in (None, "") and str(status).strip().lower() != "all":
        normalized = normalize_bill_status(status)
        # list filters are strict for bills too
        if normalized is None:
            raise ValidationError(f"Invalid bill status {status!r}")
        qs = qs.filter(status=normalized)
    if vendor:
        qs = qs.filter(vendor_id=require_pk(vendor, "vendor"))
    if q:
        q = str(q).strip()
        qs = qs.filter(
            Q(number__icontains=q)
            | Q(vendor_name__icontains=q)
            | Q(vendor__name__icontains=q)
        )
    return paginate(qs, page, page_size)


def update_bill(company, ref, payload, user=None):
    """
    Partial update. An unrecognised status is dropped and the remaining
    fields still apply, unless BILLING["STRICT_BILL_STATUS"] is set.
    """
    new_status = None
    if has_any(payload, "status") and payload["status"] not in (None, ""):
        new_status = normalize_bill_status(payload["status"])
        if new_status is None:
            if billing_setting("STRICT_BILL_STATUS"):
                raise ValidationError(f"Invalid bill status {payload['status']!r}")
            logger.info("Ignoring unrecognised bill status %r", payload["status"])

    with transaction.atomic():
        bill = find_document(company, Bill, ref, lock=True)
        ensure_mutable(bill)
        changes = {}

        if has_any(payload, *VENDOR_KEYS):
            vendor, _ = resolve_party(
                company, Vendor, reference_from_payload(payload, "vendor"),
                user=user)
            if vendor.pk != bill.vendor_id or vendor.name != bill.vendor_name:
                bill.vendor = vendor
                bill.vendor_name = vendor.name
                changes["vendor"] = vendor.name

        if has_any(payload, "date", "billDate", "bill_date"):
            issued = parse_date(pick(payload, "date", "billDate", "bill_date"))
            if issued is None:
                raise ValidationError("Invalid bill date")
            bill.date = issued
            changes["date"] = issued.isoformat()

        if has_any(payload, "dueDate", "due_date", "due"):
            due = parse_date(pick(payload, "dueDate", "due_date", "due"))
            if due is None:
                raise ValidationError("Bill due date is required")
            bill.due_date = due
            changes["due_date"] = due.isoformat()

        if has_any(payload, *NUMBER_KEYS):
            number = str(pick(payload, *NUMBER_KEYS, default="")).strip()
            if number and number != bill.number:
                bill.number = assign_number(
                    company, Bill, "BILL", number, None, exclude_pk=bill.pk)
                changes["number"] = bill.number

        if has_any(payload, "notes"):
            bill.notes = payload["notes"] or ""
            changes["notes"] = bill.notes

        items = _bill_items(payload)
        if items is not None:
            replace_lines(bill, BillLine, parse_line_items(company, items))
            bill.recalc_totals()
            changes["total"] = str(bill.total)

        if new_status is not None:
            moved = change_status(bill, new_status)
            if moved:
                changes["status"] = list(moved)

        bill.updated_by = actor(user) or bill.updated_by
        try:
            with transaction.atomic():
                bill.save()
        except IntegrityError:
            raise ConflictError(f"Duplicate bill number {bill.number}")

        if changes:
            log_action(action="update", instance=bill, user=user, changes=changes)
    return bill


def delete_bill(company, ref, user=None):
    """Soft delete."""
    with transaction.atomic():
        bill = find_document(company, Bill, ref, lock=True)
        bill.is_deleted = True
        bill.save(update_fields=["is_deleted", "updated_at"])
        log_action(action="delete", instance=bill, user=user,
                   changes={"number": bill.number})
    logger.info("Deleted bill %s for company %s", bill.number, company.pk)
    return bill
