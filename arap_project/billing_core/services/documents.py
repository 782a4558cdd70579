"""
Pieces shared by the invoice and bill workflows: lookup by id or number,
numbering, date defaults, pagination and status changes.
"""
import logging
from dataclasses import dataclass
from typing import List

from django.core.exceptions import ValidationError
from django.utils import timezone

from ..conf import billing_setting
from ..exceptions import ConflictError, MalformedIdentifierError, NotFoundError
from .normalize import parse_date, parse_pk
from .numbering import next_document_number

logger = logging.getLogger(__name__)


def require_pk(value, label):
    """A record id taken from a query string; anything but a positive int is malformed."""
    pk = parse_pk(value)
    if pk is None:
        raise MalformedIdentifierError(f"Invalid {label} id {value!r}")
    return pk


@dataclass
class Page:
    items: List
    total: int
    page: int
    page_size: int


def clamp_page(page, page_size):
    try:
        page = int(page or 1)
    except (TypeError, ValueError):
        page = 1
    try:
        page_size = int(page_size or billing_setting("DEFAULT_PAGE_SIZE"))
    except (TypeError, ValueError):
        page_size = billing_setting("DEFAULT_PAGE_SIZE")
    page = max(page, 1)
    page_size = max(1, min(page_size, billing_setting("MAX_PAGE_SIZE")))
    return page, page_size


def paginate(qs, page, page_size) -> Page:
    page, page_size = clamp_page(page, page_size)
    offset = (page - 1) * page_size
    items = list(qs[offset:offset + page_size])
    return Page(items=items, total=qs.count(), page=page, page_size=page_size)


def find_document(company, model, ref, *, lock=False):
    """
    Live document of `company` by primary key or by exact number.
    Anything absent, soft-deleted or owned by another company is a 404.
    """
    qs = model.objects.active(company)
    if lock:
        qs = qs.select_for_update()
    pk = parse_pk(ref)
    doc = qs.filter(pk=pk).first() if pk else None
    if doc is None and ref not in (None, ""):
        doc = qs.filter(number=str(ref).strip()).first()
    if doc is None:
        raise NotFoundError(f"{model.__name__} {ref} not found")
    return doc


def document_date(raw):
    """Supplied date, or today when absent or unparseable."""
    return parse_date(raw) or timezone.localdate()


def assign_number(company, model, prefix, supplied, on, *, exclude_pk=None):
    """
    Return the document number to store: the supplied one when free within
    the company, else a fresh Counter-backed number.
    """
    number = str(supplied or "").strip()
    if not number:
        return next_document_number(company, prefix, on=on)
    clash = model.objects.for_company(company).filter(number=number)
    if exclude_pk:
        clash = clash.exclude(pk=exclude_pk)
    if clash.exists():
        raise ConflictError(f"Duplicate {model.__name__.lower()} number {number}")
    return number


def ensure_mutable(doc):
    if doc.status == "void":
        raise ValidationError(
            f"{doc.__class__.__name__} {doc.number} is void and cannot be changed")


def change_status(doc, new_status):
    """
    Explicit (user-requested) status change through the document's
    transition map. Same-state requests are a no-op.
    Returns (old, new) when the status moved, else None.
    """
    old = doc.status
    if new_status == old:
        return None
    doc.transition_to(new_status)
    logger.info("%s %s status %s -> %s",
                doc.__class__.__name__, doc.number, old, new_status)
    return old, new_status
