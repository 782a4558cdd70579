"""
Customer, vendor and product maintenance.
Customers and vendors share one set of workflows parameterised by model.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q

from ..exceptions import ConflictError, NotFoundError
from ..models import Product
from .audit_helper import log_action
from .normalize import has_any, parse_number, parse_pk, pick
from .numbering import next_document_number

logger = logging.getLogger(__name__)

# payload key(s) -> model field
PARTY_FIELDS = {
    "name": ("name",),
    "code": ("code",),
    "email": ("email",),
    "phone": ("phone",),
    "address": ("address",),
    "city": ("city",),
    "gstin": ("gstin", "taxId", "tax_id"),
    "payment_terms_days": ("paymentTermsDays", "payment_terms_days", "terms"),
    "notes": ("notes",),
}
LIST_LIMIT = 500


def _clean_value(field, value):
    if field == "payment_terms_days":
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError("Payment terms must be a whole number of days")
    if value is None:
        return None
    value = str(value).strip()
    if field in ("name", "notes"):
        return value
    return value or None


def _apply_fields(instance, payload, fields):
    changes = {}
    for field, keys in fields.items():
        if not has_any(payload, *keys):
            continue
        value = _clean_value(field, pick(payload, *keys))
        if getattr(instance, field) != value:
            setattr(instance, field, value)
            changes[field] = value
    return changes


def _check_unique(company, model, field, value, exclude_pk=None):
    if not value:
        return
    clash = model.objects.active(company).filter(**{field: value})
    if exclude_pk:
        clash = clash.exclude(pk=exclude_pk)
    if clash.exists():
        raise ConflictError(
            f"{model._meta.verbose_name.capitalize()} with {field} {value!r} already exists")


def _save(instance):
    try:
        with transaction.atomic():
            instance.save()
    except IntegrityError:
        raise ConflictError(
            f"{instance._meta.verbose_name.capitalize()} {instance} already exists")


# ----------------------------
# Customers / vendors
# ----------------------------
def list_parties(company, model, *, q=None, limit=LIST_LIMIT):
    qs = model.objects.active(company).order_by("name")
    if q:
        q = str(q).strip()
        qs = qs.filter(
            Q(name__icontains=q) | Q(email__icontains=q) | Q(code__icontains=q))
    return list(qs[:limit])


def get_party(company, model, ref):
    qs = model.objects.active(company)
    pk = parse_pk(ref)
    party = qs.filter(pk=pk).first() if pk else None
    if party is None and ref not in (None, ""):
        party = qs.filter(code=str(ref).strip()).first()
    if party is None:
        raise NotFoundError(f"{model._meta.verbose_name.capitalize()} {ref} not found")
    return party


def create_party(company, model, payload, user=None):
    party = model(company=company)
    _apply_fields(party, payload, PARTY_FIELDS)
    if not (party.name or "").strip():
        raise ValidationError("Name is required")
    _check_unique(company, model, "name", party.name)
    _check_unique(company, model, "code", party.code)
    _save(party)
    log_action(action="create", instance=party, user=user,
               changes={"name": party.name})
    logger.info("Created %s %r for company %s",
                model._meta.verbose_name, party.name, company.pk)
    return party


def update_party(company, model, ref, payload, user=None):
    with transaction.atomic():
        party = get_party(company, model, ref)
        changes = _apply_fields(party, payload, PARTY_FIELDS)
        if "name" in changes:
            _check_unique(company, model, "name", party.name, exclude_pk=party.pk)
        if "code" in changes:
            _check_unique(company, model, "code", party.code, exclude_pk=party.pk)
        _save(party)
        if changes:
            log_action(action="update", instance=party, user=user, changes=changes)
    return party


def delete_party(company, model, ref, user=None):
    """Soft delete; documents keep pointing at the row and its name snapshot."""
    party = get_party(company, model, ref)
    party.is_deleted = True
    party.save(update_fields=["is_deleted", "updated_at"])
    log_action(action="delete", instance=party, user=user,
               changes={"name": party.name})
    return party


# ----------------------------
# Products
# ----------------------------
PRODUCT_FIELDS = {
    "name": ("name",),
    "sku": ("sku",),
    "unit": ("unit", "uom"),
    "description": ("description", "desc"),
}


def _apply_product_fields(product, payload):
    changes = _apply_fields(product, payload, PRODUCT_FIELDS)
    for field, keys in (("unit_price", ("unitPrice", "unit_price", "price", "rate")),
                        ("tax_pct", ("gstPct", "gst", "taxPct", "tax_pct", "tax"))):
        if not has_any(payload, *keys):
            continue
        try:
            value = parse_number(pick(payload, *keys), default=0)
        except ValueError:
            raise ValidationError(f"Invalid {field.replace('_', ' ')}")
        if value < 0:
            raise ValidationError(f"Invalid {field.replace('_', ' ')}")
        setattr(product, field, value)
        changes[field] = str(value)
    if has_any(payload, "active"):
        product.active = payload["active"] is not False
        changes["active"] = product.active
    return changes


def list_products(company, *, q=None, active=None, limit=LIST_LIMIT):
    qs = Product.objects.active(company).order_by("-updated_at", "-id")
    if q:
        q = str(q).strip()
        qs = qs.filter(
            Q(name__icontains=q) | Q(code__icontains=q)
            | Q(sku__icontains=q) | Q(description__icontains=q)
        )
    if active in ("true", True):
        qs = qs.filter(active=True)
    elif active in ("false", False):
        qs = qs.filter(active=False)
    return list(qs[:limit])


def get_product(company, ref):
    qs = Product.objects.active(company)
    pk = parse_pk(ref)
    product = qs.filter(pk=pk).first() if pk else None
    if product is None and ref not in (None, ""):
        product = qs.filter(code=str(ref).strip()).first()
    if product is None:
        raise NotFoundError(f"Product {ref} not found")
    return product


def create_product(company, payload, user=None):
    product = Product(company=company)
    _apply_product_fields(product, payload)
    if not (product.name or "").strip():
        raise ValidationError("Name is required")

    code = str(pick(payload, "code", default="")).strip()
    if code:
        if Product.objects.for_company(company).filter(code=code).exists():
            raise ConflictError(f"Duplicate product code {code}")
        product.code = code
    else:
        product.code = next_document_number(company, "PROD")
    _save(product)
    log_action(action="create", instance=product, user=user,
               changes={"code": product.code, "name": product.name})
    return product


def update_product(company, ref, payload, user=None):
    with transaction.atomic():
        product = get_product(company, ref)
        changes = _apply_product_fields(product, payload)
        code = str(pick(payload, "code", default="")).strip()
        if code and code != product.code:
            if Product.objects.for_company(company).filter(code=code).exists():
                raise ConflictError(f"Duplicate product code {code}")
            product.code = code
            changes["code"] = code
        _save(product)
        if changes:
            log_action(action="update", instance=product, user=user, changes=changes)
    return product


def delete_product(company, ref, user=None):
    product = get_product(company, ref)
    product.is_deleted = True
    product.save(update_fields=["is_deleted", "updated_at"])
    log_action(action="delete", instance=product, user=user,
               changes={"code": product.code})
    return product
