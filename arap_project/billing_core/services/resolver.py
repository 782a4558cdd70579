"""
Tolerant customer/vendor resolution.

API payloads name a party in several ways: an id, a plain name, or an
embedded object carrying an id and/or a name. They are parsed into one of
three reference shapes and resolved by a single algorithm:

1. a syntactically valid id is used directly;
2. otherwise a name is taken from whichever source carries one;
3. an existing party with that exact name (or code), or failing that
   the same email address, is reused;
4. otherwise a new party is created under the current company.

Whatever the path, the resulting row must belong to the current company,
otherwise the calling operation fails.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from django.db import IntegrityError, transaction
from django.db.models import Q

from ..exceptions import UnresolvedReferenceError
from .audit_helper import log_action
from .normalize import parse_pk, pick

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ById:
    id: int


@dataclass(frozen=True)
class ByName:
    name: str


@dataclass(frozen=True)
class ByObject:
    id: Optional[object] = None
    name: str = ""
    email: str = ""
    phone: str = ""


Reference = Union[ById, ByName, ByObject]


def _text(value):
    return str(value).strip() if value is not None else ""


def parse_reference(value) -> Optional[Reference]:
    """Turn a raw JSON value (int, str or dict) into a Reference."""
    if value is None:
        return None
    if isinstance(value, dict):
        ref = ByObject(
            id=pick(value, "id", "_id", "pk"),
            name=_text(pick(value, "name", default="")),
            email=_text(pick(value, "email", default="")),
            phone=_text(pick(value, "phone", default="")),
        )
        return _simplify(ref)
    pk = parse_pk(value)
    if pk is not None:
        return ById(pk)
    name = _text(value)
    return ByName(name) if name else None


def reference_from_payload(payload, field) -> Optional[Reference]:
    """
    Collect every alias a client may use for `field` ("customer" or
    "vendor"): `<field>Id`, `<field>`, `<field>Name`, `<field>Email`,
    `<field>Phone`, in camelCase or snake_case.
    """
    embedded = payload.get(field)
    base = parse_reference(embedded) if embedded not in (None, "") else None

    raw_id = pick(payload, f"{field}Id", f"{field}_id", f"{field}ID")
    name = _text(pick(payload, f"{field}Name", f"{field}_name", default=""))
    email = _text(pick(payload, f"{field}Email", f"{field}_email", default=""))
    phone = _text(pick(payload, f"{field}Phone", f"{field}_phone", default=""))

    if raw_id is None and not (name or email or phone):
        return base

    ref_id, ref_name = raw_id, name
    if isinstance(base, ById):
        ref_id = ref_id if ref_id is not None else base.id
    elif isinstance(base, ByName):
        ref_name = ref_name or base.name
    elif isinstance(base, ByObject):
        ref_id = ref_id if ref_id is not None else base.id
        ref_name = ref_name or base.name
        email = email or base.email
        phone = phone or base.phone
    return _simplify(ByObject(id=ref_id, name=ref_name, email=email, phone=phone))


def _simplify(ref: ByObject) -> Optional[Reference]:
    has_id = ref.id not in (None, "")
    if has_id and not (ref.name or ref.email or ref.phone):
        pk = parse_pk(ref.id)
        return ById(pk) if pk is not None else ByName(_text(ref.id))
    if not has_id and ref.name and not (ref.email or ref.phone):
        return ByName(ref.name)
    if not has_id and not (ref.name or ref.email or ref.phone):
        return None
    return ref


def resolve_party(company, model, reference: Optional[Reference], user=None):
    """
    Resolve `reference` to a live `model` row (Customer or Vendor) owned by
    `company`. Returns (party, created).
    """
    label = model._meta.verbose_name
    if reference is None:
        raise UnresolvedReferenceError(f"Missing {label} reference")

    pk, name, email, phone = None, "", "", ""
    if isinstance(reference, ById):
        pk = reference.id
    elif isinstance(reference, ByName):
        name = reference.name.strip()
    else:
        pk = parse_pk(reference.id)
        name = reference.name.strip()
        # an id that is not id-shaped is treated as a name or code
        if pk is None and reference.id not in (None, ""):
            name = name or _text(reference.id)
        email, phone = reference.email, reference.phone
        # an email-only object still identifies a party by its address
        if pk is None and not name:
            name = email

    # 1) id path: use directly, but only inside this company
    if pk is not None:
        party = model.objects.active(company).filter(pk=pk).first()
        if party is None:
            # unknown here or owned by another company: never fall back
            logger.warning(
                "Rejected %s id %s for company %s", label, pk, company.pk)
            raise UnresolvedReferenceError(
                f"{label.capitalize()} {pk} not found for this company")
        return _verify_owner(company, party), False

    if not name:
        raise UnresolvedReferenceError(f"Missing {label} reference")

    # 2) name path: reuse an exact match on name or code, then on email
    party = _find_existing(company, model, name, email)
    if party is not None:
        return _verify_owner(company, party), False

    # 3) create under the current company
    try:
        with transaction.atomic():
            party = model.objects.create(
                company=company,
                name=name,
                email=email or None,
                phone=phone or None,
            )
    except IntegrityError:
        # concurrent create of the same name: reuse the winner
        party = _find_existing(company, model, name, email)
        if party is None:
            raise
        return _verify_owner(company, party), False

    logger.info("Created %s %r (id=%s) during resolution", label, name, party.pk)
    log_action(action="create", instance=party, user=user,
               changes={"name": name, "source": "resolution"})
    return _verify_owner(company, party), True


def _find_existing(company, model, name, email=""):
    qs = model.objects.active(company).order_by("pk")
    party = qs.filter(Q(name=name) | Q(code=name)).first()
    if party is None and email:
        party = qs.filter(email__iexact=email).first()
    return party


def _verify_owner(company, party):
    if party.company_id != company.pk:
        raise UnresolvedReferenceError(
            f"{party._meta.verbose_name.capitalize()} belongs to another company")
    return party
