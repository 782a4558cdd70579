import logging
from decimal import Decimal

from django.core.exceptions import ValidationError

from ..models import Product
from .normalize import parse_number, parse_pk, pick

logger = logging.getLogger(__name__)

# Aliases clients use for each line field
QTY_KEYS = ("qty", "quantity")
PRICE_KEYS = ("unitPrice", "unit_price", "rate", "price")
TAX_KEYS = ("gstPct", "gst", "taxPct", "tax_pct", "tax")
DESC_KEYS = ("description", "desc", "name", "itemName")
PRODUCT_KEYS = ("productId", "product_id", "product")


def _number(item, keys, label, row, default):
    raw = pick(item, *keys)
    try:
        value = parse_number(raw, default=default)
    except ValueError:
        raise ValidationError(f"Invalid {label} at row {row}")
    if value is not None and value < 0:
        raise ValidationError(f"Invalid {label} at row {row}")
    return value


def items_from_payload(payload):
    """
    The raw line list from a payload: `items` or `lines`, or a single line
    built from top-level convenience fields (qty/unitPrice/gst).
    Returns None when the payload carries no line information at all.
    """
    items = pick(payload, "items", "lines")
    if items is not None:
        if not isinstance(items, list):
            raise ValidationError("Line items must be a list")
        return items
    if any(key in payload for key in PRICE_KEYS):
        return [{
            "description": pick(payload, "itemName", default=""),
            "qty": pick(payload, *QTY_KEYS, default=1),
            "unitPrice": pick(payload, *PRICE_KEYS),
            "gstPct": pick(payload, "gst", "gstPct", default=0),
        }]
    return None


def parse_line_items(company, items):
    """
    Validate raw line dicts and return keyword dicts ready for
    InvoiceLine/BillLine creation. Missing quantity means 1; a product
    supplies price, tax and description when those are absent.
    """
    parsed = []
    for row, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Invalid line item at row {row}")

        product = None
        product_ref = pick(item, *PRODUCT_KEYS)
        if product_ref not in (None, ""):
            product = _find_product(company, product_ref, row)

        qty = _number(item, QTY_KEYS, "qty", row, Decimal("1"))
        price = _number(item, PRICE_KEYS, "unit price", row, None)
        tax_pct = _number(item, TAX_KEYS, "GST", row, None)
        description = pick(item, *DESC_KEYS, default="")

        if product is not None:
            price = product.unit_price if price is None else price
            tax_pct = product.tax_pct if tax_pct is None else tax_pct
            description = description or product.name

        parsed.append({
            "position": row,
            "product": product,
            "description": str(description),
            "quantity": qty,
            "unit_price": price if price is not None else Decimal("0"),
            "tax_pct": tax_pct if tax_pct is not None else Decimal("0"),
        })
    return parsed


def _find_product(company, ref, row):
    qs = Product.objects.active(company)
    pk = parse_pk(ref)
    product = qs.filter(pk=pk).first() if pk else qs.filter(code=str(ref).strip()).first()
    if product is None:
        raise ValidationError(f"Unknown product at row {row}")
    return product


def replace_lines(document, line_model, parsed):
    """Drop the document's current lines and write `parsed` in order."""
    fk_name = document._meta.model_name
    line_model.objects.filter(**{fk_name: document}).delete()
    for kwargs in parsed:
        line_model.objects.create(
            company=document.company, **{fk_name: document}, **kwargs)
    logger.debug("Wrote %d line(s) for %s %s",
                 len(parsed), fk_name, document.pk)
