"""
Model and report -> JSON-ready dict conversion.
Keys are camelCase, dates are YYYY-MM-DD, amounts are plain numbers and
every record exposes its primary key as `id`.
"""
import datetime
from decimal import Decimal

from .models import Bill, Customer, Invoice, Payment, Product, Vendor


def money(value):
    return float(value) if value is not None else 0.0


def iso(value):
    return value.isoformat() if value is not None else None


def camel(key):
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def line_to_dict(line):
    return {
        "id": line.pk,
        "position": line.position,
        "productId": line.product_id,
        "description": line.description,
        "qty": money(line.quantity),
        "unitPrice": money(line.unit_price),
        "gstPct": money(line.tax_pct),
        "netAmount": money(line.net_amount),
        "taxAmount": money(line.tax_amount),
        "amount": money(line.line_total),
    }


def party_to_dict(party):
    return {
        "id": party.pk,
        "code": party.code,
        "name": party.name,
        "email": party.email or "",
        "phone": party.phone or "",
        "address": party.address or "",
        "city": party.city or "",
        "gstin": party.gstin or "",
        "paymentTermsDays": party.payment_terms_days,
        "notes": party.notes or "",
        "createdAt": iso(party.created_at),
        "updatedAt": iso(party.updated_at),
    }


def product_to_dict(product):
    return {
        "id": product.pk,
        "code": product.code,
        "name": product.name,
        "sku": product.sku or "",
        "unit": product.unit,
        "unitPrice": money(product.unit_price),
        "gstPct": money(product.tax_pct),
        "description": product.description,
        "active": product.active,
        "createdAt": iso(product.created_at),
        "updatedAt": iso(product.updated_at),
    }


def invoice_to_dict(invoice, with_lines=True):
    data = {
        "id": invoice.pk,
        "number": invoice.number,
        "customerId": invoice.customer_id,
        "customerName": invoice.customer_name,
        "date": iso(invoice.date),
        "dueDate": iso(invoice.due_date),
        "status": invoice.status,
        "subtotal": money(invoice.subtotal),
        "tax": money(invoice.tax),
        "total": money(invoice.total),
        "amountPaid": money(invoice.amount_paid),
        "outstandingAmount": money(invoice.outstanding_amount),
        "notes": invoice.notes or "",
        "createdAt": iso(invoice.created_at),
        "updatedAt": iso(invoice.updated_at),
    }
    if with_lines:
        data["items"] = [line_to_dict(line) for line in invoice.lines.all()]
    return data


def bill_to_dict(bill, with_lines=True):
    data = {
        "id": bill.pk,
        "number": bill.number,
        "vendorId": bill.vendor_id,
        "vendorName": bill.vendor_name,
        "date": iso(bill.date),
        "dueDate": iso(bill.due_date),
        "status": bill.status,
        "subtotal": money(bill.subtotal),
        "tax": money(bill.tax),
        "total": money(bill.total),
        "outstandingAmount": money(bill.outstanding_amount),
        "notes": bill.notes or "",
        "createdAt": iso(bill.created_at),
        "updatedAt": iso(bill.updated_at),
    }
    if with_lines:
        data["items"] = [line_to_dict(line) for line in bill.lines.all()]
    return data


def payment_to_dict(payment):
    return {
        "id": payment.pk,
        "reference": payment.reference,
        "invoiceId": payment.invoice_id,
        "invoiceNumber": payment.invoice.number,
        "customerName": payment.customer_name,
        "amount": money(payment.amount),
        "date": iso(payment.date),
        "method": payment.method,
        "notes": payment.notes,
        "createdAt": iso(payment.created_at),
    }


def page_to_dict(page, convert):
    return {
        "items": [convert(item) for item in page.items],
        "total": page.total,
        "page": page.page,
        "pageSize": page.page_size,
    }


def risk_row_to_dict(row):
    inv = row.invoice
    return {
        "id": inv.id,
        "number": inv.number,
        "date": iso(inv.date),
        "dueDate": iso(inv.due_date),
        "customer": inv.customer_name or "Unknown",
        "amount": money(inv.total),
        "outstanding": money(inv.outstanding),
        "status": inv.status,
        "riskScore": row.score,
        "riskBand": row.band,
    }


def forecast_to_dict(forecast):
    return {
        "daily": [{"date": iso(day), "amount": amount} for day, amount in forecast.daily],
        "total": forecast.total,
        "detail": [
            {
                "expectedDate": iso(piece.expected_date),
                "number": piece.number,
                "customer": piece.customer,
                "status": piece.status,
                "risk": piece.risk,
                "portion": piece.portion,
                "amount": piece.amount,
            }
            for piece in forecast.detail
        ],
        "topPayers": [
            {
                "number": payer.number,
                "customer": payer.customer,
                "earliest": iso(payer.earliest),
                "amount": payer.amount,
                "risk": payer.risk,
                "status": payer.status,
            }
            for payer in forecast.top_payers
        ],
        "learned": {
            "overallAvg": forecast.learned.overall_avg,
            "perCustomerAvg": dict(forecast.learned.per_customer_avg),
        },
    }


# model -> converter used when walking report structures
CONVERTERS = {
    Invoice: lambda inv: invoice_to_dict(inv, with_lines=False),
    Bill: lambda bill: bill_to_dict(bill, with_lines=False),
    Payment: payment_to_dict,
    Customer: party_to_dict,
    Vendor: party_to_dict,
    Product: product_to_dict,
}


def to_json(value):
    """Recursively convert report data: camelCase keys, floats, ISO dates."""
    if isinstance(value, dict):
        return {camel(str(k)): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return iso(value)
    converter = CONVERTERS.get(type(value))
    if converter is not None:
        return converter(value)
    return value
