from django.views.decorators.http import require_http_methods

from ..serializers import bill_to_dict, invoice_to_dict, page_to_dict
from ..services import bills, invoices
from .common import created, json_endpoint, no_content, ok, read_json


def _page_args(request):
    return {
        "page": request.GET.get("page"),
        "page_size": request.GET.get("pageSize") or request.GET.get("limit"),
        "status": request.GET.get("status"),
        "q": request.GET.get("q"),
    }


@json_endpoint
@require_http_methods(["GET", "POST"])
def invoice_collection(request):
    if request.method == "GET":
        page = invoices.list_invoices(
            request.company, customer=request.GET.get("customerId"),
            **_page_args(request))
        return ok(page_to_dict(page, lambda inv: invoice_to_dict(inv, with_lines=False)))
    invoice = invoices.create_invoice(
        request.company, read_json(request), user=request.user)
    return created(invoice_to_dict(invoice))


@json_endpoint
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def invoice_detail(request, ref):
    if request.method == "GET":
        return ok(invoice_to_dict(invoices.get_invoice(request.company, ref)))
    if request.method == "DELETE":
        invoices.delete_invoice(request.company, ref, user=request.user)
        return no_content()
    invoice = invoices.update_invoice(
        request.company, ref, read_json(request), user=request.user)
    return ok(invoice_to_dict(invoice))


@json_endpoint
@require_http_methods(["GET", "POST"])
def bill_collection(request):
    if request.method == "GET":
        page = bills.list_bills(
            request.company, vendor=request.GET.get("vendorId"),
            **_page_args(request))
        return ok(page_to_dict(page, lambda bill: bill_to_dict(bill, with_lines=False)))
    bill = bills.create_bill(request.company, read_json(request), user=request.user)
    return created(bill_to_dict(bill))


@json_endpoint
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def bill_detail(request, ref):
    if request.method == "GET":
        return ok(bill_to_dict(bills.get_bill(request.company, ref)))
    if request.method == "DELETE":
        bills.delete_bill(request.company, ref, user=request.user)
        return no_content()
    bill = bills.update_bill(request.company, ref, read_json(request), user=request.user)
    return ok(bill_to_dict(bill))
