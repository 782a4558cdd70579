from django.views.decorators.http import require_http_methods

from ..serializers import payment_to_dict
from ..services import payments
from .common import created, json_endpoint, no_content, ok, read_json


@json_endpoint
@require_http_methods(["GET", "POST"])
def payment_collection(request):
    if request.method == "GET":
        rows = payments.list_payments(
            request.company,
            method=request.GET.get("method"),
            date_from=request.GET.get("from"),
            date_to=request.GET.get("to"),
            q=request.GET.get("q"),
            invoice=request.GET.get("invoiceId"),
            limit=request.GET.get("limit", 100),
        )
        return ok([payment_to_dict(p) for p in rows])
    payment = payments.create_payment(
        request.company, read_json(request), user=request.user)
    return created(payment_to_dict(payment))


@json_endpoint
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def payment_detail(request, ref):
    if request.method == "GET":
        return ok(payment_to_dict(payments.get_payment(request.company, ref)))
    if request.method == "DELETE":
        payments.delete_payment(request.company, ref, user=request.user)
        return no_content()
    payment = payments.update_payment(
        request.company, ref, read_json(request), user=request.user)
    return ok(payment_to_dict(payment))
