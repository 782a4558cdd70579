from django.views.decorators.http import require_http_methods

from ..models import Customer, Vendor
from ..serializers import party_to_dict, product_to_dict
from ..services import parties
from .common import created, json_endpoint, no_content, ok, read_json


def _party_collection(request, model):
    if request.method == "GET":
        rows = parties.list_parties(request.company, model, q=request.GET.get("q"))
        return ok([party_to_dict(p) for p in rows])
    party = parties.create_party(
        request.company, model, read_json(request), user=request.user)
    return created(party_to_dict(party))


def _party_detail(request, model, ref):
    if request.method == "GET":
        return ok(party_to_dict(parties.get_party(request.company, model, ref)))
    if request.method == "DELETE":
        parties.delete_party(request.company, model, ref, user=request.user)
        return no_content()
    party = parties.update_party(
        request.company, model, ref, read_json(request), user=request.user)
    return ok(party_to_dict(party))


@json_endpoint
@require_http_methods(["GET", "POST"])
def customer_collection(request):
    return _party_collection(request, Customer)


@json_endpoint
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def customer_detail(request, ref):
    return _party_detail(request, Customer, ref)


@json_endpoint
@require_http_methods(["GET", "POST"])
def vendor_collection(request):
    return _party_collection(request, Vendor)


@json_endpoint
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def vendor_detail(request, ref):
    return _party_detail(request, Vendor, ref)


@json_endpoint
@require_http_methods(["GET", "POST"])
def product_collection(request):
    if request.method == "GET":
        rows = parties.list_products(
            request.company, q=request.GET.get("q"), active=request.GET.get("active"))
        return ok([product_to_dict(p) for p in rows])
    product = parties.create_product(
        request.company, read_json(request), user=request.user)
    return created(product_to_dict(product))


@json_endpoint
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def product_detail(request, ref):
    if request.method == "GET":
        return ok(product_to_dict(parties.get_product(request.company, ref)))
    if request.method == "DELETE":
        parties.delete_product(request.company, ref, user=request.user)
        return no_content()
    product = parties.update_product(
        request.company, ref, read_json(request), user=request.user)
    return ok(product_to_dict(product))
