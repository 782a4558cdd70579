from django.utils import timezone
from django.views.decorators.http import require_GET

from ..serializers import forecast_to_dict, risk_row_to_dict, to_json
from ..services import reports
from ..services.forecast import ForecastOptions, build_forecast
from ..services.risk import score_invoices
from ..services.snapshots import invoice_snapshots, payment_snapshots
from .common import json_endpoint, ok


@json_endpoint
@require_GET
def dashboard(request):
    data = reports.dashboard(request.company, range_key=request.GET.get("range", "30d"))
    return ok(to_json(data))


@json_endpoint
@require_GET
def period_report(request):
    data = reports.period_report(
        request.company,
        date_from=request.GET.get("from"),
        date_to=request.GET.get("to"),
    )
    return ok(to_json(data))


@json_endpoint
@require_GET
def latepay(request):
    rows = score_invoices(invoice_snapshots(request.company), timezone.localdate())
    return ok([risk_row_to_dict(row) for row in rows])


@json_endpoint
@require_GET
def forecast(request):
    options = ForecastOptions.from_settings(request.GET.dict())
    result = build_forecast(
        invoice_snapshots(request.company),
        payment_snapshots(request.company),
        timezone.localdate(),
        options,
    )
    return ok(forecast_to_dict(result))
