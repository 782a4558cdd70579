import logging

from django.utils.deprecation import MiddlewareMixin

from .models import Company, EntityMembership

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-Id"


def _lookup_company(raw):
    raw = str(raw).strip()
    qs = Company.objects.filter(is_deleted=False)
    company = qs.filter(slug=raw.lower()).first()
    if company is None and raw.isdigit():
        company = qs.filter(pk=int(raw)).first()
    return company


class CurrentCompanyMiddleware(MiddlewareMixin):
    # Run on every request and attach a .company attribute to the request:
    # the X-Tenant-Id header (slug or id), then ?tenant=, then the
    # logged-in user's first active membership
    def process_request(self, request):
        request.company = None
        request.tenant_error = None
        user = getattr(request, "user", None)
        authenticated = bool(user and user.is_authenticated)

        raw = request.headers.get(TENANT_HEADER) or request.GET.get("tenant")
        if raw:
            company = _lookup_company(raw)
            if company is None:
                request.tenant_error = f"Unknown tenant {raw!r}"
                return
        elif authenticated:
            membership = (
                EntityMembership.objects.filter(
                    user=user, is_active=True, company__is_deleted=False)
                .select_related("company")
                .order_by("created_at", "id")
                .first()
            )
            company = membership.company if membership else None
        else:
            company = None

        if company is None:
            request.tenant_error = "Missing tenant"
            return

        # ensure security: a signed-in user must be a member of that company
        if authenticated and not user.is_superuser:
            if not EntityMembership.objects.filter(
                user=user, company=company, is_active=True
            ).exists():
                # prevent someone from "jumping" into another company
                logger.warning("User %s denied access to company %s",
                               user.pk, company.slug)
                request.tenant_error = "Not a member of this tenant"
                return

        request.company = company
