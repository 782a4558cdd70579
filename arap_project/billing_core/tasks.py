import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def refresh_overdue_invoices(company_id=None):
    # import lazily to avoid circular imports at module import time
    from .models import Company
    from .services.overdue import refresh_overdue

    company = None
    if company_id is not None:
        company = Company.objects.filter(pk=company_id).first()
        if company is None:
            logger.warning("Overdue pass skipped: company %s not found", company_id)
            return {"marked": 0, "cleared": 0}

    marked, cleared = refresh_overdue(company=company)
    return {"marked": marked, "cleared": cleared}
