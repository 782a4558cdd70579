import datetime
import logging
from decimal import Decimal
from typing import Optional

from ..models import AuditLog, Company

logger = logging.getLogger(__name__)


def actor(user):
    """The user to stamp on records; anonymous callers count as the system."""
    if user is not None and getattr(user, "is_authenticated", False):
        return user
    return None


def _plain(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    return value


def log_action(
    *,
    action: str,
    instance,
    user=None,
    company: Optional[Company] = None,
    changes: dict | None = None,
):
    """
    Append one row to the tenant's audit trail.
    `changes` may hold Decimals and dates; they are stored as strings.
    Rows without a company are skipped, every audited record is tenant scoped.
    """
    company = company or getattr(instance, "company", None)
    if company is None:
        logger.warning("Audit %s on %s skipped: no company",
                       action, instance.__class__.__name__)
        return None

    return AuditLog.objects.create(
        company=company,
        user=actor(user),
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=_plain(changes) if changes else None,
    )
