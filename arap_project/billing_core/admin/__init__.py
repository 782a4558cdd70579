from .actions import (mark_bill_as_approved, mark_bill_as_paid,
                      mark_inv_as_sent, mark_inv_as_void,
                      refresh_overdue_flags)
from .auditlog import AuditLogAdmin
from .bill import BillAdmin, VendorAdmin
from .inlines import BillLineInline, InvoiceLineInline, PaymentInline
from .invoice import CustomerAdmin, InvoiceAdmin, PaymentAdmin
from .membership import CompanyAdmin, EntityMembershipAdmin
from .mixins import TenantAdminMixin
from .product import CounterAdmin, ProductAdmin
