from .auditlog import AuditLog
from .bill import Bill, BillLine
from .counter import Counter
from .customer import Customer
from .invoice import Invoice, InvoiceLine
from .payment import PAYMENT_METHODS, Payment
from .product import Product
from .tenant import Company, EntityMembership
from .vendor import Vendor
