from .analytics import dashboard, forecast, latepay, period_report
from .documents import (bill_collection, bill_detail, invoice_collection,
                        invoice_detail)
from .parties import (customer_collection, customer_detail,
                      product_collection, product_detail, vendor_collection,
                      vendor_detail)
from .payments import payment_collection, payment_detail
