from django.urls import path

from . import views

app_name = "billing_core"

urlpatterns = [
    path("customers/", views.customer_collection, name="customer-list"),
    path("customers/<str:ref>/", views.customer_detail, name="customer-detail"),
    path("vendors/", views.vendor_collection, name="vendor-list"),
    path("vendors/<str:ref>/", views.vendor_detail, name="vendor-detail"),
    path("products/", views.product_collection, name="product-list"),
    path("products/<str:ref>/", views.product_detail, name="product-detail"),
    path("invoices/", views.invoice_collection, name="invoice-list"),
    path("invoices/<str:ref>/", views.invoice_detail, name="invoice-detail"),
    path("bills/", views.bill_collection, name="bill-list"),
    path("bills/<str:ref>/", views.bill_detail, name="bill-detail"),
    path("payments/", views.payment_collection, name="payment-list"),
    path("payments/<str:ref>/", views.payment_detail, name="payment-detail"),
    path("dashboard/", views.dashboard, name="dashboard"),
    path("reports/", views.period_report, name="reports"),
    path("ml/latepay/", views.latepay, name="latepay"),
    path("ml/forecast/", views.forecast, name="forecast"),
]
