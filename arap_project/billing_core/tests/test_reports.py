from decimal import Decimal
import datetime

from django.test import SimpleTestCase, TestCase

from ..models import Company
from ..serializers import to_json
from ..services.bills import create_bill
from ..services.invoices import create_invoice
from ..services.overdue import refresh_overdue
from ..services.payments import create_payment
from ..services.reports import (aging_buckets, collection_rate, dashboard,
                                period_report)

TODAY = datetime.date(2026, 3, 31)


class AgingTests(SimpleTestCase):
    def test_buckets(self):
        days = datetime.timedelta
        rows = [
            (TODAY - days(10), Decimal("100")),
            (TODAY - days(30), Decimal("50")),
            (TODAY - days(45), Decimal("200")),
            (TODAY - days(75), Decimal("300")),
            (TODAY - days(120), Decimal("400")),
            (TODAY + days(5), Decimal("999")),  # not yet due
            (TODAY, Decimal("999")),  # due today
            (None, Decimal("5")),
        ]
        self.assertEqual(aging_buckets(rows, TODAY), [
            {"bucket": "0-30", "amount": Decimal("150")},
            {"bucket": "31-60", "amount": Decimal("200")},
            {"bucket": "61-90", "amount": Decimal("300")},
            {"bucket": "90+", "amount": Decimal("400")},
        ])

    def test_collection_rate(self):
        self.assertEqual(collection_rate(50, 25, 25), 50.0)
        self.assertEqual(collection_rate(0, 0, 0), 0.0)


class ReportTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Test Co", slug="test-co")
        other = Company.objects.create(name="Other", slug="other")
        # another tenant's data must never show up
        create_invoice(other, {
            "customer": "Acme", "date": "2026-03-20",
            "items": [{"qty": 1, "unitPrice": 99999}]})

        recent = self.invoice("Acme", "2026-03-20", 5000)
        create_payment(self.company, {
            "invoiceId": recent.pk, "amount": 2000, "date": "2026-03-25"})
        self.invoice("Globex", "2026-01-01", 1000, dueDate="2026-01-31")
        settled = self.invoice("Initech", "2026-03-01", 500)
        create_payment(self.company, {
            "invoiceId": settled.pk, "amount": 500, "date": "2026-03-10"})
        refresh_overdue(self.company, today=TODAY)

        create_bill(self.company, {
            "vendor": "Paper Co", "date": "2026-03-01", "dueDate": "2026-04-15",
            "amount": 700})
        create_bill(self.company, {
            "vendor": "Paper Co", "date": "2026-02-01", "dueDate": "2026-03-01",
            "amount": 300})

    def invoice(self, customer, issued, amount, **extra):
        return create_invoice(self.company, {
            "customer": customer, "date": issued,
            "items": [{"qty": 1, "unitPrice": amount}], **extra})

    def test_dashboard_cards(self):
        cards = dashboard(self.company, "30d", today=TODAY)["cards"]
        self.assertEqual(cards["total_invoiced"], Decimal("6500"))
        self.assertEqual(cards["ar_open"], Decimal("5000"))
        self.assertEqual(cards["ar_overdue"], Decimal("1000"))
        self.assertEqual(cards["ar_overdue_count"], 1)
        self.assertEqual(cards["ar_paid"], Decimal("500"))
        self.assertEqual(cards["total_outstanding"], Decimal("4000"))
        self.assertEqual(cards["ap_open"], Decimal("1000"))
        self.assertEqual(cards["ap_overdue_count"], 1)
        self.assertEqual(cards["cash_in"], Decimal("2500"))
        self.assertAlmostEqual(cards["collection_rate"], 500 / 6500 * 100)

    def test_dashboard_lists_and_range(self):
        data = dashboard(self.company, "7d", today=TODAY)
        self.assertEqual(data["range"]["from"], datetime.date(2026, 3, 25))
        self.assertEqual(data["cards"]["cash_in"], Decimal("2000"))
        self.assertEqual([b.due_date for b in data["upcoming_bills"]],
                         [datetime.date(2026, 4, 15)])
        self.assertEqual(len(data["charts"]["days"]), 14)
        self.assertEqual(data["top_customers"][0]["customer"], "Acme")
        # unknown range keys fall back to 30 days
        self.assertEqual(dashboard(self.company, "5y", today=TODAY)["range"]["key"], "30d")

    def test_period_report(self):
        report = period_report(self.company, "2026-03-01", "2026-03-31", today=TODAY)
        summary = report["summary"]
        self.assertEqual(summary["invoices"]["count"], 2)
        self.assertEqual(summary["invoices"]["total"], Decimal("5500"))
        self.assertEqual(summary["invoices"]["average"], Decimal("2750"))
        self.assertEqual(summary["payments"]["total"], Decimal("2500"))
        self.assertEqual(summary["ap"]["open"], Decimal("700"))
        self.assertEqual(summary["ap"]["overdue"], Decimal("300"))
        ar = {row["bucket"]: row["amount"] for row in report["ar_aging"]}
        self.assertEqual(ar["31-60"], Decimal("1000"))
        ap = {row["bucket"]: row["amount"] for row in report["ap_aging"]}
        self.assertEqual(ap["0-30"], Decimal("300"))
        self.assertEqual([row["customer"] for row in report["top_customers"]],
                         ["Acme", "Initech"])

    def test_reports_serialize_to_json_types(self):
        data = to_json(dashboard(self.company, "30d", today=TODAY))
        self.assertEqual(data["cards"]["totalInvoiced"], 6500.0)
        self.assertEqual(data["range"]["to"], "2026-03-31")
        self.assertEqual(data["recentPayments"][0]["amount"], 2000.0)
        self.assertIn("vendorName", data["upcomingBills"][0])
