from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from ..exceptions import ConflictError, NotFoundError
from ..models import Bill, Company, Vendor
from ..services.bills import (create_bill, delete_bill, get_bill, list_bills,
                              update_bill)


class BillLifecycleTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Test Co", slug="test-co")

    def make_bill(self, **overrides):
        payload = {
            "vendor": "Paper Supplies",
            "date": "2026-01-01",
            "dueDate": "2026-01-31",
            "items": [{"qty": 2, "unitPrice": 500, "gstPct": 18}],
        }
        payload.update(overrides)
        return create_bill(self.company, payload)

    def test_create_computes_totals_and_defaults(self):
        bill = self.make_bill()
        self.assertEqual(bill.total, Decimal("1180"))
        self.assertEqual(bill.status, "open")
        self.assertRegex(bill.number, r"^BILL-\d{6}-0001$")
        self.assertEqual(bill.vendor_name, "Paper Supplies")
        self.assertEqual(bill.outstanding_amount, Decimal("1180"))

    def test_due_date_is_required(self):
        with self.assertRaises(ValidationError):
            self.make_bill(dueDate=None)

    def test_single_amount_and_empty_bills(self):
        bill = self.make_bill(items=None, amount="2,400")
        self.assertEqual(bill.total, Decimal("2400"))
        empty = self.make_bill(items=[])
        self.assertEqual(empty.total, Decimal("0"))
        self.assertFalse(empty.lines.exists())

    def test_status_synonym_applies_and_unknown_is_ignored(self):
        bill = self.make_bill(status="draft")
        bill = update_bill(self.company, bill.pk, {"status": "pending"})
        self.assertEqual(bill.status, "open")

        bill = update_bill(self.company, bill.pk, {
            "status": "bogus-status", "notes": "net 30", "dueDate": "2026-02-15"})
        bill.refresh_from_db()
        self.assertEqual(bill.status, "open")
        self.assertEqual(bill.notes, "net 30")
        self.assertEqual(bill.due_date.isoformat(), "2026-02-15")

    @override_settings(BILLING={"STRICT_BILL_STATUS": True})
    def test_strict_mode_rejects_unknown_status(self):
        bill = self.make_bill()
        with self.assertRaises(ValidationError):
            update_bill(self.company, bill.pk, {"status": "bogus-status"})

    def test_transitions(self):
        bill = self.make_bill()
        bill = update_bill(self.company, bill.pk, {"status": "approved"})
        bill = update_bill(self.company, bill.pk, {"status": "paid"})
        self.assertEqual(bill.outstanding_amount, Decimal("0"))
        with self.assertRaises(ValidationError):
            update_bill(self.company, bill.pk, {"status": "open"})

    def test_vendor_resolution_reuses_existing_rows(self):
        vendor = Vendor.objects.create(company=self.company, name="Paper Supplies", code="V-1")
        bill = self.make_bill(vendor=None, vendorId=vendor.pk)
        self.assertEqual(bill.vendor, vendor)
        bill = self.make_bill(vendor="V-1")
        self.assertEqual(bill.vendor, vendor)
        self.assertEqual(Vendor.objects.active(self.company).count(), 1)

    def test_duplicate_number_is_a_conflict(self):
        self.make_bill(billNumber="B-1")
        with self.assertRaises(ConflictError):
            self.make_bill(number="B-1")

    def test_soft_delete_and_listing(self):
        first = self.make_bill(dueDate="2026-01-20")
        self.make_bill(dueDate="2026-01-10", status="approved")
        page = list_bills(self.company)
        # soonest due first
        self.assertEqual([b.due_date.day for b in page.items], [10, 20])
        self.assertEqual(list_bills(self.company, status="Approved").total, 1)
        with self.assertRaises(ValidationError):
            list_bills(self.company, status="bogus")

        delete_bill(self.company, first.number)
        self.assertTrue(Bill.objects.get(pk=first.pk).is_deleted)
        with self.assertRaises(NotFoundError):
            get_bill(self.company, first.pk)
        self.assertEqual(list_bills(self.company).total, 1)
