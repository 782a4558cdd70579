from decimal import Decimal
import datetime

from django.core.exceptions import ValidationError
from django.test import TestCase

from ..exceptions import ConflictError, MalformedIdentifierError, NotFoundError
from ..models import AuditLog, Company, Customer, Invoice, InvoiceLine, Product
from ..services.invoices import (create_invoice, delete_invoice, get_invoice,
                                 list_invoices, update_invoice)
from ..services.payments import create_payment


class InvoiceLifecycleTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Test Co", slug="test-co")

    def make_invoice(self, **overrides):
        payload = {
            "customer": "Acme Traders",
            "date": "2026-01-10",
            "items": [{"qty": 1, "unitPrice": 3221, "gstPct": 18}],
        }
        payload.update(overrides)
        return create_invoice(self.company, payload)

    def test_total_rounds_tax_half_up(self):
        invoice = self.make_invoice()
        self.assertEqual(invoice.subtotal, Decimal("3221"))
        self.assertEqual(invoice.tax, Decimal("580"))
        self.assertEqual(invoice.total, Decimal("3801"))
        self.assertEqual(invoice.outstanding_amount, Decimal("3801"))

    def test_defaults_number_status_and_due_date(self):
        invoice = self.make_invoice()
        self.assertRegex(invoice.number, r"^INV-\d{6}-0001$")
        self.assertEqual(invoice.status, "sent")
        # customer created on the fly with the default 30 day terms
        self.assertEqual(invoice.due_date, datetime.date(2026, 2, 9))
        self.assertEqual(invoice.customer.name, "Acme Traders")
        self.assertEqual(invoice.customer_name, "Acme Traders")
        second = self.make_invoice()
        self.assertTrue(second.number.endswith("-0002"))
        self.assertEqual(Customer.objects.active(self.company).count(), 1)

    def test_status_synonyms_are_accepted_on_create(self):
        invoice = self.make_invoice(status="Unpaid")
        self.assertEqual(invoice.status, "sent")

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.make_invoice(status="bogus-status")
        invoice = self.make_invoice()
        with self.assertRaises(ValidationError):
            update_invoice(self.company, invoice.pk, {"status": "bogus-status"})

    def test_requires_at_least_one_line(self):
        with self.assertRaises(ValidationError):
            self.make_invoice(items=[])
        self.assertFalse(Invoice.objects.exists())

    def test_negative_quantity_is_rejected_with_row(self):
        with self.assertRaisesMessage(ValidationError, "row 2"):
            self.make_invoice(items=[
                {"qty": 1, "unitPrice": 10},
                {"qty": -1, "unitPrice": 10},
            ])

    def test_product_supplies_line_defaults(self):
        product = Product.objects.create(
            company=self.company, code="P-1", name="Widget",
            unit_price=Decimal("250"), tax_pct=Decimal("12"))
        invoice = self.make_invoice(items=[{"productId": product.pk, "qty": 2}])
        line = invoice.lines.get()
        self.assertEqual(line.description, "Widget")
        self.assertEqual(line.unit_price, Decimal("250"))
        self.assertEqual(invoice.total, Decimal("560"))

    def test_single_line_from_top_level_fields(self):
        invoice = self.make_invoice(items=None, qty=2, unitPrice="1,000", gst=5)
        self.assertEqual(invoice.total, Decimal("2100"))

    def test_duplicate_number_is_a_conflict(self):
        self.make_invoice(number="INV-A")
        with self.assertRaises(ConflictError):
            self.make_invoice(number="INV-A")
        # other tenants may reuse the number
        other = Company.objects.create(name="Other", slug="other")
        create_invoice(other, {
            "customer": "Acme Traders", "number": "INV-A",
            "items": [{"qty": 1, "unitPrice": 1}],
        })

    def test_transitions_follow_the_state_machine(self):
        invoice = self.make_invoice(status="draft")
        invoice = update_invoice(self.company, invoice.pk, {"status": "sent"})
        self.assertEqual(invoice.status, "sent")
        # same-state change is a no-op
        update_invoice(self.company, invoice.pk, {"status": "sent"})
        invoice = update_invoice(self.company, invoice.pk, {"status": "void"})
        self.assertEqual(invoice.status, "void")
        # void is terminal and immutable
        with self.assertRaises(ValidationError):
            update_invoice(self.company, invoice.pk, {"status": "sent"})
        with self.assertRaises(ValidationError):
            update_invoice(self.company, invoice.pk, {"notes": "changed"})

    def test_paid_cannot_go_back_to_draft(self):
        invoice = self.make_invoice()
        invoice = update_invoice(self.company, invoice.pk, {"status": "paid"})
        with self.assertRaises(ValidationError):
            update_invoice(self.company, invoice.pk, {"status": "draft"})

    def test_line_update_recomputes_totals_and_paid_status(self):
        invoice = self.make_invoice(items=[{"qty": 1, "unitPrice": 1000}])
        create_payment(self.company, {"invoiceId": invoice.pk, "amount": 600})
        invoice = update_invoice(self.company, invoice.pk, {
            "items": [{"qty": 1, "unitPrice": 500}]})
        self.assertEqual(invoice.total, Decimal("500"))
        self.assertEqual(invoice.status, "paid")
        self.assertEqual(invoice.outstanding_amount, Decimal("0"))

    def test_update_by_number_and_audit_trail(self):
        invoice = self.make_invoice(number="INV-77")
        update_invoice(self.company, "INV-77", {"notes": "call first"})
        invoice.refresh_from_db()
        self.assertEqual(invoice.notes, "call first")
        actions = list(AuditLog.objects.for_company(self.company)
                       .filter(object_type="Invoice").values_list("action", flat=True))
        self.assertIn("create", actions)
        self.assertIn("update", actions)

    def test_due_date_before_issue_date_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.make_invoice(dueDate="2026-01-01")

    def test_soft_delete_hides_the_invoice(self):
        invoice = self.make_invoice()
        delete_invoice(self.company, invoice.pk)
        self.assertTrue(Invoice.objects.get(pk=invoice.pk).is_deleted)
        with self.assertRaises(NotFoundError):
            get_invoice(self.company, invoice.pk)
        self.assertEqual(list_invoices(self.company).total, 0)

    def test_delete_with_payments_is_a_conflict(self):
        invoice = self.make_invoice()
        create_payment(self.company, {"invoiceId": invoice.pk, "amount": 100})
        with self.assertRaises(ConflictError):
            delete_invoice(self.company, invoice.pk)
        with self.assertRaises(ConflictError):
            Invoice.objects.get(pk=invoice.pk).delete()

    def test_list_filters_and_pagination(self):
        self.make_invoice(customer="Acme Traders")
        self.make_invoice(customer="Globex", status="draft")
        self.make_invoice(customer="Globex")
        page = list_invoices(self.company, status="all", page_size=2)
        self.assertEqual((page.total, len(page.items)), (3, 2))
        self.assertEqual(list_invoices(self.company, status="open").total, 2)
        self.assertEqual(list_invoices(self.company, q="glob").total, 2)
        with self.assertRaises(ValidationError):
            list_invoices(self.company, status="nonsense")
        page = list_invoices(self.company, page=0, page_size=10_000)
        self.assertEqual((page.page, page.page_size), (1, 100))

    def test_line_saved_outside_the_services_updates_totals(self):
        invoice = self.make_invoice()
        product = Product.objects.create(
            company=self.company, code="P-2", name="Support", unit_price=Decimal("100"))
        InvoiceLine.from_product.create_from_product(product, invoice=invoice, quantity=2)
        invoice.refresh_from_db()
        self.assertEqual(invoice.total, Decimal("4001"))
        self.assertEqual(invoice.outstanding_amount, Decimal("4001"))

    def test_line_product_must_share_the_company(self):
        other = Company.objects.create(name="Other", slug="other")
        foreign = Product.objects.create(company=other, code="P-X", name="Foreign")
        invoice = self.make_invoice()
        with self.assertRaises(ValidationError):
            InvoiceLine.objects.create(invoice=invoice, product=foreign, quantity=1)

    def test_line_without_tax_defaults_to_zero_tax(self):
        invoice = self.make_invoice(items=[{"qty": 2, "unitPrice": 50}])
        line = invoice.lines.get()
        self.assertEqual(line.tax_pct, Decimal("0"))
        self.assertEqual(invoice.total, Decimal("100"))

    def test_update_with_only_an_email_keeps_the_matching_customer(self):
        acme = Customer.objects.create(
            company=self.company, name="Acme Traders", email="ap@acme.test")
        invoice = self.make_invoice()
        self.assertEqual(invoice.customer, acme)
        invoice = update_invoice(self.company, invoice.pk, {"customerEmail": "ap@acme.test"})
        self.assertEqual(invoice.customer, acme)
        self.assertEqual(
            list(Customer.objects.for_company(self.company).values_list("name", flat=True)),
            ["Acme Traders"],
        )

    def test_customer_filter_must_be_an_id(self):
        self.make_invoice()
        with self.assertRaises(MalformedIdentifierError):
            list_invoices(self.company, customer="abc")
