import json

import pytest
from django.contrib.auth.models import Permission
from django.contrib.messages.storage.fallback import FallbackStorage
from django.test import RequestFactory, TestCase

from ..admin.invoice import InvoiceAdmin
from ..middleware import CurrentCompanyMiddleware
from ..models import AuditLog, Company, Customer, EntityMembership, Invoice
from ..services.invoices import create_invoice
from ..services.payments import create_payment


def make_invoice(company, number, customer="Acme"):
    return create_invoice(company, {
        "customer": customer,
        "number": number,
        "items": [{"qty": 1, "unitPrice": 100}],
    })


class TenantIsolationManagerTests(TestCase):
    def setUp(self):
        self.company_a = Company.objects.create(name="Company A", slug="com-a")
        self.company_b = Company.objects.create(name="Company B", slug="com-b")
        self.inv_a = make_invoice(self.company_a, "A-1")
        self.inv_b = make_invoice(self.company_b, "B-1")

    def test_for_company_returns_only_that_company_objects(self):
        self.assertListEqual(
            list(Invoice.objects.for_company(self.company_a).values_list("pk", flat=True)),
            [self.inv_a.pk],
        )

    def test_active_hides_soft_deleted_rows(self):
        Invoice.objects.filter(pk=self.inv_a.pk).update(is_deleted=True)
        self.assertFalse(Invoice.objects.active(self.company_a).exists())
        self.assertTrue(Invoice.objects.for_company(self.company_a).exists())

    def test_get_other_company_object_raises_does_not_exist(self):
        with self.assertRaises(Invoice.DoesNotExist):
            Invoice.objects.for_company(self.company_a).get(pk=self.inv_b.pk)

    def test_same_customer_name_resolves_per_tenant(self):
        self.assertNotEqual(self.inv_a.customer_id, self.inv_b.customer_id)
        self.assertEqual(Customer.objects.for_company(self.company_a).count(), 1)


class MiddlewareTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = CurrentCompanyMiddleware(lambda request: None)
        self.company = Company.objects.create(name="Company A", slug="com-a")
        self.other = Company.objects.create(name="Company B", slug="com-b")

    def run_middleware(self, request, user=None):
        from django.contrib.auth.models import AnonymousUser

        request.user = user or AnonymousUser()
        self.middleware.process_request(request)
        return request

    def test_header_by_slug_or_id(self):
        request = self.run_middleware(
            self.factory.get("/", HTTP_X_TENANT_ID="COM-A"))
        self.assertEqual(request.company, self.company)
        request = self.run_middleware(
            self.factory.get("/", HTTP_X_TENANT_ID=str(self.other.pk)))
        self.assertEqual(request.company, self.other)

    def test_query_parameter(self):
        request = self.run_middleware(self.factory.get("/", {"tenant": "com-b"}))
        self.assertEqual(request.company, self.other)

    def test_unknown_and_missing_tenant(self):
        request = self.run_middleware(self.factory.get("/", HTTP_X_TENANT_ID="nope"))
        self.assertIsNone(request.company)
        self.assertIn("Unknown tenant", request.tenant_error)
        request = self.run_middleware(self.factory.get("/"))
        self.assertEqual(request.tenant_error, "Missing tenant")

    def test_membership_is_required_for_signed_in_users(self):
        from django.contrib.auth import get_user_model

        user = get_user_model().objects.create_user(username="alice", password="pw")
        EntityMembership.objects.create(user=user, company=self.company, role="accountant")
        # falls back to the user's membership
        request = self.run_middleware(self.factory.get("/"), user=user)
        self.assertEqual(request.company, self.company)
        # cannot jump into another tenant
        request = self.run_middleware(
            self.factory.get("/", HTTP_X_TENANT_ID="com-b"), user=user)
        self.assertIsNone(request.company)
        self.assertEqual(request.tenant_error, "Not a member of this tenant")


class TenantAdminMixinTests(TestCase):
    def setUp(self):
        from django.contrib.admin.sites import AdminSite
        from django.contrib.auth import get_user_model

        self.company_a = Company.objects.create(name="Company A", slug="com-a")
        self.company_b = Company.objects.create(name="Company B", slug="com-b")
        make_invoice(self.company_a, "A-1")
        make_invoice(self.company_b, "B-1")
        self.admin = InvoiceAdmin(Invoice, AdminSite())
        User = get_user_model()
        self.staff = User.objects.create_user(username="staff", password="pw", is_staff=True)
        self.root = User.objects.create_superuser(username="root", password="pw")

    def request(self, user, company):
        request = RequestFactory().get("/admin/")
        request.user = user
        request.company = company
        return request

    def test_staff_only_sees_own_company(self):
        qs = self.admin.get_queryset(self.request(self.staff, self.company_a))
        self.assertEqual([inv.number for inv in qs], ["A-1"])
        self.assertFalse(self.admin.get_queryset(self.request(self.staff, None)).exists())

    def test_superuser_sees_everything(self):
        qs = self.admin.get_queryset(self.request(self.root, None))
        self.assertEqual(qs.count(), 2)

    def join(self, role):
        EntityMembership.objects.create(
            user=self.staff, company=self.company_a, role=role)

    def test_viewer_cannot_change_or_delete(self):
        self.join("viewer")
        request = self.request(self.staff, self.company_a)
        invoice = Invoice.objects.get(number="A-1")
        self.assertFalse(self.admin.has_change_permission(request, invoice))
        self.assertFalse(self.admin.has_delete_permission(request, invoice))
        self.assertFalse(self.admin.has_add_permission(request))

    def test_accountant_with_model_permission_can_change(self):
        self.join("accountant")
        self.staff.user_permissions.add(
            Permission.objects.get(codename="change_invoice"))
        request = self.request(self.staff, self.company_a)
        invoice = Invoice.objects.get(number="A-1")
        self.assertTrue(self.admin.has_change_permission(request, invoice))

    def test_paid_invoice_is_read_only_and_undeletable(self):
        invoice = Invoice.objects.get(number="A-1")
        Invoice.objects.filter(pk=invoice.pk).update(status="paid")
        invoice.refresh_from_db()
        request = self.request(self.root, None)
        self.assertIn("total", self.admin.get_readonly_fields(request, invoice))
        self.assertIn("customer", self.admin.get_readonly_fields(request, invoice))
        self.assertFalse(self.admin.has_delete_permission(request, invoice))

    def test_admin_delete_is_a_soft_delete(self):
        invoice = Invoice.objects.get(number="A-1")
        self.admin.delete_model(self.request(self.root, None), invoice)
        invoice.refresh_from_db()
        self.assertTrue(invoice.is_deleted)
        self.assertTrue(AuditLog.objects.filter(
            action="delete", object_id=str(invoice.pk)).exists())

    def test_admin_delete_keeps_an_invoice_with_payments(self):
        invoice = Invoice.objects.get(number="A-1")
        create_payment(self.company_a, {"invoiceId": invoice.pk, "amount": 40})
        request = self.request(self.root, None)
        request.session = "session"
        request._messages = FallbackStorage(request)

        self.admin.delete_model(request, invoice)

        invoice.refresh_from_db()
        self.assertFalse(invoice.is_deleted)
        self.assertIn("applied payments", str(list(request._messages)[0]))


@pytest.mark.django_db
def test_invoice_list_returns_only_tenant_data(client):
    c1 = Company.objects.create(name="Company A", slug="com-a")
    c2 = Company.objects.create(name="Company B", slug="com-b")
    make_invoice(c1, "A-1")
    make_invoice(c2, "B-1")

    response = client.get("/api/invoices/", headers={"X-Tenant-Id": "com-a"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert [row["number"] for row in data["items"]] == ["A-1"]


@pytest.mark.django_db
def test_other_tenants_invoice_is_not_found(client):
    c1 = Company.objects.create(name="Company A", slug="com-a")
    c2 = Company.objects.create(name="Company B", slug="com-b")
    make_invoice(c1, "A-1")
    foreign = make_invoice(c2, "B-1")

    response = client.get(f"/api/invoices/{foreign.pk}/", headers={"X-Tenant-Id": "com-a"})
    assert response.status_code == 404
    response = client.put(
        f"/api/invoices/{foreign.pk}/",
        data=json.dumps({"notes": "hijack"}),
        content_type="application/json",
        headers={"X-Tenant-Id": "com-a"},
    )
    assert response.status_code == 404
