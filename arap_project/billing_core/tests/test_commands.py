from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase

from ..models import Bill, Company, EntityMembership, Invoice, Payment


class DemoTenantCommandTests(TestCase):
    def run_command(self, *args, **options):
        out = StringIO()
        call_command(*args, stdout=out, **options)
        return out.getvalue()

    def test_creates_a_complete_demo_tenant(self):
        output = self.run_command("create_demo_tenant", company_name="Demo Co")
        self.assertIn("Demo tenant setup complete!", output)

        company = Company.objects.get(name="Demo Co")
        self.assertEqual(company.slug, "demo-co")
        user = get_user_model().objects.get(username="demo")
        self.assertTrue(user.check_password("demo123"))
        self.assertTrue(EntityMembership.objects.filter(
            user=user, company=company, role="owner").exists())

        self.assertEqual(Invoice.objects.active(company).count(), 3)
        self.assertEqual(Invoice.objects.active(company).filter(status="paid").count(), 1)
        self.assertEqual(Payment.objects.active(company).count(), 1)
        self.assertEqual(Bill.objects.active(company).count(), 1)

    def test_second_run_reuses_the_tenant(self):
        self.run_command("create_demo_tenant", company_name="Demo Co")
        output = self.run_command("create_demo_tenant", company_name="Demo Co")
        self.assertIn("Sample data already present", output)
        self.assertEqual(Company.objects.filter(name="Demo Co").count(), 1)
        self.assertEqual(Invoice.objects.count(), 3)

    def test_seed_demo_wraps_create_demo_tenant(self):
        output = self.run_command("seed_demo", company="Seed Co")
        self.assertIn("Demo data seeded successfully!", output)
        self.assertTrue(Company.objects.filter(slug="seed-co").exists())
        self.assertIn("marked overdue", output)

    def test_seed_demo_can_skip_the_overdue_pass(self):
        output = self.run_command("seed_demo", company="Quiet Co", skip_overdue=True)
        self.assertIn("Demo data seeded successfully!", output)
        self.assertNotIn("marked overdue", output)
