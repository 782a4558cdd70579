import datetime

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from billing_core.models import Company, EntityMembership, Invoice
from billing_core.services.bills import create_bill
from billing_core.services.invoices import create_invoice
from billing_core.services.parties import create_product
from billing_core.services.payments import create_payment

User = get_user_model()


def unique_slug_for_company(name, max_tries=100):
    # Convert company name into a slug (e.g., "Test Ltd" → "test-ltd")
    base = slugify(name) or "company"
    slug = base
    i = 1
    # If plain slug is taken, append -1, -2, etc.
    while Company.objects.filter(slug=slug).exists():
        slug = f"{base}-{i}"
        i += 1
        if i > max_tries:
            raise CommandError("Couldn't generate unique slug")
    return slug


class Command(BaseCommand):
    help = (
        "Create a demo tenant (company), an owner user, and sample customers, "
        "invoices, payments and bills."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",
            default="Demo Company",
            help="Name of the demo company to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        company_name = options["company_name"]
        username = options["username"]
        password = options["password"]
        today = timezone.localdate()

        # 1. Create company
        company = Company.objects.filter(name=company_name, is_deleted=False).first()
        if company is None:
            company = Company.objects.create(
                name=company_name, slug=unique_slug_for_company(company_name))
        self.stdout.write(self.style.SUCCESS(f"Company: {company} ({company.slug})"))

        # 2. Create user and make them owner of the company
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:
            user.set_password(password)
            user.save()
        EntityMembership.objects.get_or_create(
            user=user, company=company, defaults={"role": "owner"})
        self.stdout.write(
            self.style.SUCCESS(f"User: {user.username} (pw={password})"))

        if Invoice.objects.active(company).exists():
            self.stdout.write(self.style.NOTICE("Sample data already present"))
            return

        # 3. Catalogue
        consulting = create_product(company, {
            "name": "Consulting hour", "unitPrice": "1500", "gstPct": "18",
        }, user=user)

        # 4. Invoices; customers are created on the fly from their names
        samples = [
            ("Acme Traders", today - datetime.timedelta(days=45), 4, "sent"),
            ("Globex Retail", today - datetime.timedelta(days=20), 2, "sent"),
            ("Initech", today - datetime.timedelta(days=5), 1, "draft"),
        ]
        invoices = []
        for customer, issued, hours, status in samples:
            invoice = create_invoice(company, {
                "customer": customer,
                "date": issued.isoformat(),
                "status": status,
                "items": [{"productId": consulting.pk, "qty": hours}],
            }, user=user)
            invoices.append(invoice)
            self.stdout.write(self.style.SUCCESS(
                f"Created invoice: {invoice.number} for {customer} ({invoice.total})"))

        # 5. Settle the oldest invoice in full
        paid = invoices[0]
        payment = create_payment(company, {
            "invoiceId": paid.pk,
            "amount": str(paid.total),
            "date": (paid.date + datetime.timedelta(days=32)).isoformat(),
            "method": "Bank",
        }, user=user)
        self.stdout.write(self.style.SUCCESS(f"Created payment: {payment.reference}"))

        # 6. One open vendor bill
        bill = create_bill(company, {
            "vendor": "Office Supplies Co",
            "date": today.isoformat(),
            "dueDate": (today + datetime.timedelta(days=15)).isoformat(),
            "amount": "2400",
        }, user=user)
        self.stdout.write(self.style.SUCCESS(f"Created bill: {bill.number}"))
        self.stdout.write(self.style.SUCCESS("Demo tenant setup complete!"))
