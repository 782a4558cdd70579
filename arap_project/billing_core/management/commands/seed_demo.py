from django.core.management import call_command
from django.core.management.base import BaseCommand

from billing_core.models import Company


class Command(BaseCommand):
    help = (
        "Seed a demo tenant with invoices, payments and a bill, then flag "
        "the invoices that are already past due."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--company",
            type=str,
            default="Demo Ltd",
            help="Name of the demo company (default: Demo Ltd)",
        )
        parser.add_argument("--username", default="demo")
        parser.add_argument(
            "--skip-overdue",
            action="store_true",
            help="Leave invoice statuses as created instead of refreshing overdue flags.",
        )

    def handle(self, *args, **options):
        name = options["company"]
        self.stdout.write(self.style.NOTICE(f"Seeding demo data for {name}..."))
        call_command(
            "create_demo_tenant",
            company_name=name,
            username=options["username"],
            stdout=self.stdout,
        )

        if not options["skip_overdue"]:
            company = Company.objects.get(name=name, is_deleted=False)
            call_command("refresh_overdue", company=company.slug, stdout=self.stdout)

        self.stdout.write(self.style.SUCCESS("Demo data seeded successfully!"))
