from django.core.management.base import BaseCommand, CommandError

from billing_core.models import Company
from billing_core.services.normalize import parse_date
from billing_core.services.overdue import refresh_overdue


class Command(BaseCommand):
    help = "Flag past-due invoices as overdue (same pass the Celery beat task runs)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--company", help="Slug of a single company (default: all companies)")
        parser.add_argument(
            "--date", help="Evaluate as of this date, YYYY-MM-DD (default: today)")

    def handle(self, *args, **options):
        company = None
        if options["company"]:
            company = Company.objects.filter(
                slug=options["company"], is_deleted=False).first()
            if company is None:
                raise CommandError(f"Unknown company {options['company']!r}")

        today = None
        if options["date"]:
            today = parse_date(options["date"])
            if today is None:
                raise CommandError(f"Invalid date {options['date']!r}")

        marked, cleared = refresh_overdue(company=company, today=today)
        self.stdout.write(self.style.SUCCESS(
            f"{marked} invoice(s) marked overdue, {cleared} cleared"))
