import datetime
import re
from concurrent.futures import ThreadPoolExecutor

from django.db import connection
from django.test import TestCase, TransactionTestCase

from ..models import Company, Counter
from ..services.numbering import next_document_number


class CounterTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Test Co", slug="test-co")
        self.other = Company.objects.create(name="Other Co", slug="other-co")

    def test_next_value_is_monotonic_per_key(self):
        values = [Counter.objects.next_value(self.company, "INV-202610") for _ in range(3)]
        self.assertEqual(values, [1, 2, 3])
        self.assertEqual(Counter.objects.next_value(self.company, "BILL-202610"), 1)

    def test_sequences_are_per_company(self):
        Counter.objects.next_value(self.company, "INV-202610")
        self.assertEqual(Counter.objects.next_value(self.other, "INV-202610"), 1)

    def test_document_number_format(self):
        number = next_document_number(
            self.company, "INV", on=datetime.date(2026, 10, 5))
        self.assertEqual(number, "INV-202610-0001")
        # new month starts a fresh sequence
        number = next_document_number(
            self.company, "INV", on=datetime.date(2026, 11, 1))
        self.assertEqual(number, "INV-202611-0001")

    def test_default_month_is_today(self):
        self.assertRegex(next_document_number(self.company, "PMT"), re.compile(r"^PMT-\d{6}-0001$"))


class ConcurrentCounterTests(TransactionTestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Test Co", slug="test-co")

    def bump(self, _):
        try:
            return Counter.objects.next_value(self.company, "INV-202610")
        finally:
            # each worker thread opened its own connection
            connection.close()

    def test_parallel_callers_never_share_a_value(self):
        with ThreadPoolExecutor(max_workers=8) as pool:
            values = list(pool.map(self.bump, range(40)))
        self.assertEqual(sorted(values), list(range(1, 41)))
        self.assertEqual(Counter.objects.get(company=self.company, key="INV-202610").seq, 40)
