from decimal import Decimal
import datetime

from django.test import SimpleTestCase, override_settings

from ..services.forecast import (ForecastOptions, build_forecast,
                                 expected_date, learn_delays, prob_mass)
from ..services.snapshots import InvoiceSnapshot, PaymentSnapshot

TODAY = datetime.date(2026, 10, 19)


def invoice(number="INV-1", customer="Acme", due=TODAY, status="sent",
            amount="400", issued=None):
    return InvoiceSnapshot(
        id=1,
        number=number,
        customer_name=customer,
        date=issued or due - datetime.timedelta(days=30),
        due_date=due,
        status=status,
        total=Decimal(amount),
        outstanding=Decimal(amount),
    )


class ProbMassTests(SimpleTestCase):
    def test_shapes_sum_to_one(self):
        for shape in ("flat", "linear", "geometric"):
            for n in (1, 4, 7, 30):
                self.assertAlmostEqual(sum(prob_mass(n, shape, risk=50)), 1.0)

    def test_shape_profiles(self):
        self.assertEqual(prob_mass(4, "flat"), [0.25] * 4)
        linear = prob_mass(4, "linear")
        self.assertAlmostEqual(linear[0], 0.4)
        self.assertAlmostEqual(linear[-1], 0.1)

    def test_riskier_invoices_get_a_longer_tail(self):
        safe = prob_mass(7, "geometric", risk=0)
        risky = prob_mass(7, "geometric", risk=100)
        self.assertGreater(safe[0], risky[0])
        self.assertLess(safe[-1], risky[-1])


class ForecastOptionTests(SimpleTestCase):
    def test_query_overrides_and_fallbacks(self):
        options = ForecastOptions.from_settings({
            "horizonDays": "10",
            "spreadShape": "Weird",
            "multHigh": "nan",
            "discountUptake": "abc",
            "collectionPush": "5",
        })
        self.assertEqual(options.horizon_days, 10)
        self.assertEqual(options.spread_shape, "geometric")
        self.assertEqual(options.mult_high, 1.6)
        self.assertEqual(options.discount_uptake, 35.0)
        self.assertEqual(options.collection_push, 5)

    def test_horizon_is_at_least_one_day(self):
        self.assertEqual(ForecastOptions.from_settings({"horizonDays": "0"}).horizon_days, 1)

    def test_horizon_and_spread_are_capped(self):
        options = ForecastOptions.from_settings(
            {"horizonDays": "100000000", "spreadDays": "5000"})
        self.assertEqual((options.horizon_days, options.spread_days), (365, 60))

    @override_settings(BILLING={"FORECAST": {"max_horizon_days": 90}})
    def test_horizon_cap_comes_from_settings(self):
        options = ForecastOptions.from_settings({"horizonDays": "120"})
        self.assertEqual(options.horizon_days, 90)

    @override_settings(BILLING={"FORECAST": {"horizon_days": 60}})
    def test_settings_provide_defaults(self):
        options = ForecastOptions.from_settings()
        self.assertEqual(options.horizon_days, 60)
        self.assertEqual(options.spread_days, 7)


class LearnDelayTests(SimpleTestCase):
    def test_delay_is_smallest_non_negative_gap_per_customer(self):
        issued = datetime.date(2026, 8, 1)
        invoices = [
            invoice("INV-1", "Acme", status="paid", issued=issued, due=issued),
            invoice("INV-2", "Globex", status="paid", issued=issued, due=issued),
        ]
        payments = [
            PaymentSnapshot("acme", issued - datetime.timedelta(days=3), Decimal("1")),
            PaymentSnapshot("Acme", issued + datetime.timedelta(days=12), Decimal("1")),
            PaymentSnapshot("Acme", issued + datetime.timedelta(days=40), Decimal("1")),
            PaymentSnapshot("Globex", issued + datetime.timedelta(days=20), Decimal("1")),
        ]
        learned = learn_delays(invoices, payments)
        self.assertEqual(learned.per_customer_avg, {"acme": 12, "globex": 20})
        self.assertEqual(learned.overall_avg, 16)
        self.assertEqual(learned.delay_for("ACME"), 12)
        self.assertEqual(learned.delay_for("Initech"), 16)

    def test_no_history_means_zero_delay(self):
        learned = learn_delays([invoice(status="sent")], [])
        self.assertEqual((learned.overall_avg, learned.per_customer_avg), (0, {}))


class BuildForecastTests(SimpleTestCase):
    def test_flat_spread_books_equal_slices(self):
        options = ForecastOptions(
            spread_shape="flat", spread_days=4, discount_uptake=0.0)
        result = build_forecast([invoice(amount="400")], [], TODAY, options)
        amounts = [amount for _, amount in result.daily]
        self.assertEqual(amounts[:4], [100.0, 100.0, 100.0, 100.0])
        self.assertTrue(all(a == 0 for a in amounts[4:]))
        self.assertEqual(result.total, 400.0)
        self.assertEqual(len(result.daily), 30)
        self.assertEqual(result.daily[0][0], TODAY)

    def test_amount_is_conserved_net_of_discount(self):
        options = ForecastOptions()
        result = build_forecast([invoice(amount="1000")], [], TODAY, options)
        # 65% at full value plus 35% less the 2% discount
        self.assertAlmostEqual(result.total, 650 + 350 * 0.98, delta=0.1)
        portions = {piece.portion for piece in result.detail}
        self.assertEqual(portions, {"normal", "discounted"})

    def test_every_spread_shape_conserves_the_outstanding_amount(self):
        rows = [
            invoice("INV-1", "Acme", due=TODAY + datetime.timedelta(days=5), amount="1000"),
            invoice("INV-2", "Globex", due=TODAY - datetime.timedelta(days=12), amount="333"),
            invoice("INV-3", "Initech", due=TODAY + datetime.timedelta(days=40), amount="250"),
        ]
        for shape in ("flat", "linear", "geometric"):
            options = ForecastOptions(spread_shape=shape, discount_uptake=0.0)
            result = build_forecast(rows, [], TODAY, options)
            self.assertAlmostEqual(result.total, 1583.0, delta=0.2, msg=shape)
            self.assertEqual({p.portion for p in result.detail}, {"normal"})

    def test_discounted_slices_land_earlier(self):
        options = ForecastOptions(
            spread_shape="flat", spread_days=1, discount_uptake=50.0,
            collection_push=0, discount_pull_forward_days=5)
        due = TODAY + datetime.timedelta(days=10)
        result = build_forecast([invoice(due=due)], [], TODAY, options)
        by_portion = {piece.portion: piece.expected_date for piece in result.detail}
        self.assertEqual(by_portion["normal"], due)
        self.assertEqual(by_portion["discounted"], due - datetime.timedelta(days=5))

    def test_everything_stays_inside_the_horizon(self):
        options = ForecastOptions(horizon_days=5)
        late = invoice("INV-9", due=TODAY + datetime.timedelta(days=90))
        old = invoice("INV-8", due=TODAY - datetime.timedelta(days=90))
        result = build_forecast([late, old], [], TODAY, options)
        horizon_end = TODAY + datetime.timedelta(days=4)
        self.assertTrue(all(TODAY <= p.expected_date <= horizon_end for p in result.detail))
        self.assertEqual(len(result.daily), 5)

    def test_paid_void_and_settled_invoices_are_skipped(self):
        rows = [
            invoice("INV-1", status="paid"),
            invoice("INV-2", status="void"),
            invoice("INV-3", amount="0"),
        ]
        result = build_forecast(rows, [], TODAY, ForecastOptions())
        self.assertEqual(result.total, 0.0)
        self.assertEqual(result.detail, [])
        self.assertEqual(result.top_payers, [])

    def test_learned_delay_pushes_expected_date(self):
        options = ForecastOptions(collection_push=0)
        learned = learn_delays([], [])
        due = TODAY + datetime.timedelta(days=3)
        self.assertEqual(expected_date(invoice(due=due), options, learned, 0, TODAY), due)

    def test_top_payers_are_ordered_by_earliest_date(self):
        rows = [
            invoice("INV-LATE", due=TODAY + datetime.timedelta(days=20)),
            invoice("INV-SOON", due=TODAY + datetime.timedelta(days=2)),
        ]
        options = ForecastOptions(discount_uptake=0.0, collection_push=0)
        result = build_forecast(rows, [], TODAY, options)
        self.assertEqual([p.number for p in result.top_payers], ["INV-SOON", "INV-LATE"])
        self.assertAlmostEqual(sum(p.amount for p in result.top_payers), 800.0, delta=0.05)
