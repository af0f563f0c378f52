"""Tests for ALERT mode: records bought above the cheapest identical drug."""
import unittest

from pricewatch.analytics.alert import alert_analysis, total_excess_cost
from pricewatch.analytics.engine import analyze
from pricewatch.data.loader import demo_rows
from pricewatch.data.normalize import normalize_rows
from pricewatch.data.schemas import AnalysisMode, DrugBidRecord


def rec(name="Paracetamol", price=10.0, facility="BV A", qty=100, **kw):
    return DrugBidRecord(
        active_ingredient=name,
        concentration=kw.pop("concentration", "500mg"),
        registration_number=kw.pop("registration_number", "VD-1"),
        unit_price=price,
        quantity=qty,
        facility_name=facility,
        unit=kw.pop("unit", "Vien"),
        **kw,
    )


class AlertAnalysisTests(unittest.TestCase):
    def test_flags_only_the_expensive_record(self):
        records = [rec(price=10), rec(price=12, qty=50), rec(price=10)]
        results = alert_analysis(records)
        self.assertEqual(len(results), 1)
        result = results[0]
        self.assertIs(result.record, records[1])
        self.assertEqual(result.min_price_in_group, 10)
        self.assertEqual(result.price_delta, 2)
        self.assertEqual(result.excess_cost, 100)

    def test_uniform_price_group_emits_nothing(self):
        records = [rec(price=10, facility="BV A"), rec(price=10, facility="BV B")]
        self.assertEqual(alert_analysis(records), [])

    def test_empty_input(self):
        self.assertEqual(alert_analysis([]), [])

    def test_groups_on_folded_key(self):
        records = [rec(name="Paracetamol", price=10), rec(name=" paracetamol ", price=15)]
        results = alert_analysis(records)
        self.assertEqual([r.record.unit_price for r in results], [15])

    def test_unit_splits_groups(self):
        records = [rec(price=10, unit="Vien"), rec(price=15, unit="Hop")]
        self.assertEqual(alert_analysis(records), [])

    def test_manufacturer_does_not_split_groups(self):
        records = [rec(price=10, manufacturer="A"), rec(price=15, manufacturer="B")]
        self.assertEqual(len(alert_analysis(records)), 1)

    def test_group_first_seen_then_record_order(self):
        records = [
            rec(name="B", price=5),   # group B
            rec(name="A", price=9),   # group A
            rec(name="B", price=8),
            rec(name="A", price=3),
            rec(name="B", price=7),
        ]
        results = alert_analysis(records)
        self.assertEqual(
            [(r.record.active_ingredient, r.record.unit_price) for r in results],
            [("B", 8), ("B", 7), ("A", 9)],
        )

    def test_no_rounding(self):
        records = [rec(price=0.1, qty=3), rec(price=0.35, qty=3)]
        (result,) = alert_analysis(records)
        self.assertEqual(result.min_price_in_group, 0.1)
        self.assertEqual(result.price_delta, 0.35 - 0.1)
        self.assertEqual(result.excess_cost, (0.35 - 0.1) * 3)

    def test_total_excess_cost(self):
        records = [rec(price=10), rec(price=12, qty=50), rec(price=13, qty=10)]
        self.assertEqual(total_excess_cost(alert_analysis(records)), 2 * 50 + 3 * 10)

    def test_to_row(self):
        records = [rec(price=10), rec(price=12)]
        row = alert_analysis(records)[0].to_row()
        self.assertEqual(row["unit_price"], 12)
        self.assertEqual(row["min_price_in_group"], 10)
        self.assertEqual(row["price_delta"], 2)
        self.assertIn("record_id", row)


class DeterminismTests(unittest.TestCase):
    def test_repeated_runs_identical(self):
        records, _ = normalize_rows(demo_rows(seed=3))
        for mode in AnalysisMode:
            with self.subTest(mode=mode):
                first = [r.to_row() for r in analyze(mode, records)]
                second = [r.to_row() for r in analyze(mode, records)]
                self.assertEqual(first, second)

    def test_mode_parsing(self):
        self.assertIs(AnalysisMode.parse("alert"), AnalysisMode.ALERT)
        self.assertIs(AnalysisMode.parse(" Compare "), AnalysisMode.COMPARE)
        self.assertIs(AnalysisMode.parse(AnalysisMode.ALERT), AnalysisMode.ALERT)
        with self.assertRaises(ValueError):
            AnalysisMode.parse("median")


if __name__ == "__main__":
    unittest.main()
