"""Tests for COMPARE mode: per-drug price range across facilities."""
import unittest

from pricewatch.analytics.common import format_price
from pricewatch.analytics.compare import compare_analysis
from pricewatch.data.schemas import DrugBidRecord


def rec(name="Paracetamol", price=10.0, facility="BV A", **kw):
    return DrugBidRecord(
        active_ingredient=name,
        concentration=kw.pop("concentration", "500mg"),
        registration_number=kw.pop("registration_number", "VD-1"),
        unit_price=price,
        quantity=kw.pop("quantity", 100),
        facility_name=facility,
        therapeutic_group=kw.pop("therapeutic_group", "Nhom 1"),
        **kw,
    )


class CompareAnalysisTests(unittest.TestCase):
    def test_aggregation(self):
        records = [rec(facility="FacA", price=10), rec(facility="FacB", price=15), rec(facility="FacB", price=12)]
        (row,) = compare_analysis(records)
        self.assertEqual(row.facility_count, 2)
        self.assertEqual(row.min_price, 10)
        self.assertEqual(row.max_price, 15)
        self.assertEqual(row.price_detail, ("FacA: 10", "FacB: 15", "FacB: 12"))
        self.assertEqual(row.price_spread, 5)

    def test_single_facility_excluded(self):
        records = [rec(facility="FacA", price=10), rec(facility="FacA", price=15)]
        self.assertEqual(compare_analysis(records), [])

    def test_facility_names_fold(self):
        records = [rec(facility="FacA", price=10), rec(facility=" faca ", price=15)]
        self.assertEqual(compare_analysis(records), [])

    def test_empty_input(self):
        self.assertEqual(compare_analysis([]), [])

    def test_sorted_by_ingredient_stable(self):
        records = [
            rec(name="Metformin", facility="A"), rec(name="Metformin", facility="B"),
            rec(name="Atorvastatin", registration_number="R2", facility="A"),
            rec(name="atorvastatin", registration_number="R1", facility="A"),
            rec(name="Atorvastatin", registration_number="R2", facility="B"),
            rec(name="atorvastatin", registration_number="R1", facility="B"),
        ]
        rows = compare_analysis(records)
        self.assertEqual(
            [(r.active_ingredient, r.registration_number) for r in rows],
            [("Atorvastatin", "R2"), ("atorvastatin", "R1"), ("Metformin", "VD-1")],
        )

    def test_display_values_from_first_record(self):
        records = [rec(name="paracetamol", facility="A"), rec(name="PARACETAMOL", facility="B")]
        (row,) = compare_analysis(records)
        self.assertEqual(row.active_ingredient, "paracetamol")

    def test_route_and_unit_do_not_split_groups(self):
        records = [
            rec(facility="A", route_of_administration="Uong", unit="Vien"),
            rec(facility="B", route_of_administration="Tiem", unit="Ong"),
        ]
        self.assertEqual(len(compare_analysis(records)), 1)

    def test_to_row(self):
        records = [rec(facility="A", price=12.5), rec(facility="B", price=10)]
        row = compare_analysis(records)[0].to_row()
        self.assertEqual(row["price_detail"], ["A: 12.5", "B: 10"])
        self.assertEqual(row["facility_count"], 2)


class FormatPriceTests(unittest.TestCase):
    def test_integral(self):
        self.assertEqual(format_price(10.0), "10")

    def test_fractional(self):
        self.assertEqual(format_price(12.5), "12.5")


if __name__ == "__main__":
    unittest.main()
