"""Tests for the query orchestrator: generation stamping, caching, staleness, reconciliation."""
import unittest

from pricewatch.analytics.orchestrator import QueryOrchestrator, reconcile
from pricewatch.data.schemas import AnalysisMode, DrugBidRecord
from pricewatch.data.store import RecordStore
from pricewatch.errors import EmptyInputError, ResultDiscrepancyError, StaleResultError


def rec(name="Paracetamol", price=10.0, facility="BV A", qty=100):
    return DrugBidRecord(
        active_ingredient=name,
        concentration="500mg",
        registration_number="VD-1",
        unit_price=price,
        quantity=qty,
        facility_name=facility,
        unit="Vien",
    )


def seeded_store():
    store = RecordStore()
    store.append_batch(
        [
            rec(price=10, facility="FacA"),
            rec(price=15, facility="FacB"),
            rec(price=12, facility="FacB", qty=40),
            rec(name="Metformin", price=5, facility="FacA"),
        ],
        "bids.xlsx",
    )
    return store


class RunTests(unittest.TestCase):
    def test_empty_snapshot(self):
        orchestrator = QueryOrchestrator(RecordStore())
        with self.assertRaises(EmptyInputError):
            orchestrator.run_current(AnalysisMode.ALERT)

    def test_stamps_generation(self):
        store = seeded_store()
        result = QueryOrchestrator(store).run("alert", store.snapshot())
        self.assertEqual(result.mode, AnalysisMode.ALERT)
        self.assertEqual(result.generation, store.generation)
        self.assertEqual(len(result), 2)
        self.assertFalse(result.is_empty)

    def test_to_frame(self):
        store = seeded_store()
        frame = QueryOrchestrator(store).run_current("compare").to_frame()
        self.assertEqual(list(frame["facility_count"]), [2])

    def test_unbound_orchestrator(self):
        with self.assertRaises(RuntimeError):
            QueryOrchestrator().run_current("alert")


class CacheAndStalenessTests(unittest.TestCase):
    def setUp(self):
        self.store = seeded_store()
        self.orchestrator = QueryOrchestrator(self.store)

    def test_same_generation_reuses_result(self):
        first = self.orchestrator.run_current("alert")
        self.assertIs(self.orchestrator.run_current(AnalysisMode.ALERT), first)
        self.assertIsNot(self.orchestrator.run_current("compare"), first)

    def test_mutation_invalidates(self):
        first = self.orchestrator.run_current("alert")
        self.assertFalse(self.orchestrator.is_stale(first))
        self.assertIs(self.orchestrator.ensure_fresh(first), first)

        self.store.edit_record(2, {"unit_price": 10})

        self.assertTrue(self.orchestrator.is_stale(first))
        with self.assertRaises(StaleResultError) as ctx:
            self.orchestrator.ensure_fresh(first)
        self.assertEqual(ctx.exception.result_generation, first.generation)
        self.assertEqual(ctx.exception.store_generation, self.store.generation)

        second = self.orchestrator.run_current("alert")
        self.assertIsNot(second, first)
        self.assertGreater(second.generation, first.generation)
        self.assertEqual(len(second), 1)

    def test_every_mutation_marks_stale(self):
        mutations = [
            lambda s: s.append_batch([rec()], "more.xlsx"),
            lambda s: s.delete_record(1),
            lambda s: s.remove_batch(s.batches()[0].batch_id),
            lambda s: s.clear(),
        ]
        for mutate in mutations:
            store = seeded_store()
            orchestrator = QueryOrchestrator(store)
            result = orchestrator.run_current("compare")
            mutate(store)
            self.assertTrue(orchestrator.is_stale(result))


class ReconcileTests(unittest.TestCase):
    def setUp(self):
        self.store = seeded_store()
        self.orchestrator = QueryOrchestrator(self.store)

    def test_reordered_rows_match(self):
        result = self.orchestrator.run_current("alert")
        external = list(reversed(result.to_records()))
        outcome = self.orchestrator.reconcile(result, external)
        self.assertTrue(outcome.matches)
        self.assertEqual(outcome.reference_count, 2)

    def test_result_codes_accepted(self):
        result = self.orchestrator.run_current("alert")
        external = [
            {
                "TEN_HOAT_CHAT": "PARACETAMOL", "SO_DANG_KY": "VD-1", "HAM_LUONG": "500mg",
                "MADUONGDUNG": "", "NHOM_TCKT": "", "DON_VI_TINH": "Vien", "CO_SO_KCB": "FacB",
                "GIA": 15, "SOLUONG": 100, "GIA_THAP_NHAT": 10, "CHENH_GIA": 5, "TIEN_CHENH_LECH": 500,
            },
            {
                "TEN_HOAT_CHAT": "Paracetamol", "SO_DANG_KY": "VD-1", "HAM_LUONG": "500mg",
                "MADUONGDUNG": None, "NHOM_TCKT": None, "DON_VI_TINH": "Vien", "CO_SO_KCB": "FacB",
                "GIA": 12.0000000001, "SOLUONG": 40, "GIA_THAP_NHAT": 10, "CHENH_GIA": 2, "TIEN_CHENH_LECH": 80,
            },
        ]
        self.assertTrue(reconcile(result, external).matches)

    def test_missing_and_unexpected(self):
        result = self.orchestrator.run_current("alert")
        external = result.to_records()
        external[0] = {**external[0], "excess_cost": 1.0}
        outcome = reconcile(result, external)
        self.assertFalse(outcome.matches)
        self.assertEqual(len(outcome.missing), 1)
        self.assertEqual(len(outcome.unexpected), 1)
        self.assertIn("1 missing", outcome.describe())

    def test_duplicate_rows_count(self):
        result = self.orchestrator.run_current("alert")
        external = result.to_records() + result.to_records()[:1]
        outcome = reconcile(result, external)
        self.assertFalse(outcome.matches)
        self.assertEqual(len(outcome.unexpected), 1)

    def test_compare_price_detail_string(self):
        result = self.orchestrator.run_current("compare")
        external = [{
            "TEN_HOAT_CHAT": "Paracetamol", "HAM_LUONG": "500mg", "SO_DANG_KY": "VD-1", "NHOM_TCKT": "",
            "SO_LUONG_CS": 2, "GIA_MIN": 10, "GIA_MAX": 15,
            "CHI_TIET_GIA": "FacB: 12,FacA: 10.0,FacB: 15",
        }]
        self.assertTrue(reconcile(result, external).matches)

    def test_compare_detail_with_commas_in_facility_names(self):
        store = RecordStore()
        store.append_batch([rec(price=10, facility="BV A, CS2"), rec(price=12.5, facility="BV B")], "bids.xlsx")
        result = QueryOrchestrator(store).run_current("compare")
        self.assertEqual(result.rows[0].price_detail, ("BV A, CS2: 10", "BV B: 12.5"))

        echoed = [dict(row, price_detail=",".join(row["price_detail"])) for row in result.to_records()]
        self.assertTrue(reconcile(result, echoed).matches)

        shuffled = [dict(echoed[0], price_detail="BV B: 12.5, BV A, CS2: 10")]
        self.assertTrue(reconcile(result, shuffled).matches)

        wrong = [dict(echoed[0], price_detail="BV A: 10,CS2: 10,BV B: 12.5")]
        self.assertFalse(reconcile(result, wrong).matches)


class RunExternalTests(unittest.TestCase):
    def setUp(self):
        self.store = seeded_store()
        self.orchestrator = QueryOrchestrator(self.store)
        self.query = self.orchestrator.reference_query("alert")

    def test_agreeing_executor(self):
        def executor(query_text, records):
            self.assertEqual(query_text, self.query)
            reference = self.orchestrator.run(AnalysisMode.ALERT, self.store.snapshot())
            return reference.to_records()

        result = self.orchestrator.run_external("alert", self.store.snapshot(), self.query, executor)
        self.assertEqual(result.query_text, self.query)
        self.assertEqual(len(result), 2)

    def test_disagreeing_executor(self):
        with self.assertRaises(ResultDiscrepancyError) as ctx:
            self.orchestrator.run_external("alert", self.store.snapshot(), self.query, lambda q, r: [])
        self.assertEqual(len(ctx.exception.reconciliation.missing), 2)
        self.assertEqual(ctx.exception.kind, "ResultDiscrepancy")

    def test_executor_errors_propagate(self):
        def broken(query_text, records):
            raise ConnectionError("database down")

        with self.assertRaises(ConnectionError):
            self.orchestrator.run_external("alert", self.store.snapshot(), self.query, broken)

    def test_reference_queries(self):
        self.assertIn("GIA_THAP_NHAT", self.orchestrator.reference_query("alert"))
        self.assertIn("CHI_TIET_GIA", QueryOrchestrator.reference_query(AnalysisMode.COMPARE))


if __name__ == "__main__":
    unittest.main()
