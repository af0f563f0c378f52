"""Tests for the batched, generation-stamped record store."""
import dataclasses
import threading
import unittest

from pricewatch.data.normalize import normalize_row
from pricewatch.data.schemas import DrugBidRecord
from pricewatch.data.store import RecordStore
from pricewatch.errors import (
    InvalidNumericFieldError,
    UnknownBatchError,
    UnknownRecordReferenceError,
)


def rec(name="Paracetamol", price=10.0, facility="BV A", qty=100, **kw):
    return DrugBidRecord(
        active_ingredient=name,
        concentration=kw.pop("concentration", "500mg"),
        registration_number=kw.pop("registration_number", "VD-1"),
        unit_price=price,
        quantity=qty,
        facility_name=facility,
        **kw,
    )


class AppendBatchTests(unittest.TestCase):
    def setUp(self):
        self.store = RecordStore()

    def test_empty_store(self):
        self.assertTrue(self.store.is_empty)
        self.assertEqual(self.store.generation, 0)
        self.assertEqual(len(self.store.snapshot()), 0)

    def test_ids_and_order(self):
        b1 = self.store.append_batch([rec(price=1), rec(price=2)], "a.xlsx")
        b2 = self.store.append_batch([rec(price=3)], "b.xlsx")
        records = self.store.records()
        self.assertEqual([r.unit_price for r in records], [1, 2, 3])
        self.assertEqual([r.record_id for r in records], [1, 2, 3])
        self.assertEqual([r.batch_id for r in records], [b1, b1, b2])
        self.assertEqual(self.store.generation, 2)
        self.assertEqual(self.store.record_count(), 3)
        self.assertEqual(self.store.batch_count(), 2)

    def test_caller_objects_untouched(self):
        original = rec()
        self.store.append_batch([original], "a.xlsx")
        self.assertIsNone(original.record_id)
        self.assertIsNone(original.batch_id)

    def test_batch_metadata(self):
        batch_id = self.store.append_batch([rec()], "a.xlsx", rejected_count=2, source_size="1.0 KB")
        batch = self.store.batch(batch_id)
        self.assertEqual(batch.display_name, "a.xlsx")
        self.assertEqual(batch.row_count, 1)
        self.assertEqual(batch.rejected_count, 2)
        self.assertEqual(batch.source_size, "1.0 KB")
        self.assertEqual([b.batch_id for b in self.store.batches()], [batch_id])

    def test_explicit_batch_id_must_be_new(self):
        self.store.append_batch([rec()], "a.xlsx", batch_id="b1")
        with self.assertRaises(ValueError):
            self.store.append_batch([rec()], "a.xlsx", batch_id="b1")
        self.assertEqual(self.store.generation, 1)

    def test_empty_batch_allowed(self):
        batch_id = self.store.append_batch([], "empty.csv")
        self.assertEqual(self.store.batch(batch_id).row_count, 0)
        self.assertEqual(self.store.generation, 1)


class RemoveBatchTests(unittest.TestCase):
    def test_cascade(self):
        store = RecordStore()
        keep = store.append_batch([rec(price=1), rec(price=2)], "keep.xlsx")
        drop = store.append_batch([rec(price=3), rec(price=4), rec(price=5)], "drop.xlsx")
        before = store.generation

        removed = store.remove_batch(drop)

        self.assertEqual(removed, 3)
        self.assertEqual(store.generation, before + 1)
        self.assertEqual([r.unit_price for r in store.records()], [1, 2])
        self.assertTrue(all(r.batch_id == keep for r in store.records()))
        self.assertEqual([b.batch_id for b in store.batches()], [keep])

    def test_unknown_batch(self):
        store = RecordStore()
        with self.assertRaises(UnknownBatchError) as ctx:
            store.remove_batch("nope")
        self.assertEqual(ctx.exception.reference, "nope")
        self.assertEqual(ctx.exception.kind, "UnknownRecordReference")
        self.assertEqual(store.generation, 0)


class EditRecordTests(unittest.TestCase):
    def setUp(self):
        self.store = RecordStore()
        self.store.append_batch([rec(price=1), rec(price=2), rec(price=3)], "a.xlsx")

    def test_edit_keeps_id_and_position(self):
        edited = self.store.edit_record(2, {"unit_price": "25"})
        self.assertEqual(edited.record_id, 2)
        self.assertEqual(edited.unit_price, 25.0)
        self.assertEqual([r.unit_price for r in self.store.records()], [1, 25, 3])
        self.assertEqual(self.store.get(2).batch_id, self.store.get(1).batch_id)
        self.assertEqual(self.store.generation, 2)

    def test_patch_by_header_alias(self):
        edited = self.store.edit_record(1, {"CO_SO_KCB": "BV Z", "GHI_CHU": "note"})
        self.assertEqual(edited.facility_name, "BV Z")
        self.assertEqual(edited.extras, {"GHI_CHU": "note"})

    def test_earlier_snapshot_unaffected(self):
        snapshot = self.store.snapshot()
        self.store.edit_record(1, {"unit_price": 99})
        self.assertEqual(snapshot.records[0].unit_price, 1)
        self.assertEqual(self.store.get(1).unit_price, 99)
        self.assertGreater(self.store.generation, snapshot.generation)

    def test_failed_edit_leaves_store_unchanged(self):
        before = self.store.generation
        with self.assertRaises(InvalidNumericFieldError):
            self.store.edit_record(1, {"unit_price": "-5"})
        self.assertEqual(self.store.generation, before)
        self.assertEqual(self.store.get(1).unit_price, 1)

    def test_protected_fields(self):
        with self.assertRaises(ValueError):
            self.store.edit_record(1, {"record_id": 7})
        with self.assertRaises(ValueError):
            self.store.edit_record(1, {"batch_id": "other"})

    def test_unknown_record(self):
        with self.assertRaises(UnknownRecordReferenceError) as ctx:
            self.store.edit_record(42, {"unit_price": 1})
        self.assertEqual(ctx.exception.reference, 42)

    def test_extra_named_like_a_field_never_overrides_it(self):
        row = {
            "TEN_HOAT_CHAT": "Paracetamol", "HAM_LUONG": "500mg", "SO_DANG_KY": "VD-1",
            "GIA": 10, "unit_price": 999, "SOLUONG": 5, "CO_SO_KCB": "A",
        }
        record = normalize_row(row)
        self.assertEqual(record.extras, {"unit_price": 999})
        self.assertEqual(record.to_row()["unit_price"], 10)

        store = RecordStore()
        store.append_batch([record], "dup.csv")
        edited = store.edit_record(1, {"CO_SO_KCB": "B"})
        self.assertEqual(edited.facility_name, "B")
        self.assertEqual(edited.unit_price, 10.0)
        self.assertEqual(edited.extras, {"unit_price": 999})


class FrozenRecordTests(unittest.TestCase):
    def test_stored_records_cannot_be_mutated(self):
        store = RecordStore()
        store.append_batch([rec(price=1)], "a.xlsx")
        snapshot = store.snapshot()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            store.get(1).unit_price = 99
        self.assertEqual(store.get(1).unit_price, 1)
        self.assertEqual(snapshot.records[0].unit_price, 1)
        self.assertEqual(store.generation, snapshot.generation)


class DeleteAndClearTests(unittest.TestCase):
    def test_delete_record(self):
        store = RecordStore()
        store.append_batch([rec(price=1), rec(price=2)], "a.xlsx")
        store.delete_record(1)
        self.assertEqual([r.record_id for r in store.records()], [2])
        self.assertEqual(store.generation, 2)
        with self.assertRaises(UnknownRecordReferenceError):
            store.delete_record(1)
        self.assertEqual(store.generation, 2)

    def test_ids_never_reused(self):
        store = RecordStore()
        store.append_batch([rec()], "a.xlsx")
        store.delete_record(1)
        store.append_batch([rec()], "b.xlsx")
        self.assertEqual(store.records()[0].record_id, 2)

    def test_clear(self):
        store = RecordStore()
        store.append_batch([rec(), rec()], "a.xlsx")
        store.clear()
        self.assertTrue(store.is_empty)
        self.assertEqual(store.batches(), [])
        self.assertEqual(store.generation, 2)

    def test_records_for_batch(self):
        store = RecordStore()
        store.append_batch([rec(price=1)], "a.xlsx")
        b2 = store.append_batch([rec(price=2)], "b.xlsx")
        self.assertEqual([r.unit_price for r in store.records(b2)], [2])
        with self.assertRaises(UnknownBatchError):
            store.records("missing")


class ConcurrencyTests(unittest.TestCase):
    def test_snapshots_never_see_partial_batches(self):
        store = RecordStore()
        seen = []

        def writer():
            for i in range(50):
                store.append_batch([rec(price=i) for _ in range(20)], f"{i}.xlsx")

        def reader():
            for _ in range(200):
                seen.append(len(store.snapshot()))

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertTrue(all(n % 20 == 0 for n in seen))
        self.assertEqual(store.record_count(), 1000)


if __name__ == "__main__":
    unittest.main()
