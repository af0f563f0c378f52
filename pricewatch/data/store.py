"""
RecordStore — the in-memory working set of bid records for one session.

Records live in an arena keyed by a monotonic record id; display and
analysis order is a separate list of ids. Every structural mutation bumps
``generation`` by one so callers can tell when a computed result set no
longer describes the data.
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import threading
import uuid
from typing import Any, Iterable, Mapping, Optional

from pricewatch.config import CANONICAL_FIELDS
from pricewatch.data.normalize import match_column, normalize_row
from pricewatch.data.schemas import Batch, DrugBidRecord, Snapshot
from pricewatch.errors import UnknownBatchError, UnknownRecordReferenceError

logger = logging.getLogger(__name__)

_PROTECTED_FIELDS = {"record_id", "batch_id"}


class RecordStore:
    """Batched, generation-stamped record set."""

    def __init__(self) -> None:
        self._records: dict[int, DrugBidRecord] = {}
        self._order: list[int] = []
        self._batches: dict[str, Batch] = {}
        self._generation = 0
        self._next_id = 1
        # Mutations and snapshots never interleave, even from API worker threads
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append_batch(
        self,
        records: Iterable[DrugBidRecord],
        display_name: str,
        batch_id: Optional[str] = None,
        ingested_at: Optional[dt.datetime] = None,
        rejected_count: int = 0,
        source_size: Optional[str] = None,
    ) -> str:
        """Add records as one batch. Returns the batch id.

        The store keeps its own copies: each gets the batch id and a fresh
        record id, the caller's objects are left untouched.
        """
        with self._lock:
            if batch_id is None:
                batch_id = uuid.uuid4().hex[:12]
            elif batch_id in self._batches:
                raise ValueError(f"Batch already exists: {batch_id!r}")

            added = []
            for record in records:
                stored = dataclasses.replace(
                    record,
                    batch_id=batch_id,
                    record_id=self._next_id,
                    extras=dict(record.extras),
                    source_columns=dict(record.source_columns),
                )
                self._next_id += 1
                added.append(stored)

            for stored in added:
                self._records[stored.record_id] = stored
                self._order.append(stored.record_id)

            self._batches[batch_id] = Batch(
                batch_id=batch_id,
                display_name=display_name,
                ingested_at=ingested_at or dt.datetime.now(),
                row_count=len(added),
                rejected_count=rejected_count,
                source_size=source_size,
            )
            self._bump()
            logger.info("Appended batch %s (%s): %d records", batch_id, display_name, len(added))
            return batch_id

    def remove_batch(self, batch_id: str) -> int:
        """Drop a batch and every record it owns. Returns the number removed."""
        with self._lock:
            if batch_id not in self._batches:
                raise UnknownBatchError(batch_id)
            doomed = {rid for rid in self._order if self._records[rid].batch_id == batch_id}
            self._order = [rid for rid in self._order if rid not in doomed]
            for rid in doomed:
                del self._records[rid]
            del self._batches[batch_id]
            self._bump()
            logger.info("Removed batch %s: %d records", batch_id, len(doomed))
            return len(doomed)

    def edit_record(self, record_id: int, patch: Mapping[str, Any]) -> DrugBidRecord:
        """Apply a field patch to one record and return the new version.

        Patch keys may be canonical field names or any recognised header;
        anything else lands in the record's extras. The patched row is
        re-validated, so a bad patch raises the same row-level error as
        ingestion and leaves the store unchanged. The record keeps its id,
        batch and position.
        """
        with self._lock:
            current = self._require(record_id)
            protected = _PROTECTED_FIELDS & set(patch)
            if protected:
                raise ValueError(f"Cannot patch {sorted(protected)}")

            # Extras are carried over as-is; an extra named like a canonical
            # field must never reach the normalizer as that field
            row: dict[str, Any] = {name: getattr(current, name) for name in CANONICAL_FIELDS}
            extras = dict(current.extras)
            for key, value in patch.items():
                name = match_column(key)
                if name is None:
                    extras[key] = value
                else:
                    row[name] = value

            edited = dataclasses.replace(
                normalize_row(row),
                extras=extras,
                batch_id=current.batch_id,
                record_id=current.record_id,
                source_columns=dict(current.source_columns),
            )
            self._records[record_id] = edited
            self._bump()
            logger.info("Edited record %s (%s)", record_id, ", ".join(map(str, patch)))
            return edited

    def delete_record(self, record_id: int) -> None:
        with self._lock:
            self._require(record_id)
            del self._records[record_id]
            self._order.remove(record_id)
            self._bump()
            logger.info("Deleted record %s", record_id)

    def clear(self) -> None:
        """Forget every record and batch."""
        with self._lock:
            self._records.clear()
            self._order.clear()
            self._batches.clear()
            self._bump()
            logger.info("Cleared record store")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Current generation plus the records in store order."""
        with self._lock:
            return Snapshot(
                generation=self._generation,
                records=tuple(self._records[rid] for rid in self._order),
            )

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_empty(self) -> bool:
        return not self._order

    def get(self, record_id: int) -> DrugBidRecord:
        with self._lock:
            return self._require(record_id)

    def records(self, batch_id: str | None = None) -> list[DrugBidRecord]:
        """Records in store order, optionally limited to one batch."""
        with self._lock:
            if batch_id is not None and batch_id not in self._batches:
                raise UnknownBatchError(batch_id)
            rows = [self._records[rid] for rid in self._order]
        if batch_id is None:
            return rows
        return [r for r in rows if r.batch_id == batch_id]

    def batches(self) -> list[Batch]:
        """Batches in ingestion order."""
        with self._lock:
            return list(self._batches.values())

    def batch(self, batch_id: str) -> Batch:
        with self._lock:
            if batch_id not in self._batches:
                raise UnknownBatchError(batch_id)
            return self._batches[batch_id]

    def record_count(self) -> int:
        return len(self._order)

    def batch_count(self) -> int:
        return len(self._batches)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, record_id: int) -> DrugBidRecord:
        try:
            return self._records[record_id]
        except (KeyError, TypeError):
            raise UnknownRecordReferenceError(record_id) from None

    def _bump(self) -> None:
        self._generation += 1
