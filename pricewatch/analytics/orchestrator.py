"""
QueryOrchestrator — the one entry point callers use to get analysis results.

Binds a mode to the analysis engine, stamps every result set with the
store generation it was computed from, and checks externally produced
result rows against the built-in algorithms before anyone trusts them.
"""
from __future__ import annotations

import datetime as dt
import logging
import math
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

import pandas as pd

from pricewatch.analytics.common import format_price
from pricewatch.analytics.engine import AnalysisResult, analyze, reference_query
from pricewatch.config import ALERT_KEY_FIELDS, COMPARE_KEY_FIELDS, PRICE_TOLERANCE, RESULT_ALIASES
from pricewatch.data.normalize import as_text, fold_key, is_blank, match_column
from pricewatch.data.schemas import AnalysisMode, DrugBidRecord, Snapshot
from pricewatch.data.store import RecordStore
from pricewatch.errors import EmptyInputError, ResultDiscrepancyError, StaleResultError

logger = logging.getLogger(__name__)

# (query_text, records) -> result rows
ExternalExecutor = Callable[[str, Sequence[DrugBidRecord]], Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class AnalysisResultSet:
    """Rows of one analysis run, tagged with the generation they describe."""
    mode: AnalysisMode
    generation: int
    rows: tuple[AnalysisResult, ...]
    query_text: Optional[str] = None
    computed_at: dt.datetime = field(default_factory=dt.datetime.now)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def to_records(self) -> list[dict[str, Any]]:
        return [row.to_row() for row in self.rows]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.to_records())


# ---------------------------------------------------------------------------
# Reconciliation of external rows
# ---------------------------------------------------------------------------

_ALERT_NUMBERS = ["unit_price", "quantity", "min_price_in_group", "price_delta", "excess_cost"]
_COMPARE_NUMBERS = ["facility_count", "min_price", "max_price"]


@dataclass
class Reconciliation:
    """Outcome of comparing external rows with the reference result set."""
    mode: AnalysisMode
    generation: int
    reference_count: int
    external_count: int
    missing: list[dict[str, Any]] = field(default_factory=list)     # in reference only
    unexpected: list[dict[str, Any]] = field(default_factory=list)  # in external only

    @property
    def matches(self) -> bool:
        return not self.missing and not self.unexpected

    def describe(self) -> str:
        if self.matches:
            return f"{self.mode.value}: external rows match the reference ({self.reference_count} rows)"
        return (
            f"{self.mode.value}: external rows disagree with the reference: "
            f"{len(self.missing)} missing, {len(self.unexpected)} unexpected "
            f"({self.external_count} external vs {self.reference_count} reference rows)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "generation": self.generation,
            "matches": self.matches,
            "reference_count": self.reference_count,
            "external_count": self.external_count,
            "missing": self.missing,
            "unexpected": self.unexpected,
            "message": self.describe(),
        }


def _canonical_result_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Rename result-column codes and record headers to canonical names."""
    out: dict[str, Any] = {}
    for key, value in row.items():
        name = RESULT_ALIASES.get(str(key).strip().upper()) or match_column(key) or str(key).strip().casefold()
        out.setdefault(name, value)
    return out


def _as_float(value: Any) -> Optional[float]:
    if is_blank(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# "facility: price" entries. Facility names may contain commas, so an
# entry ends only at a comma (or the end) that follows a price
_DETAIL_ENTRY = r"\s*(.*?):\s*([-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)\s*"
_DETAIL_ENTRY_RE = re.compile(_DETAIL_ENTRY + r"(?:,|$)")
_DETAIL_LIST_RE = re.compile(rf"(?:{_DETAIL_ENTRY},)*{_DETAIL_ENTRY}")


def _detail_entry(facility: str, price: str) -> str:
    number = _as_float(price.strip())
    shown = format_price(number) if number is not None else price.strip()
    return f"{fold_key(facility)}: {shown}"


def _detail_entries(value: Any) -> tuple[str, ...]:
    """Order-free form of a price detail list ("A: 10", ...) or "A: 10,B: 12"."""
    if isinstance(value, str):
        if not _DETAIL_LIST_RE.fullmatch(value):
            # Unparseable text can only ever equal itself
            return (fold_key(value),)
        entries = [_detail_entry(f, p) for f, p in _DETAIL_ENTRY_RE.findall(value)]
    elif isinstance(value, (list, tuple)):
        entries = [_detail_entry(*str(part).rpartition(":")[::2]) for part in value]
    else:
        return ()
    return tuple(sorted(entries))


def _signature(mode: AnalysisMode, row: Mapping[str, Any]) -> tuple[tuple, tuple]:
    """(exact part, numeric part) of a canonical result row."""
    if mode == AnalysisMode.ALERT:
        exact = tuple(fold_key(as_text(row.get(f))) for f in ALERT_KEY_FIELDS)
        exact += (fold_key(as_text(row.get("facility_name"))),)
        numbers = tuple(_as_float(row.get(f)) for f in _ALERT_NUMBERS)
    else:
        exact = tuple(fold_key(as_text(row.get(f))) for f in COMPARE_KEY_FIELDS)
        exact += (_detail_entries(row.get("price_detail")),)
        numbers = tuple(_as_float(row.get(f)) for f in _COMPARE_NUMBERS)
    return exact, numbers


def _numbers_close(a: tuple, b: tuple) -> bool:
    for x, y in zip(a, b):
        if x is None or y is None:
            return False
        if not math.isclose(x, y, rel_tol=1e-9, abs_tol=PRICE_TOLERANCE):
            return False
    return True


def reconcile(result_set: AnalysisResultSet, external_rows: Iterable[Mapping[str, Any]]) -> Reconciliation:
    """Multiset comparison of external rows against a reference result set.

    Row order is ignored (external queries rarely promise one). Text fields
    compare on their folded form and numbers within PRICE_TOLERANCE.
    """
    reference = result_set.to_records()
    external = [dict(r) for r in external_rows]

    pending: dict[tuple, list[tuple[tuple, dict]]] = defaultdict(list)
    for raw in external:
        exact, numbers = _signature(result_set.mode, _canonical_result_row(raw))
        pending[exact].append((numbers, raw))

    missing = []
    for ref in reference:
        exact, numbers = _signature(result_set.mode, ref)
        candidates = pending.get(exact, [])
        hit = next((i for i, (n, _) in enumerate(candidates) if _numbers_close(numbers, n)), None)
        if hit is None:
            missing.append(ref)
        else:
            candidates.pop(hit)

    unexpected = [raw for bucket in pending.values() for _, raw in bucket]
    return Reconciliation(
        mode=result_set.mode,
        generation=result_set.generation,
        reference_count=len(reference),
        external_count=len(external),
        missing=missing,
        unexpected=unexpected,
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class QueryOrchestrator:
    """Runs analyses over store snapshots.

    When bound to a store, ``run_current`` caches result sets by
    ``(mode, generation)`` and ``is_stale`` / ``ensure_fresh`` compare a
    result set with the store's current generation.
    """

    def __init__(self, store: RecordStore | None = None) -> None:
        self.store = store
        self._cache: dict[tuple[AnalysisMode, int], AnalysisResultSet] = {}

    def run(
        self,
        mode: AnalysisMode | str,
        snapshot: Snapshot,
        query_text: str | None = None,
    ) -> AnalysisResultSet:
        mode = AnalysisMode.parse(mode)
        if not snapshot.records:
            raise EmptyInputError("No records to analyse — ingest a batch first")
        rows = analyze(mode, snapshot.records)
        logger.info("%s analysis at generation %d: %d rows from %d records",
                    mode.value, snapshot.generation, len(rows), len(snapshot.records))
        return AnalysisResultSet(
            mode=mode,
            generation=snapshot.generation,
            rows=tuple(rows),
            query_text=query_text,
        )

    def run_current(self, mode: AnalysisMode | str) -> AnalysisResultSet:
        """Analyse the bound store as it is now, reusing a cached run when possible."""
        mode = AnalysisMode.parse(mode)
        snapshot = self._require_store().snapshot()
        key = (mode, snapshot.generation)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = self.run(mode, snapshot)
        # Older generations can never be served again
        self._cache = {k: v for k, v in self._cache.items() if k[1] == snapshot.generation}
        self._cache[key] = result
        return result

    def is_stale(self, result_set: AnalysisResultSet) -> bool:
        return result_set.generation != self._require_store().generation

    def ensure_fresh(self, result_set: AnalysisResultSet) -> AnalysisResultSet:
        current = self._require_store().generation
        if result_set.generation != current:
            raise StaleResultError(result_set.generation, current)
        return result_set

    def reconcile(
        self,
        result_set: AnalysisResultSet,
        external_rows: Iterable[Mapping[str, Any]],
    ) -> Reconciliation:
        outcome = reconcile(result_set, external_rows)
        if not outcome.matches:
            logger.warning(outcome.describe())
        return outcome

    def run_external(
        self,
        mode: AnalysisMode | str,
        snapshot: Snapshot,
        query_text: str,
        executor: ExternalExecutor,
    ) -> AnalysisResultSet:
        """Execute external query text and accept it only if it agrees with the reference.

        Raises ResultDiscrepancyError carrying the Reconciliation otherwise.
        Executor errors propagate unchanged.
        """
        reference = self.run(mode, snapshot, query_text=query_text)
        external_rows = list(executor(query_text, snapshot.records))
        outcome = self.reconcile(reference, external_rows)
        if not outcome.matches:
            raise ResultDiscrepancyError(outcome)
        return reference

    @staticmethod
    def reference_query(mode: AnalysisMode | str) -> str:
        return reference_query(mode)

    def _require_store(self) -> RecordStore:
        if self.store is None:
            raise RuntimeError("QueryOrchestrator is not bound to a RecordStore")
        return self.store
