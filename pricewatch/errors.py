"""
Domain errors. Each carries a ``kind`` string that the API and reports echo back.
"""
from __future__ import annotations

from typing import Any, Optional


class PriceWatchError(Exception):
    kind = "PriceWatchError"


# ---------------------------------------------------------------------------
# Row-level (collected during ingestion, never abort a batch)
# ---------------------------------------------------------------------------

class RowRejectedError(PriceWatchError):
    """A raw row could not be turned into a DrugBidRecord."""

    kind = "RowRejected"

    def __init__(self, field: str, message: str, row_number: Optional[int] = None) -> None:
        self.field = field
        self.row_number = row_number
        super().__init__(message)


class MissingIdentityFieldError(RowRejectedError):
    kind = "MissingIdentityField"


class InvalidNumericFieldError(RowRejectedError):
    kind = "InvalidNumericField"


# ---------------------------------------------------------------------------
# Operation-level (abort the requested operation)
# ---------------------------------------------------------------------------

class EmptyInputError(PriceWatchError):
    kind = "EmptyInputError"


class UnknownRecordReferenceError(PriceWatchError):
    kind = "UnknownRecordReference"

    def __init__(self, reference: Any, message: str | None = None) -> None:
        self.reference = reference
        super().__init__(message or f"Unknown record: {reference!r}")


class UnknownBatchError(UnknownRecordReferenceError):
    def __init__(self, batch_id: str) -> None:
        super().__init__(batch_id, f"Unknown batch: {batch_id!r}")


class StaleResultError(PriceWatchError):
    kind = "StaleResultError"

    def __init__(self, result_generation: int, store_generation: int) -> None:
        self.result_generation = result_generation
        self.store_generation = store_generation
        super().__init__(
            f"Result set was computed at generation {result_generation}, "
            f"store is now at generation {store_generation}"
        )


class ResultDiscrepancyError(PriceWatchError):
    """External result rows disagree with the built-in algorithms."""

    kind = "ResultDiscrepancy"

    def __init__(self, reconciliation) -> None:
        self.reconciliation = reconciliation
        super().__init__(reconciliation.describe())


class UnreadableSheetError(PriceWatchError):
    """A file could not be decoded into rows (wrong type, corrupt, empty)."""

    kind = "UnreadableSheet"
