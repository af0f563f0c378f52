"""
Meta endpoints: health, working-set summary.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from pricewatch.analytics.common import sanitize_for_json
from pricewatch.analytics.summary import dataset_summary
from pricewatch.data.store import RecordStore
from pricewatch.api.dependencies import get_store
from pricewatch.api.response_models import HealthResponse

router = APIRouter(prefix="/api", tags=["meta"])


@router.get("/health", response_model=HealthResponse)
def health(store: RecordStore = Depends(get_store)):
    return HealthResponse(
        status="ok",
        generation=store.generation,
        records=store.record_count(),
        batches=store.batch_count(),
    )


@router.get("/summary")
def summary(store: RecordStore = Depends(get_store)):
    """Distinct drugs, facilities and total purchase value of the working set."""
    data = dataset_summary(store.snapshot())
    names = {b.batch_id: b.display_name for b in store.batches()}
    for entry in data["by_batch"]:
        entry["display_name"] = names.get(entry["batch_id"], "")
    return sanitize_for_json(data)
