"""
Record endpoints: list, edit, delete one, clear all.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from pricewatch.analytics.common import sanitize_for_json
from pricewatch.config import REPORTS_FOLDER
from pricewatch.data.store import RecordStore
from pricewatch.errors import RowRejectedError, UnknownRecordReferenceError
from pricewatch.reports import price_report
from pricewatch.api.dependencies import get_store
from pricewatch.api.response_models import MutationResponse, RecordPatch, RecordsResponse

router = APIRouter(prefix="/api/records", tags=["records"])


@router.get("", response_model=RecordsResponse)
def list_records(batch_id: Optional[str] = None, store: RecordStore = Depends(get_store)):
    snapshot = store.snapshot()
    records = snapshot.records
    if batch_id is not None:
        try:
            store.batch(batch_id)
        except UnknownRecordReferenceError as e:
            raise HTTPException(404, str(e))
        records = [r for r in records if r.batch_id == batch_id]
    rows = sanitize_for_json([r.to_row() for r in records])
    return {"records": rows, "count": len(rows), "generation": snapshot.generation}


@router.patch("/{record_id}")
def edit_record(record_id: int, patch: RecordPatch, store: RecordStore = Depends(get_store)):
    try:
        record = store.edit_record(record_id, patch.fields)
    except UnknownRecordReferenceError as e:
        raise HTTPException(404, str(e))
    except RowRejectedError as e:
        raise HTTPException(422, {"kind": e.kind, "field": e.field, "message": str(e)})
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"record": sanitize_for_json(record.to_row()), "generation": store.generation}


@router.delete("/{record_id}", response_model=MutationResponse)
def delete_record(record_id: int, store: RecordStore = Depends(get_store)):
    try:
        store.delete_record(record_id)
    except UnknownRecordReferenceError as e:
        raise HTTPException(404, str(e))
    return {"status": "deleted", "generation": store.generation, "removed": 1}


@router.delete("", response_model=MutationResponse)
def clear_records(store: RecordStore = Depends(get_store)):
    """Drop the whole working set, batches included."""
    removed = store.record_count()
    store.clear()
    return {"status": "cleared", "generation": store.generation, "removed": removed}


@router.get("/excel")
def export_records(store: RecordStore = Depends(get_store)):
    """Working set as a sheet, under the headers it was uploaded with."""
    snapshot = store.snapshot()
    out_path = REPORTS_FOLDER / f"PriceWatch_records_g{snapshot.generation}.xlsx"
    price_report.export_records_excel(snapshot.records, out_path)
    return FileResponse(
        path=str(out_path),
        filename=out_path.name,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
