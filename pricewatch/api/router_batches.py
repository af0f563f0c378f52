"""
Batch endpoints: upload sheets, load demo data, list and delete batches.
"""
from __future__ import annotations

import gzip

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from pricewatch.config import SHEET_EXTENSIONS
from pricewatch.data.loader import format_size, ingest_demo, ingest_rows, read_rows_bytes
from pricewatch.data.store import RecordStore
from pricewatch.errors import UnknownBatchError, UnreadableSheetError
from pricewatch.api.dependencies import get_store
from pricewatch.api.response_models import BatchesResponse, IngestResponse, MutationResponse

router = APIRouter(prefix="/api/batches", tags=["batches"])


@router.get("", response_model=BatchesResponse)
def list_batches(store: RecordStore = Depends(get_store)):
    batches = [b.to_dict() for b in store.batches()]
    return {"batches": batches, "count": len(batches), "generation": store.generation}


@router.post("", response_model=list[IngestResponse])
async def upload_sheets(
    files: list[UploadFile] = File(...),
    store: RecordStore = Depends(get_store),
):
    """Ingest one or more sheets; each file becomes its own batch.

    Rows that fail validation are reported per file, the rest are committed.
    All files are decoded before anything is stored, so one unreadable file
    rejects the whole request.
    """
    uploads = []
    for f in files:
        if not f.filename:
            raise HTTPException(400, "Missing filename")
        uploads.append((f.filename, await f.read()))

    # pandas and validation are blocking; keep them off the event loop
    return await run_in_threadpool(_decode_and_ingest, store, uploads)


def _decode_and_ingest(store: RecordStore, uploads: list[tuple[str, bytes]]) -> list[dict]:
    decoded = []
    for original, content in uploads:
        # Browser gzip-compressed upload
        filename = original
        if filename.lower().endswith(".gz"):
            filename = filename[:-3]
            try:
                content = gzip.decompress(content)
            except OSError as e:
                raise HTTPException(400, f"Could not decompress '{original}': {e}")

        if not filename.lower().endswith(SHEET_EXTENSIONS):
            raise HTTPException(400, f"Only {', '.join(SHEET_EXTENSIONS)} files are accepted (got '{original}')")

        try:
            rows = read_rows_bytes(content, filename)
        except UnreadableSheetError as e:
            raise HTTPException(400, str(e))
        decoded.append((filename, rows, format_size(len(content))))

    reports = []
    for filename, rows, size in decoded:
        report = ingest_rows(store, rows, filename, source_size=size)
        reports.append({**report.to_dict(), "generation": store.generation})
    return reports


@router.post("/demo", response_model=IngestResponse)
def load_demo(seed: int = 0, store: RecordStore = Depends(get_store)):
    """Append the sample bid sheet as a new batch."""
    report = ingest_demo(store, seed)
    return {**report.to_dict(), "generation": store.generation}


@router.delete("/{batch_id}", response_model=MutationResponse)
def delete_batch(batch_id: str, store: RecordStore = Depends(get_store)):
    """Delete a batch and all of its records."""
    try:
        removed = store.remove_batch(batch_id)
    except UnknownBatchError as e:
        raise HTTPException(404, str(e))
    return {"status": "deleted", "generation": store.generation, "removed": removed}
