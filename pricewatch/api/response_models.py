"""
Pydantic request/response schemas for the API.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    generation: int
    records: int
    batches: int


class BatchResponse(BaseModel):
    batch_id: str
    display_name: str
    ingested_at: str
    row_count: int
    rejected_count: int
    source_size: Optional[str] = None


class BatchesResponse(BaseModel):
    batches: list[BatchResponse]
    count: int
    generation: int


class RejectionResponse(BaseModel):
    row_number: int
    kind: str
    field: str
    message: str


class IngestResponse(BaseModel):
    batch_id: str
    display_name: str
    committed: int
    rejected: int
    rejections: list[RejectionResponse]
    generation: int


class RecordsResponse(BaseModel):
    records: list[dict[str, Any]]
    count: int
    generation: int


class MutationResponse(BaseModel):
    status: str
    generation: int
    removed: int = 0


class RecordPatch(BaseModel):
    """Field → new value. Keys may be canonical names or sheet headers."""
    fields: dict[str, Any] = Field(..., min_length=1)


class QueryResponse(BaseModel):
    mode: str
    query_text: str


class VerifyRequest(BaseModel):
    """Rows produced by an external executor for this mode."""
    rows: list[dict[str, Any]]
    query_text: Optional[str] = None
    generation: Optional[int] = None  # generation the rows were computed from, if known
