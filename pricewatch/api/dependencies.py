"""
FastAPI dependencies — RecordStore / QueryOrchestrator singletons, mode parsing.
"""
from __future__ import annotations

from fastapi import HTTPException, Path

from pricewatch.analytics.orchestrator import QueryOrchestrator
from pricewatch.data.schemas import AnalysisMode
from pricewatch.data.store import RecordStore

# ---------------------------------------------------------------------------
# Session singletons (set during startup)
# ---------------------------------------------------------------------------
_store: RecordStore | None = None
_orchestrator: QueryOrchestrator | None = None


def set_store(store: RecordStore) -> None:
    global _store, _orchestrator
    _store = store
    _orchestrator = QueryOrchestrator(store)


def get_store() -> RecordStore:
    if _store is None:
        raise HTTPException(503, "Server not initialized yet")
    return _store


def get_orchestrator() -> QueryOrchestrator:
    if _orchestrator is None:
        raise HTTPException(503, "Server not initialized yet")
    return _orchestrator


# ---------------------------------------------------------------------------
# Mode parsing from the path
# ---------------------------------------------------------------------------

def parse_mode(mode: str = Path(..., description="alert|compare")) -> AnalysisMode:
    try:
        return AnalysisMode.parse(mode)
    except ValueError as e:
        raise HTTPException(400, str(e))
