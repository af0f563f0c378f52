"""
Analysis endpoints — ALERT / COMPARE as JSON and Excel, reference query
text, and verification of externally computed rows.
"""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, JSONResponse

from pricewatch.analytics.common import sanitize_for_json
from pricewatch.analytics.orchestrator import AnalysisResultSet, QueryOrchestrator
from pricewatch.config import REPORTS_FOLDER
from pricewatch.data.schemas import AnalysisMode
from pricewatch.errors import EmptyInputError, StaleResultError
from pricewatch.reports import price_report
from pricewatch.api.dependencies import get_orchestrator, parse_mode
from pricewatch.api.response_models import QueryResponse, VerifyRequest

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


def _current(orchestrator: QueryOrchestrator, mode: AnalysisMode) -> AnalysisResultSet:
    try:
        return orchestrator.run_current(mode)
    except EmptyInputError as e:
        raise HTTPException(400, str(e))


@router.get("/{mode}")
def analysis_json(
    mode: AnalysisMode = Depends(parse_mode),
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    """Result set for the current working set, stamped with its generation."""
    return JSONResponse(content=price_report.generate_json(_current(orchestrator, mode)))


@router.get("/{mode}/excel")
def analysis_excel(
    mode: AnalysisMode = Depends(parse_mode),
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    result = _current(orchestrator, mode)
    out_path = REPORTS_FOLDER / f"PriceWatch_{mode.value}_{datetime.now():%Y-%m-%d}_g{result.generation}.xlsx"
    price_report.generate_excel(result, out_path)
    return FileResponse(
        path=str(out_path),
        filename=out_path.name,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


@router.get("/{mode}/query", response_model=QueryResponse)
def analysis_query(
    mode: AnalysisMode = Depends(parse_mode),
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    """Built-in query text describing the algorithm for this mode."""
    return QueryResponse(mode=mode.value, query_text=orchestrator.reference_query(mode))


@router.post("/{mode}/verify")
def verify_external(
    req: VerifyRequest,
    mode: AnalysisMode = Depends(parse_mode),
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    """Check rows produced by an external query against the built-in algorithm.

    Disagreement is reported in the body (``matches: false``), never hidden.
    Rows computed from an older generation are refused with 409.
    """
    result = _current(orchestrator, mode)
    if req.generation is not None and req.generation != result.generation:
        e = StaleResultError(req.generation, result.generation)
        raise HTTPException(409, str(e))
    outcome = orchestrator.reconcile(result, req.rows)
    data = outcome.to_dict()
    data["query_text"] = req.query_text
    return JSONResponse(content=sanitize_for_json(data))
