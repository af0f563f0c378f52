"""
PriceWatch — FastAPI app factory with a per-process record store.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricewatch.config import LOG_LEVEL, REPORTS_FOLDER
from pricewatch.data.store import RecordStore
from pricewatch.api.dependencies import set_store
from pricewatch.api.router_meta import router as meta_router
from pricewatch.api.router_batches import router as batches_router
from pricewatch.api.router_records import router as records_router
from pricewatch.api.router_analysis import router as analysis_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start every process with an empty working set."""
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    REPORTS_FOLDER.mkdir(parents=True, exist_ok=True)
    print(f"  REPORTS_FOLDER = {REPORTS_FOLDER}")

    set_store(RecordStore())
    print("\nPriceWatch ready — no data yet. Upload bid sheets via POST /api/batches.\n")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="PriceWatch API",
        description="Drug bid price analysis — overpricing alerts and cross-facility comparison",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(meta_router)
    app.include_router(batches_router)
    app.include_router(records_router)
    app.include_router(analysis_router)

    return app


app = create_app()
