from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from .config import Settings, settings as default_settings
from .database import get_engine, init_db
from .errors import StoreError, StoreUnavailableError
from .services.queries import DashboardQueries

from .api.viewpoint_groups import router as viewpoint_groups_router
from .api.elections import router as elections_router
from .api.jurisdictions import router as jurisdictions_router
from .api.time_series import router as time_series_router
from .api.summary import router as summary_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    queries: Optional[DashboardQueries] = None,
) -> FastAPI:
    cfg = settings or default_settings
    if queries is None:
        queries = DashboardQueries.from_engine(engine or get_engine(), cfg)
    engine = queries.store.engine

    app = FastAPI(
        title="Influence Dashboard API",
        version=cfg.app_version,
    )
    app.state.settings = cfg
    app.state.queries = queries

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Startup ---
    @app.on_event("startup")
    def _startup() -> None:
        # Creates missing tables only (never alters existing ones)
        init_db(engine, create_tables=cfg.auto_create_tables)

    # --- Store failures: "error" stays distinct from "no data" ---
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        if isinstance(exc, StoreUnavailableError):
            logger.error("store unavailable for %s: %s", request.url.path, exc)
            return JSONResponse(status_code=503, content={"detail": "Relation store unavailable, try again later"})
        logger.error("store error for %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Relation store error"})

    # --- Health / meta ---
    @app.get("/health", tags=["meta"])
    def health() -> Dict[str, Any]:
        return {"ok": True, "env": cfg.env}

    @app.get("/version", tags=["meta"])
    def version() -> Dict[str, Any]:
        return {"name": cfg.app_name, "version": cfg.app_version}

    # --- API routers ---
    app.include_router(viewpoint_groups_router)
    app.include_router(elections_router)
    app.include_router(jurisdictions_router)
    app.include_router(time_series_router)
    app.include_router(summary_router)

    return app


def run() -> None:
    logging.basicConfig(level=getattr(logging, str(default_settings.log_level).upper(), logging.INFO))
    import uvicorn

    # reload should be True in local dev, False in prod.
    uvicorn.run(
        "influence_dashboard.main:create_app",
        factory=True,
        host=default_settings.host,
        port=int(default_settings.port),
        reload=bool(default_settings.reload),
    )
