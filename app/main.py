# app/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import init_db
from app.logging_config import configure_logging
from app.routers import admin_archives_router

settings = get_settings()

configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="NDI Registration Backend")

if settings.cors_origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(admin_archives_router)


@app.on_event("startup")
def on_startup() -> None:
    # Alembic owns the schema outside local development
    if settings.ENVIRONMENT == "development":
        init_db()
    logger.info(f"Registration backend started (environment={settings.ENVIRONMENT})")


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "ndi-registration-backend"}


@app.get("/")
def root() -> dict:
    return {
        "service": "ndi-registration-backend",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs",
    }
