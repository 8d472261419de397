# src/buffersearch/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and mounts the routers.
Pipeline logic lives in `buffersearch.api.routes` and `buffersearch.session`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from buffersearch.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="buffersearch API", version="0.1.0")

# CORS (dev-friendly): allow local map frontends to call this API.
# Configure via env:
# - BUFFERSEARCH_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
# - BUFFERSEARCH_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("BUFFERSEARCH_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("BUFFERSEARCH_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)
