"""
Mailfree Backend API
FastAPI application for receiving, storing and reading temporary-mailbox email.
"""

import logging
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from mailfree.config import get_extra_cors_origins, get_log_level
from mailfree.db import supabase_admin
from mailfree.routers import email_receive, emails

# Configure logging to output to console
logging.basicConfig(
    level=get_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Mailfree API",
    description="Temporary mailbox backend: inbound email decoding and read API",
    version="0.1.0",
)


def get_cors_origins() -> List[str]:
    """
    Build the list of allowed CORS origins.

    Always includes the local dev frontends; additional origins are read
    from the CORS_ORIGINS environment variable as a comma-separated list.
    Duplicates are removed while preserving order.
    """
    always_included = [
        "http://localhost:3000",
        "http://localhost:8787",
    ]

    seen: set = set()
    origins: List[str] = []
    for origin in always_included + get_extra_cors_origins():
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)

    return origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(email_receive.router, prefix="/api/email", tags=["inbound"])
app.include_router(emails.router, prefix="/api", tags=["emails"])


@app.get("/")
async def root():
    return {"message": "Mailfree API", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/db")
async def health_db():
    """
    Test the Supabase database connection.

    Executes a lightweight query (SELECT 1 row from mailboxes). Returns 503
    on failure.
    """
    if supabase_admin is None:
        raise HTTPException(
            status_code=503,
            detail="Database client unavailable: SUPABASE_SERVICE_KEY is not configured",
        )

    try:
        supabase_admin.table("mailboxes").select("id").limit(1).execute()
        return {"status": "ok", "database": "reachable"}
    except Exception as exc:
        logger.error(f"Database health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(exc)}",
        )
