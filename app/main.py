"""FastAPI Application Entry Point.

Configures the app, lifespan, CORS, and includes the conversion routes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scenegraph.config import CORS_ORIGINS
from scenegraph.logging_config import configure_logging

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log optional integrations at startup."""
    from scenegraph.config import FIGMA_TOKEN
    if not FIGMA_TOKEN:
        logger.warning(
            "FIGMA_TOKEN not set: conversions by file_key will be rejected. "
            "Inline documents still work."
        )
    yield


app = FastAPI(title="Scene Graph Bridge API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from .routes.conversion import router as conversion_router  # noqa: E402

app.include_router(conversion_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "ok"}
