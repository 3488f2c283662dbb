"""
FastAPI application -- CityLocal directory API server.

Run locally:
    uvicorn citylocal.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from citylocal import config
from citylocal.database import init_db
from citylocal.errors import DirectoryError
from citylocal.routes import admin, auth, businesses, categories, reviews, search
from citylocal.services.notifications import get_notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.configure_logging()

    # Initialise database schema
    await init_db()

    yield

    # Shutdown
    await get_notifier().close()


app = FastAPI(
    title="CityLocal API",
    version="1.0.0",
    description="Local business directory -- listings, categories, reviews and moderation",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Unhandled storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"success": False, "error": "Server error"})


app.include_router(auth.router)
app.include_router(businesses.router)
app.include_router(reviews.router)
app.include_router(search.router)
app.include_router(categories.router)
app.include_router(admin.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
