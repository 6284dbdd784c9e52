"""
Study Hub - FastAPI Backend
Main application entry point: content, taxonomy, comments and study rooms API.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    auth,
    topics,
    blogs,
    notes,
    leetcode,
    interviews,
    comments,
    study_rooms,
    uploads,
    admin,
)
from services.errors import ServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Study Hub API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    print(f"📁 Serving uploads from {settings.UPLOAD_DIR}")
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Study Hub API",
    description="Blogs, notes, LeetCode tracking, interview resources and study rooms",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": "Internal server error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(error.get("loc", [])), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": errors})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(topics.router, prefix="/topics", tags=["Topics"])
app.include_router(topics.subtopics_router, prefix="/subtopics", tags=["Topics"])
app.include_router(blogs.router, prefix="/blogs", tags=["Blogs"])
app.include_router(notes.router, prefix="/notes", tags=["Notes"])
app.include_router(leetcode.router, prefix="/leetcode", tags=["LeetCode"])
app.include_router(interviews.router, prefix="/interviews", tags=["Interviews"])
app.include_router(comments.resource_comments_router, prefix="/interviews", tags=["Comments"])
app.include_router(comments.router, prefix="/comments", tags=["Comments"])
app.include_router(study_rooms.router, prefix="/study-rooms", tags=["Study Rooms"])
app.include_router(uploads.router, prefix="/uploads", tags=["Uploads"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Uploaded files; POST /uploads is matched by the router above first.
app.mount(
    settings.UPLOAD_PUBLIC_BASE_URL,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Study Hub API",
        "version": "0.1.0",
        "status": "running"
    }
