# /interviewer/main.py

import os
import time
import uvicorn
import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from interviewer.config.settings import settings
from interviewer.models.api import ErrorResponse
from interviewer.utils.exceptions import InterviewError
from interviewer.utils.lifecycle import lifespan
from interviewer.utils.metrics import response_time_histogram
from interviewer.utils.rate_limiter import limiter
from interviewer.routes import public, guides, sessions, chat

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Interviewer Engine",
    version="1.0.0",
    description="Versioned discussion guides and AI-assisted interview sessions",
    lifespan=lifespan,
    openapi_url=f"/api/{settings.api_version}/openapi.json" if settings.environment != "production" else None,
    docs_url=f"/api/{settings.api_version}/docs" if settings.environment != "production" else None,
    redoc_url=f"/api/{settings.api_version}/redoc" if settings.environment != "production" else None,
)

# --- Rate Limiting ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- Error Handling ---
@app.exception_handler(InterviewError)
async def interview_error_handler(request: Request, exc: InterviewError):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error_code=exc.error_code, message=exc.message).model_dump()
    )


# --- Middleware ---
cors_origins = []
if settings.cors_allowed_origins:
    cors_origins.extend([origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def performance_middleware(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response_time_histogram.labels(endpoint=request.url.path).observe(process_time)
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def timeout_middleware(request: Request, call_next):
    try:
        return await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"Request to {request.url.path} timed out")
        return JSONResponse(
            ErrorResponse(error_code="TIMEOUT", message="Request timed out").model_dump(),
            status_code=504
        )


# --- API Routers ---
app.include_router(public.router)
app.include_router(guides.router, prefix=f"/api/{settings.api_version}")
app.include_router(sessions.router, prefix=f"/api/{settings.api_version}")
app.include_router(chat.router, prefix=f"/api/{settings.api_version}")

# --- Main Entry Point for Uvicorn (for local development) ---
if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "127.0.0.1")

    uvicorn.run(
        "interviewer.main:app",
        host=host,
        port=port,
        reload=True if settings.environment == "development" else False,
        workers=settings.workers if settings.environment == "production" else 1
    )
